# Overview: Access-control package.
# Re-exports the evaluator, decision types and predicate helpers.

from .decisions import (
    Allowed,
    Decision,
    Denied,
    Principal,
    Scope,
    parse_scope,
    DENIAL_REASONS,
    GRADES,
    GRADE_EMPLOYEE,
    GRADE_MANAGER,
    GRADE_FINANCE_HEAD,
    NO_TOKEN,
    INVALID_TOKEN,
    INSUFFICIENT_ROLE,
    INSUFFICIENT_GRADE,
    SELF_ACTION_FORBIDDEN,
    SCOPE_MISMATCH,
)
from .evaluator import Target, evaluate
from .predicates import ScopePredicate, UNRESTRICTED, apply_scope, narrow, predicate_for

__all__ = [
    "Allowed",
    "Decision",
    "Denied",
    "Principal",
    "Scope",
    "parse_scope",
    "DENIAL_REASONS",
    "GRADES",
    "GRADE_EMPLOYEE",
    "GRADE_MANAGER",
    "GRADE_FINANCE_HEAD",
    "NO_TOKEN",
    "INVALID_TOKEN",
    "INSUFFICIENT_ROLE",
    "INSUFFICIENT_GRADE",
    "SELF_ACTION_FORBIDDEN",
    "SCOPE_MISMATCH",
    "Target",
    "evaluate",
    "ScopePredicate",
    "UNRESTRICTED",
    "apply_scope",
    "narrow",
    "predicate_for",
]
