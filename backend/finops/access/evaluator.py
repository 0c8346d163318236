# Overview: Single access-control evaluator for every protected route.

"""
Access-Control Evaluator

evaluate(principal, resource, action, scope, target) -> Allowed | Denied

Pure and synchronous: no database, no Flask context, no logging. Routes
reach it through the require_access decorator, once per request.

Decision order:
1. Self-action guards (own role change, own account deletion)
2. Account-owned actions (profile picture)
3. Admin-only resources (users, audit-logs)
4. Admins are blocked from every graded resource
5. Grade rules per action and scope
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .decisions import (
    Allowed,
    Decision,
    Denied,
    Principal,
    Scope,
    GRADES,
    GRADE_EMPLOYEE,
    GRADE_MANAGER,
    GRADE_FINANCE_HEAD,
    NO_TOKEN,
    INSUFFICIENT_ROLE,
    INSUFFICIENT_GRADE,
    SELF_ACTION_FORBIDDEN,
    SCOPE_MISMATCH,
)
from .predicates import ScopePredicate, UNRESTRICTED, predicate_for


# Actions
READ = "read"
CREATE = "create"
UPDATE = "update"
UPDATE_STATUS = "update-status"
UPDATE_ROLE = "update-role"
UPDATE_PROFILE = "update-profile"
DELETE = "delete"

# Resources
TRANSACTIONS = "transactions"
INVOICES = "invoices"
BUDGET = "budget"
COMMISSION = "commission"
KPI = "kpi"
SUMMARY = "summary"
PROJECTS = "projects"
USERS = "users"
AUDIT_LOGS = "audit-logs"

ADMIN_ONLY_RESOURCES = frozenset({USERS, AUDIT_LOGS})
SCOPED_RESOURCES = frozenset({TRANSACTIONS, INVOICES, BUDGET, COMMISSION, KPI, SUMMARY, PROJECTS})
RECORD_RESOURCES = frozenset({TRANSACTIONS, INVOICES})
RESOURCES = ADMIN_ONLY_RESOURCES | SCOPED_RESOURCES


@dataclass(frozen=True)
class Target:
    """What a mutating request points at, when the rule depends on it."""
    user_id: Optional[int] = None
    department: Optional[str] = None
    # A general account update that also sets is_admin
    changes_role: bool = False


_NO_TARGET = Target()


def evaluate(
    principal: Optional[Principal],
    resource: str,
    action: str = READ,
    scope: Optional[Scope] = None,
    target: Optional[Target] = None,
) -> Decision:
    if resource not in RESOURCES:
        raise ValueError(f"Unknown resource: {resource}")

    if principal is None:
        return Denied(NO_TOKEN, "Authentication required")

    target = target or _NO_TARGET

    if resource == USERS:
        changes_role = action == UPDATE_ROLE or (action == UPDATE and target.changes_role)
        if (changes_role or action == DELETE) and target.user_id == principal.id:
            if action == DELETE:
                return Denied(SELF_ACTION_FORBIDDEN, "You cannot delete your own account")
            return Denied(SELF_ACTION_FORBIDDEN, "You cannot change your own role")
        if action == UPDATE_PROFILE:
            if target.user_id == principal.id:
                return Allowed(Scope.SELF, predicate_for(Scope.SELF, principal))
            return Denied(INSUFFICIENT_ROLE, "You can only update your own profile")

    if resource in ADMIN_ONLY_RESOURCES:
        if principal.is_admin:
            return Allowed(Scope.ALL, UNRESTRICTED)
        return Denied(INSUFFICIENT_ROLE, "Admins only")

    if principal.is_admin:
        return Denied(INSUFFICIENT_ROLE, "Admins cannot access this resource")

    if principal.grade not in GRADES:
        return Denied(INSUFFICIENT_GRADE, "Account has no valid grade", structural=True)

    if action == READ:
        return _evaluate_read(principal, scope or Scope.SELF)

    if action == CREATE and resource in RECORD_RESOURCES:
        return _evaluate_submit(principal, target)

    if action == UPDATE_STATUS and resource in RECORD_RESOURCES:
        if principal.grade == GRADE_FINANCE_HEAD:
            return Allowed(Scope.ALL, UNRESTRICTED)
        return Denied(INSUFFICIENT_GRADE, f"Grade {GRADE_FINANCE_HEAD}+ users only")

    if action in (CREATE, UPDATE) and resource == PROJECTS:
        return _evaluate_project_change(principal, target)

    raise ValueError(f"Unsupported action '{action}' on resource '{resource}'")


def _evaluate_read(principal: Principal, scope: Scope) -> Decision:
    if scope is Scope.SELF:
        return Allowed(scope, predicate_for(scope, principal))

    if scope is Scope.DEPARTMENT:
        if principal.grade == GRADE_FINANCE_HEAD:
            return Denied(SCOPE_MISMATCH, "Finance heads read across departments: use scope=all")
        if principal.grade != GRADE_MANAGER:
            return Denied(INSUFFICIENT_GRADE, f"Grade {GRADE_MANAGER} users only")
        if not principal.department:
            return Denied(SCOPE_MISMATCH, "Caller has no department", structural=True)
        return Allowed(scope, predicate_for(scope, principal))

    if principal.grade != GRADE_FINANCE_HEAD:
        return Denied(INSUFFICIENT_GRADE, f"Grade {GRADE_FINANCE_HEAD}+ users only")
    return Allowed(scope, UNRESTRICTED)


def _evaluate_submit(principal: Principal, target: Target) -> Decision:
    # Records are submitted at or below manager grade, into the caller's own department
    if principal.grade not in (GRADE_EMPLOYEE, GRADE_MANAGER):
        return Denied(INSUFFICIENT_GRADE, "Finance heads review records, they do not submit them")
    if not principal.department:
        return Denied(SCOPE_MISMATCH, "Caller has no department", structural=True)
    if target.department is not None and target.department != principal.department:
        return Denied(SCOPE_MISMATCH, "Records can only be submitted for your own department")
    return Allowed(
        Scope.SELF,
        ScopePredicate(user_id=principal.id, department=principal.department),
    )


def _evaluate_project_change(principal: Principal, target: Target) -> Decision:
    if principal.grade != GRADE_MANAGER:
        return Denied(INSUFFICIENT_GRADE, f"Grade {GRADE_MANAGER} users only")
    if not principal.department:
        return Denied(SCOPE_MISMATCH, "Caller has no department", structural=True)
    if target.department is not None and target.department != principal.department:
        return Denied(SCOPE_MISMATCH, "Projects can only be managed in your own department")
    return Allowed(Scope.DEPARTMENT, predicate_for(Scope.DEPARTMENT, principal))
