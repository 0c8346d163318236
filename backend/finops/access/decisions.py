# Overview: Value types exchanged between token verification, the evaluator and the routes.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

from ..errors import ValidationError

if TYPE_CHECKING:
    from .predicates import ScopePredicate


# Denial reason codes. Stable strings: clients key their messages off them.
NO_TOKEN = "no-token"
INVALID_TOKEN = "invalid-token"
INSUFFICIENT_ROLE = "insufficient-role"
INSUFFICIENT_GRADE = "insufficient-grade"
SELF_ACTION_FORBIDDEN = "self-action-forbidden"
SCOPE_MISMATCH = "scope-mismatch"

DENIAL_REASONS = (
    NO_TOKEN,
    INVALID_TOKEN,
    INSUFFICIENT_ROLE,
    INSUFFICIENT_GRADE,
    SELF_ACTION_FORBIDDEN,
    SCOPE_MISMATCH,
)

GRADE_EMPLOYEE = 1
GRADE_MANAGER = 2
GRADE_FINANCE_HEAD = 3
GRADES = (GRADE_EMPLOYEE, GRADE_MANAGER, GRADE_FINANCE_HEAD)


class Scope(str, Enum):
    SELF = "self"
    DEPARTMENT = "department"
    ALL = "all"


# "team" is what the dashboards send for the department slice
_SCOPE_ALIASES = {
    "self": Scope.SELF,
    "department": Scope.DEPARTMENT,
    "team": Scope.DEPARTMENT,
    "all": Scope.ALL,
}


def parse_scope(value: Optional[str]) -> Scope:
    """Parse a scope query token; absent means self."""
    if value is None or value.strip() == "":
        return Scope.SELF
    scope = _SCOPE_ALIASES.get(value.strip().lower())
    if scope is None:
        raise ValidationError(
            f"Unknown scope '{value}'. Expected one of: self, department, team, all"
        )
    return scope


@dataclass(frozen=True)
class Principal:
    """
    The caller as seen by every access decision.

    Built once at the trust boundary (token verification). Admins carry no
    grade: is_admin short-circuits all grade rules.
    """
    id: int
    is_admin: bool
    grade: Optional[int]
    department: Optional[str]
    email: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "is_admin": self.is_admin,
            "grade": self.grade,
            "department": self.department,
            "email": self.email,
        }


@dataclass(frozen=True)
class Allowed:
    scope: Optional[Scope]
    predicate: "ScopePredicate"

    allowed = True


@dataclass(frozen=True)
class Denied:
    reason: str
    message: str
    # True when the request itself is malformed for this caller (HTTP 400)
    structural: bool = False

    allowed = False


Decision = Union[Allowed, Denied]

