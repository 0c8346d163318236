# Overview: Translates access decisions into SQLAlchemy filter clauses.

"""
Scope predicates

A ScopePredicate is the storage-side shape of an Allowed decision:

- self        -> user_id = caller.id
- department  -> department = caller.department
- all         -> no filter

Caller-supplied filters (status, date range, department) are only ever
ANDed onto the predicate, so a filtered query can never return a row the
bare predicate would exclude.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, false

from .decisions import Allowed, Denied, Principal, Scope, SCOPE_MISMATCH


@dataclass(frozen=True)
class ScopePredicate:
    user_id: Optional[int] = None
    department: Optional[str] = None
    # Used instead of user_id for tables without an owner column (budget figures)
    owner_department: Optional[str] = None

    @property
    def is_unrestricted(self) -> bool:
        return self.user_id is None and self.department is None

    def clauses(self, model) -> list:
        clauses = []
        if self.user_id is not None:
            owner_column = getattr(model, "user_id", None)
            if owner_column is not None:
                clauses.append(owner_column == self.user_id)
            elif self.owner_department is not None:
                clauses.append(model.department == self.owner_department)
            else:
                clauses.append(false())
        if self.department is not None:
            clauses.append(model.department == self.department)
        return clauses

    def to_dict(self) -> dict:
        return {"user_id": self.user_id, "department": self.department}


UNRESTRICTED = ScopePredicate()


def predicate_for(scope: Scope, principal: Principal) -> ScopePredicate:
    """Predicate for a scope the evaluator has already authorized."""
    if scope is Scope.SELF:
        return ScopePredicate(user_id=principal.id, owner_department=principal.department)
    if scope is Scope.DEPARTMENT:
        return ScopePredicate(department=principal.department)
    return UNRESTRICTED


def narrow(decision: Allowed, department: Optional[str] = None):
    """
    Compose a caller-supplied department filter with an authorized predicate.

    Returns a new Allowed, or Denied(scope-mismatch) when the filter names a
    department the authorization constraint does not cover.
    """
    if department is None:
        return decision

    predicate = decision.predicate

    if predicate.department is not None and predicate.department != department:
        return Denied(
            SCOPE_MISMATCH,
            f"Department filter '{department}' is outside your department scope",
        )

    if predicate.user_id is not None and predicate.owner_department != department:
        return Denied(
            SCOPE_MISMATCH,
            f"Department filter '{department}' is outside your own records",
        )

    return Allowed(decision.scope, replace(predicate, department=department))


def apply_scope(
    query,
    model,
    predicate: ScopePredicate,
    *,
    status: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    time_column=None,
):
    """AND the predicate and optional caller filters onto a query."""
    clauses = predicate.clauses(model)

    if status is not None:
        clauses.append(model.status == status)

    if start is not None or end is not None:
        column = time_column if time_column is not None else model.created_at
        if start is not None:
            clauses.append(column >= start)
        if end is not None:
            clauses.append(column <= end)

    if not clauses:
        return query
    return query.filter(and_(*clauses))
