# Overview: Service-layer operations for budget figures; encapsulates business logic and database work.

from __future__ import annotations

from ..access import Scope, ScopePredicate, apply_scope
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import BudgetFigure
from finops.time_utils import utcnow


def budget_overview(scope: Scope, predicate: ScopePredicate) -> dict:
    """
    Budget, spent and remaining for the caller's visible slice.

    self / department: the single department figure.
    all: organisation totals plus one row per department.
    """
    figures = apply_scope(db.session.query(BudgetFigure), BudgetFigure, predicate).order_by(
        BudgetFigure.department
    ).all()

    if scope is not Scope.ALL:
        if not figures:
            raise NotFoundError("No budget figure for your department")
        figure = figures[0]
        return {"scope": scope.value, **figure.to_dict()}

    budget_cents = sum(f.budget_cents or 0 for f in figures)
    spent_cents = sum(f.spent_cents or 0 for f in figures)
    remaining_cents = budget_cents - spent_cents
    return {
        "scope": scope.value,
        "budget": round(budget_cents / 100, 2),
        "spent": round(spent_cents / 100, 2),
        "remaining": round(remaining_cents / 100, 2),
        "budget_cents": budget_cents,
        "spent_cents": spent_cents,
        "remaining_cents": remaining_cents,
        "departments": [f.to_dict() for f in figures],
    }


def set_budget(department: str, budget_cents: int, spent_cents: int | None = None) -> BudgetFigure:
    """Create or update a department figure (CLI / finance import path)."""
    if budget_cents < 0 or (spent_cents is not None and spent_cents < 0):
        raise ValidationError("Budget figures cannot be negative")

    figure = db.session.query(BudgetFigure).filter_by(department=department).first()
    if figure is None:
        figure = BudgetFigure(department=department, spent_cents=0)
        db.session.add(figure)

    figure.budget_cents = budget_cents
    if spent_cents is not None:
        figure.spent_cents = spent_cents
    figure.updated_at = utcnow()
    db.session.commit()
    return figure
