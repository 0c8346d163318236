# Overview: Service-layer operations for department projects; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..access import Principal, ScopePredicate, apply_scope
from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Project
from ..validation import parse_amount_cents, require_project_status, require_text
from finops.time_utils import utcnow


UPDATABLE_FIELDS = ("name", "description", "budget", "status")


def list_projects(predicate: ScopePredicate, *, status: str | None = None) -> list[Project]:
    query = db.session.query(Project)
    # Projects have no owner column: the self view is the caller's department
    query = apply_scope(query, Project, predicate)
    if status is not None:
        query = query.filter(Project.status == require_project_status(status))
    return query.order_by(Project.name).all()


def find_project(project_id: int) -> Project | None:
    return db.session.get(Project, project_id)


def get_project(project_id: int) -> Project:
    project = find_project(project_id)
    if not project:
        raise NotFoundError("Project not found")
    return project


def _commit(project: Project) -> Project:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A project with this name already exists in the department")
    return project


def create_project(principal: Principal, payload: dict) -> Project:
    project = Project(
        name=require_text(payload.get("name"), "name", max_length=128),
        department=principal.department,
        description=(payload.get("description") or None),
        budget_cents=parse_amount_cents(payload.get("budget", 0), "budget", allow_zero=True),
        status=require_project_status(payload.get("status") or "active"),
        created_by_user_id=principal.id,
        created_at=utcnow(),
    )
    db.session.add(project)
    return _commit(project)


def update_project(project_id: int, payload: dict) -> Project:
    """Edit name, description, budget or status. Department never moves."""
    project = get_project(project_id)

    unknown = sorted(set(payload) - set(UPDATABLE_FIELDS) - {"department"})
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")
    if "department" in payload and payload["department"] != project.department:
        raise ValidationError("Projects cannot move between departments")

    if "name" in payload:
        project.name = require_text(payload["name"], "name", max_length=128)
    if "description" in payload:
        project.description = payload["description"] or None
    if "budget" in payload:
        project.budget_cents = parse_amount_cents(payload["budget"], "budget", allow_zero=True)
    if "status" in payload:
        project.status = require_project_status(payload["status"])

    project.updated_at = utcnow()
    return _commit(project)
