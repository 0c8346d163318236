# Overview: Flask API routes for department projects; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..access import Target
from ..access.evaluator import PROJECTS, CREATE, UPDATE
from ..decorators import require_auth, require_access
from ..services import project_service
from ..validation import get_json_body


projects_bp = Blueprint("projects", __name__, url_prefix="/projects")


def _submitted_department() -> Target:
    department = get_json_body().get("department")
    return Target(department=department or None)


def _project_department(project_id: int) -> Target:
    # A missing project resolves to no target; the handler 404s once the grade rule passes
    project = project_service.find_project(project_id)
    return Target(department=project.department if project else None)


@projects_bp.get("")
@require_auth
@require_access(PROJECTS)
def list_projects():
    projects = project_service.list_projects(g.access.predicate, status=request.args.get("status") or None)
    return jsonify([p.to_dict() for p in projects]), 200


@projects_bp.post("")
@require_auth
@require_access(PROJECTS, CREATE, target=_submitted_department)
def create_project():
    """
    Create a project in the manager's own department.

    Request body:
    - name: str (required)
    - description: str (optional)
    - budget: number (optional)
    - status: active | on_hold | completed (optional)
    """
    project = project_service.create_project(g.principal, get_json_body())
    return jsonify(project.to_dict()), 201


@projects_bp.patch("/<int:project_id>")
@require_auth
@require_access(PROJECTS, UPDATE, target=_project_department)
def update_project(project_id: int):
    project = project_service.update_project(project_id, get_json_body())
    return jsonify(project.to_dict()), 200
