# Overview: Flask API routes for user administration; parses input and returns JSON responses.

"""
User administration.

All endpoints are admin-only except the profile picture, which only the
account itself may change. Role changes and deletions of the caller's own
account are refused with self-action-forbidden before any role check.
"""

from flask import Blueprint, jsonify, request, g

from ..access import Target
from ..access.evaluator import USERS, CREATE, UPDATE, UPDATE_ROLE, UPDATE_PROFILE, DELETE
from ..decorators import require_auth, require_access
from ..services import user_service
from ..validation import get_json_body, optional_department, require_grade


users_bp = Blueprint("users", __name__, url_prefix="/users")


def _target_user(user_id: int) -> Target:
    return Target(user_id=user_id)


def _target_user_update(user_id: int) -> Target:
    return Target(user_id=user_id, changes_role="is_admin" in get_json_body())


@users_bp.get("")
@require_auth
@require_access(USERS)
def list_users():
    """
    Query params:
    - department: str
    - grade: 1 | 2 | 3
    - include_admins: bool (default true)
    """
    grade = request.args.get("grade")
    include_admins = request.args.get("include_admins", "true").lower() == "true"
    users = user_service.list_users(
        department=optional_department(request.args.get("department")),
        grade=require_grade(grade) if grade else None,
        include_admins=include_admins,
    )
    return jsonify([user.to_dict() for user in users]), 200


@users_bp.post("")
@require_auth
@require_access(USERS, CREATE)
def create_user():
    """
    Request body:
    - name, email: str (required)
    - role: user | admin (default user)
    - grade: 1 | 2 | 3 (graded users, default 1)
    - department: str (required for graded users)
    - designation, external_uid: str (optional)
    """
    data = get_json_body()
    user = user_service.create_user(
        data.get("name"),
        data.get("email"),
        role=data.get("role") or "user",
        grade=data.get("grade"),
        department=data.get("department"),
        designation=data.get("designation"),
        external_uid=data.get("external_uid"),
    )
    return jsonify({"user": user.to_dict(), "message": "User created successfully"}), 201


@users_bp.get("/<int:user_id>")
@require_auth
@require_access(USERS, target=_target_user)
def get_user(user_id: int):
    return jsonify(user_service.get_user(user_id).to_dict()), 200


@users_bp.patch("/<int:user_id>")
@require_auth
@require_access(USERS, UPDATE, target=_target_user_update)
def update_user(user_id: int):
    """
    Request body (all optional): name, designation, department, grade, is_admin.

    is_admin is a role change and gets the same self-action guard as
    PATCH /users/<id>/role.
    """
    user = user_service.update_user(user_id, get_json_body())
    return jsonify({"user": user.to_dict(), "message": "User updated"}), 200


@users_bp.patch("/<int:user_id>/role")
@require_auth
@require_access(USERS, UPDATE_ROLE, target=_target_user)
def update_user_role(user_id: int):
    """
    Request body:
    - role: user | admin (required)
    - grade, department: applied when demoting to user
    """
    data = get_json_body()
    user = user_service.set_role(
        user_id,
        data.get("role"),
        grade=data.get("grade"),
        department=data.get("department"),
    )
    return jsonify({"user": user.to_dict(), "message": "Role updated"}), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_access(USERS, DELETE, target=_target_user)
def delete_user(user_id: int):
    deleted = user_service.delete_user(user_id, deleted_by_user_id=g.principal.id)
    return jsonify({"user": deleted, "message": "User deleted"}), 200


@users_bp.patch("/<int:user_id>/profile-picture")
@require_auth
@require_access(USERS, UPDATE_PROFILE, target=_target_user)
def update_profile_picture(user_id: int):
    """Request body: profile_picture_url (str or null)."""
    data = get_json_body()
    user = user_service.update_profile_picture(user_id, data.get("profile_picture_url"))
    return jsonify({"user": user.to_dict(), "profile_picture_url": user.profile_picture_url}), 200
