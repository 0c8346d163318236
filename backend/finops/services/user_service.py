# Overview: Service-layer operations for user accounts; encapsulates business logic and database work.

"""
User account management

Accounts are created by self-registration (always grade 1, never admin) or
by an administrator. Only administrators change role, grade or department;
the account itself only changes its profile picture.

Self-action guards (own role change, own deletion) are enforced by the
access evaluator before any of these functions run.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..access import GRADE_EMPLOYEE
from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    require_department,
    require_grade,
    require_role,
    require_text,
)
from . import identity_service
from finops.time_utils import utcnow


USER_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "designation", "department", "grade", "is_admin"},
)

PROFILE_PICTURE_PREFIXES = ("https://", "http://", "/")


def _normalize_email(email) -> str:
    email = require_text(email, "email", max_length=255).lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError("email must be a valid email address")
    return email


def _ensure_email_available(email: str, exclude_user_id: int | None = None) -> None:
    query = db.session.query(User.id).filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    if query.first():
        raise ConflictError("Email already registered")


def _commit_user(user: User) -> User:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email or external identity already registered")
    return user


def register_user(
    name: str,
    email: str,
    department: str,
    external_uid: str | None = None,
    designation: str | None = None,
) -> User:
    """Self-registration. Always a grade-1, non-admin account."""
    name = require_text(name, "name", max_length=128)
    email = _normalize_email(email)
    department = require_department(department)
    _ensure_email_available(email)

    user = User(
        name=name,
        email=email,
        department=department,
        designation=designation,
        external_uid=external_uid or None,
        is_admin=False,
        grade=GRADE_EMPLOYEE,
        created_at=utcnow(),
    )
    db.session.add(user)
    return _commit_user(user)


def create_user(
    name: str,
    email: str,
    *,
    role: str = "user",
    grade=None,
    department: str | None = None,
    designation: str | None = None,
    external_uid: str | None = None,
) -> User:
    """
    Administrator account creation.

    Admins carry no grade. Graded users need a department; grade defaults
    to 1 when omitted.
    """
    name = require_text(name, "name", max_length=128)
    email = _normalize_email(email)
    role = require_role(role or "user")
    is_admin = role == "admin"

    if is_admin:
        if grade is not None:
            raise ValidationError("Admin accounts carry no grade")
        department = require_department(department) if department else None
        grade = None
    else:
        department = require_department(department)
        grade = require_grade(grade) if grade is not None else GRADE_EMPLOYEE

    _ensure_email_available(email)

    user = User(
        name=name,
        email=email,
        is_admin=is_admin,
        grade=grade,
        department=department,
        designation=designation,
        external_uid=external_uid or None,
        created_at=utcnow(),
    )
    db.session.add(user)
    return _commit_user(user)


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def list_users(
    *,
    department: str | None = None,
    grade: int | None = None,
    include_admins: bool = True,
) -> list[User]:
    query = db.session.query(User)
    if department is not None:
        query = query.filter(User.department == department)
    if grade is not None:
        query = query.filter(User.grade == grade)
    if not include_admins:
        query = query.filter(User.is_admin.is_(False))
    return query.order_by(User.id).all()


def update_user(user_id: int, payload: dict) -> User:
    """
    Admin edit of name, designation, department and grade.

    Role changes go through set_role(); is_admin is accepted here only so
    the self-action guard sees it, and is routed to set_role().
    """
    user = get_user(user_id)
    patch = validate_payload(model=User, payload=payload, policy=USER_UPDATE_POLICY)

    if "is_admin" in patch:
        role = "admin" if patch.pop("is_admin") else "user"
        set_role(user.id, role, grade=patch.get("grade"), department=patch.get("department"), commit=False)

    if "department" in patch:
        if patch["department"] is None:
            if not user.is_admin:
                raise ValidationError("Graded users must belong to a department")
        else:
            patch["department"] = require_department(patch["department"])

    if "grade" in patch:
        if user.is_admin:
            if patch["grade"] is not None:
                raise ValidationError("Admin accounts carry no grade")
        else:
            patch["grade"] = require_grade(patch["grade"])

    for key, value in patch.items():
        setattr(user, key, value)
    user.updated_at = utcnow()

    return _commit_user(user)


def set_role(
    user_id: int,
    role: str,
    *,
    grade=None,
    department: str | None = None,
    commit: bool = True,
) -> User:
    """
    Promote to admin or demote to a graded user.

    Demotion needs a department (from the body or already on the account)
    and defaults the grade to 1.
    """
    role = require_role(role)
    user = get_user(user_id)

    if role == "admin":
        user.is_admin = True
        user.grade = None
        if department:
            user.department = require_department(department)
    else:
        department = require_department(department) if department else user.department
        if not department:
            raise ValidationError("A department is required when demoting an admin")
        user.is_admin = False
        user.department = department
        user.grade = require_grade(grade) if grade is not None else (user.grade or GRADE_EMPLOYEE)

    user.updated_at = utcnow()
    if commit:
        return _commit_user(user)
    return user


def update_profile_picture(user_id: int, url) -> User:
    """Store a profile picture reference. The upload itself happens elsewhere."""
    user = get_user(user_id)
    if url is None or url == "":
        user.profile_picture_url = None
    else:
        url = require_text(url, "profile_picture_url", max_length=512)
        if not url.startswith(PROFILE_PICTURE_PREFIXES):
            raise ValidationError("profile_picture_url must be an http(s) URL or an absolute path")
        user.profile_picture_url = url
    user.updated_at = utcnow()
    return _commit_user(user)


def delete_user(user_id: int, deleted_by_user_id: int) -> dict:
    """
    Hard-delete an account and revoke its external identity.

    Submitted records stay; their owner reference is cleared.
    """
    user = get_user(user_id)
    snapshot = user.to_dict()

    identity_service.revoke_identity(user, revoked_by_user_id=deleted_by_user_id)
    db.session.delete(user)
    db.session.commit()

    return snapshot
