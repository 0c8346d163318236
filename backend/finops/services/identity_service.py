# Overview: Service-layer operations for identity; verifies bearer tokens and builds principals.

"""
Identity verification at the trust boundary

WHY: Every request is attributed to exactly one principal. Tokens are
issued by the external identity provider and signed with a shared secret
(HS256); this service only verifies them.

Role representations seen in the wild are folded into one shape here and
nowhere else:
- {"role": "admin" | "user"}
- {"is_admin": true, "grade": 2}
- {"grade": "G1" | "G2" | "G3"}

SECURITY NOTES:
- Signature, expiry and subject are required
- A token whose external uid was revoked (account deleted) is rejected
- A token whose subject no longer exists is rejected
- Tokens are never logged
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import jwt
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..access import Principal, GRADES, INVALID_TOKEN
from ..errors import AuthenticationError, DependencyError
from ..extensions import db
from ..models import User, RevokedIdentity
from finops.time_utils import utcnow


TOKEN_TYPE_ACCESS = "access"


def _coerce_grade(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        label = raw.strip().upper()
        if label.startswith("G"):
            label = label[1:]
        if not label.isdigit():
            return None
        raw = int(label)
    if isinstance(raw, int) and raw in GRADES:
        return raw
    return None


def _coerce_admin(claims: dict) -> bool:
    if "is_admin" in claims:
        value = claims["is_admin"]
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes")
        return bool(value)
    return str(claims.get("role", "")).strip().lower() == "admin"


def normalize_claims(claims: dict) -> Principal:
    """
    Build a Principal from verified token claims.

    Raises AuthenticationError if the subject is missing or not an integer id.
    A non-admin without a usable grade still gets a Principal (grade=None);
    the evaluator denies it rather than defaulting a grade.
    """
    raw_subject = claims.get("sub", claims.get("id"))
    try:
        user_id = int(raw_subject)
    except (TypeError, ValueError):
        raise AuthenticationError("Token subject is not a user id", reason=INVALID_TOKEN)

    is_admin = _coerce_admin(claims)
    department = claims.get("department") or None

    return Principal(
        id=user_id,
        is_admin=is_admin,
        grade=None if is_admin else _coerce_grade(claims.get("grade")),
        department=department,
        email=claims.get("email"),
    )


def issue_token(user: User, ttl_minutes: int | None = None) -> str:
    """
    Mint an access token for a user with the configured shared secret.

    Stands in for the identity provider in local development (CLI) and tests.
    """
    if ttl_minutes is None:
        ttl_minutes = current_app.config["JWT_ACCESS_TTL_MINUTES"]
    now = utcnow()
    claims = {
        "sub": str(user.id),
        "uid": user.external_uid,
        "email": user.email,
        "is_admin": bool(user.is_admin),
        "grade": user.grade,
        "department": user.department,
        "typ": TOKEN_TYPE_ACCESS,
        "iat": now,
        "exp": now + timedelta(minutes=ttl_minutes),
    }
    return jwt.encode(
        claims,
        current_app.config["JWT_SECRET"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired", reason=INVALID_TOKEN)
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token", reason=INVALID_TOKEN)


def verify_token(token: str) -> Principal:
    """
    Verify a bearer token and return the caller's Principal.

    Raises AuthenticationError for bad, expired or revoked tokens and
    DependencyError when the store cannot be reached.
    """
    claims = decode_token(token)
    typ = claims.get("typ")
    if typ is not None and typ != TOKEN_TYPE_ACCESS:
        raise AuthenticationError("Wrong token type", reason=INVALID_TOKEN)

    principal = normalize_claims(claims)

    try:
        uid = claims.get("uid")
        if uid and db.session.query(RevokedIdentity.id).filter_by(external_uid=uid).first():
            raise AuthenticationError("Identity has been revoked", reason=INVALID_TOKEN)

        exists = db.session.query(User.id).filter_by(id=principal.id).first()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Identity lookup failed")
        raise DependencyError()

    if not exists:
        raise AuthenticationError("Account no longer exists", reason=INVALID_TOKEN)

    return principal


def revoke_identity(user: User, revoked_by_user_id: int | None) -> RevokedIdentity:
    """
    Record that a user's external identity is revoked.

    Does not commit; the caller's unit of work (account deletion) does.
    """
    record = RevokedIdentity(
        external_uid=user.external_uid,
        user_id=user.id,
        revoked_by_user_id=revoked_by_user_id,
        revoked_at=utcnow(),
    )
    db.session.add(record)
    return record
