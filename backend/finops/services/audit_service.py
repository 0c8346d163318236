# Overview: Service-layer operations for the audit trail; best-effort request recording and queries.

"""
Audit Recorder

One append-only row per authenticated mutating request:
    {user_id, action = "<METHOD> <path>", created_at}

POLICY: Best-effort. A failed audit write is logged and the primary
response goes out unchanged. Entries are at-most-once and are not part of
the handler's transaction, so a crash between the handler's commit and the
audit write loses the entry. This favors availability over audit
completeness and is a known gap.

The sink is injectable (create_app(audit_sink=...)) so the write path can
be replaced or made to fail in tests.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from flask import current_app

from ..extensions import db
from ..models import AuditLogEntry
from finops.time_utils import utcnow


MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

EXTENSION_KEY = "finops.audit_sink"


class AuditSink(Protocol):
    def write(self, user_id: int, action: str, occurred_at: datetime) -> None:
        ...


class SqlAuditSink:
    """Writes audit rows through the application's SQLAlchemy session."""

    def write(self, user_id: int, action: str, occurred_at: datetime) -> None:
        db.session.add(AuditLogEntry(user_id=user_id, action=action, created_at=occurred_at))
        db.session.commit()


def format_action(method: str, path: str) -> str:
    return f"{method.upper()} {path}"


def get_sink() -> AuditSink:
    return current_app.extensions[EXTENSION_KEY]


def record_request(user_id: int, method: str, path: str) -> bool:
    """
    Append an audit row for a request. Never raises.

    Returns True if the row was written.
    """
    if method.upper() not in MUTATING_METHODS:
        return False

    try:
        get_sink().write(user_id, format_action(method, path), utcnow())
        return True
    except Exception:
        db.session.rollback()
        current_app.logger.exception(
            "Failed to write audit log entry for user %s: %s %s", user_id, method, path
        )
        return False


def list_entries(
    *,
    user_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[AuditLogEntry], int]:
    query = db.session.query(AuditLogEntry)
    if user_id is not None:
        query = query.filter(AuditLogEntry.user_id == user_id)
    if start is not None:
        query = query.filter(AuditLogEntry.created_at >= start)
    if end is not None:
        query = query.filter(AuditLogEntry.created_at <= end)

    total = query.count()
    entries = (
        query.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return entries, total
