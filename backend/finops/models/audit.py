from __future__ import annotations

from ..extensions import db
from finops.time_utils import to_utc_z


class AuditLogEntry(db.Model):
    """
    One row per authenticated mutating request.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    user_id is kept as a plain integer so entries outlive deleted accounts.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)
    action = db.Column(db.String(512), nullable=False)  # e.g. "PATCH /invoices/42/status"
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action": self.action,
            "created_at": to_utc_z(self.created_at),
        }


class RevokedIdentity(db.Model):
    """
    External identities revoked by an admin account deletion.

    Tokens whose uid claim appears here are rejected even while unexpired.
    """
    __tablename__ = "revoked_identities"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    external_uid = db.Column(db.String(128), nullable=True, index=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)
    revoked_by_user_id = db.Column(db.Integer, nullable=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "external_uid": self.external_uid,
            "user_id": self.user_id,
            "revoked_by_user_id": self.revoked_by_user_id,
            "revoked_at": to_utc_z(self.revoked_at),
        }
