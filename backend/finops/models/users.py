from __future__ import annotations

from ..extensions import db
from finops.time_utils import to_utc_z


class User(db.Model):
    """
    User accounts for attribution and access decisions.

    Authorization axes:
    - is_admin: account administration; blocked from employee data views
    - grade: 1 employee, 2 manager, 3 finance head (None for admins)
    - department: one of the configured departments

    Credentials live with the external identity provider; external_uid
    links the account to it.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_department_grade", "department", "grade"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    grade = db.Column(db.Integer, nullable=True)
    department = db.Column(db.String(64), nullable=True, index=True)
    designation = db.Column(db.String(128), nullable=True)

    profile_picture_url = db.Column(db.String(512), nullable=True)
    external_uid = db.Column(db.String(128), nullable=True, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "is_admin": self.is_admin,
            "role": "admin" if self.is_admin else "user",
            "grade": self.grade,
            "department": self.department,
            "designation": self.designation,
            "profile_picture_url": self.profile_picture_url,
            "external_uid": self.external_uid,
            "created_at": to_utc_z(self.created_at),
        }
