from __future__ import annotations

from ..extensions import db
from finops.time_utils import to_utc_z


RECORD_STATUSES = ("pending", "approved", "rejected")
PROJECT_STATUSES = ("active", "on_hold", "completed")


def _money(cents: int | None) -> float:
    return round((cents or 0) / 100, 2)


class Transaction(db.Model):
    """
    Expense record submitted by an employee or manager.

    IMMUTABLE after creation except for status, which moves from pending to
    approved or rejected exactly once.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_department_status", "department", "status"),
        db.Index("ix_transactions_user_timestamp", "user_id", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(32), nullable=False)
    department = db.Column(db.String(64), nullable=False, index=True)
    justification = db.Column(db.Text, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    reviewed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("transactions", lazy=True))

    @property
    def created_at(self):
        return self.timestamp

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "amount": _money(self.amount_cents),
            "amount_cents": self.amount_cents,
            "category": self.category,
            "department": self.department,
            "justification": self.justification,
            "status": self.status,
            "timestamp": to_utc_z(self.timestamp),
            "reviewed_by_user_id": self.reviewed_by_user_id,
            "reviewed_at": to_utc_z(self.reviewed_at),
        }


class Invoice(db.Model):
    """
    Invoice with commission.

    commission_amount_cents is derived at creation from amount and rate and
    never recomputed.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.Index("ix_invoices_department_status", "department", "status"),
        db.Index("ix_invoices_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(32), nullable=False, unique=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(32), nullable=False)
    department = db.Column(db.String(64), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)

    # Percent, e.g. 5.00
    commission_rate = db.Column(db.Numeric(5, 2), nullable=False, default=5)
    commission_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)

    reviewed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("invoices", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "user_id": self.user_id,
            "amount": _money(self.amount_cents),
            "amount_cents": self.amount_cents,
            "category": self.category,
            "department": self.department,
            "description": self.description,
            "commission_rate": float(self.commission_rate) if self.commission_rate is not None else None,
            "commission_amount": _money(self.commission_amount_cents),
            "commission_amount_cents": self.commission_amount_cents,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "due_date": to_utc_z(self.due_date),
            "reviewed_by_user_id": self.reviewed_by_user_id,
            "reviewed_at": to_utc_z(self.reviewed_at),
        }


class Project(db.Model):
    """Department project, managed by that department's manager."""
    __tablename__ = "projects"
    __table_args__ = (
        db.UniqueConstraint("department", "name", name="uq_projects_department_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    department = db.Column(db.String(64), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    budget_cents = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="active")

    # Projects are department-owned; the creator is attribution only
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "department": self.department,
            "description": self.description,
            "budget": _money(self.budget_cents),
            "budget_cents": self.budget_cents,
            "status": self.status,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class BudgetFigure(db.Model):
    """
    Department budget allocation.

    spent_cents is maintained outside the request path (CLI / finance import);
    remaining is always derived, never stored.
    """
    __tablename__ = "budget_figures"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    department = db.Column(db.String(64), nullable=False, unique=True)
    budget_cents = db.Column(db.Integer, nullable=False, default=0)
    spent_cents = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def remaining_cents(self) -> int:
        return (self.budget_cents or 0) - (self.spent_cents or 0)

    def to_dict(self) -> dict:
        return {
            "department": self.department,
            "budget": _money(self.budget_cents),
            "spent": _money(self.spent_cents),
            "remaining": _money(self.remaining_cents),
            "budget_cents": self.budget_cents,
            "spent_cents": self.spent_cents,
            "remaining_cents": self.remaining_cents,
            "updated_at": to_utc_z(self.updated_at),
        }
