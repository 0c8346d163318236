# Overview: Service-layer operations for expense transactions; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime

from ..access import Principal, ScopePredicate, apply_scope
from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Transaction
from ..validation import parse_amount_cents, require_category, require_record_status, require_text
from .concurrency import lock_for_update
from finops.time_utils import utcnow


def list_transactions(
    predicate: ScopePredicate,
    *,
    status: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Transaction]:
    query = apply_scope(
        db.session.query(Transaction),
        Transaction,
        predicate,
        status=status,
        start=start,
        end=end,
        time_column=Transaction.timestamp,
    )
    return query.order_by(Transaction.timestamp.desc(), Transaction.id.desc()).all()


def create_transaction(principal: Principal, payload: dict) -> Transaction:
    """
    Submit an expense record.

    The department is always the submitter's own; the evaluator has already
    rejected a body naming another one.
    """
    transaction = Transaction(
        user_id=principal.id,
        amount_cents=parse_amount_cents(payload.get("amount")),
        category=require_category(payload.get("category")),
        department=principal.department,
        justification=require_text(payload.get("justification"), "justification"),
        status="pending",
        timestamp=utcnow(),
    )
    db.session.add(transaction)
    db.session.commit()
    return transaction


def update_status(transaction_id: int, status, reviewer: Principal) -> Transaction:
    """
    Decide a pending transaction.

    Only pending -> approved | rejected is allowed; every other field is
    immutable.
    """
    status = require_record_status(status)
    if status == "pending":
        raise ValidationError("status must be approved or rejected")

    transaction = lock_for_update(db.session.query(Transaction).filter_by(id=transaction_id)).first()
    if not transaction:
        raise NotFoundError("Transaction not found")
    if transaction.status != "pending":
        raise ConflictError(f"Transaction already {transaction.status}")

    transaction.status = status
    transaction.reviewed_by_user_id = reviewer.id
    transaction.reviewed_at = utcnow()
    db.session.commit()
    return transaction
