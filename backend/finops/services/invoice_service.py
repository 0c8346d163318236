# Overview: Service-layer operations for invoices; encapsulates business logic and database work.

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from ..access import Principal, ScopePredicate, apply_scope
from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Invoice
from ..validation import (
    parse_amount_cents,
    parse_commission_rate,
    parse_datetime_param,
    require_category,
    require_record_status,
    require_text,
)
from .concurrency import lock_for_update
from finops.time_utils import utcnow


def compute_commission_cents(amount_cents: int, rate: Decimal) -> int:
    """Commission in cents for a percent rate, rounded half-up."""
    return int((Decimal(amount_cents) * rate / Decimal(100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def generate_invoice_number() -> str:
    return f"INV-{utcnow():%Y%m}-{uuid.uuid4().hex[:8].upper()}"


def list_invoices(
    predicate: ScopePredicate,
    *,
    status: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Invoice]:
    query = apply_scope(
        db.session.query(Invoice),
        Invoice,
        predicate,
        status=status,
        start=start,
        end=end,
    )
    return query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).all()


def create_invoice(principal: Principal, payload: dict) -> Invoice:
    amount_cents = parse_amount_cents(payload.get("amount"))
    rate = parse_commission_rate(payload.get("commission_rate"))

    due_raw = payload.get("due_date") or payload.get("date")
    if due_raw is not None and not isinstance(due_raw, str):
        raise ValidationError("due_date must be an ISO-8601 date or datetime")

    invoice = Invoice(
        invoice_number=generate_invoice_number(),
        user_id=principal.id,
        amount_cents=amount_cents,
        category=require_category(payload.get("category")),
        department=principal.department,
        description=require_text(payload.get("description"), "description"),
        commission_rate=rate,
        commission_amount_cents=compute_commission_cents(amount_cents, rate),
        status="pending",
        created_at=utcnow(),
        due_date=parse_datetime_param(due_raw, "due_date"),
    )
    db.session.add(invoice)
    db.session.commit()
    return invoice


def update_status(invoice_id: int, status, reviewer: Principal) -> Invoice:
    status = require_record_status(status)
    if status == "pending":
        raise ValidationError("status must be approved or rejected")

    invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
    if not invoice:
        raise NotFoundError("Invoice not found")
    if invoice.status != "pending":
        raise ConflictError(f"Invoice already {invoice.status}")

    invoice.status = status
    invoice.reviewed_by_user_id = reviewer.id
    invoice.reviewed_at = utcnow()
    db.session.commit()
    return invoice
