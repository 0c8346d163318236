# Overview: Service-layer operations for dashboard reports; encapsulates aggregation over scoped queries.

"""
Dashboard reports: commission, KPI cards and department/category summary.

Every report starts from a scoped query (apply_scope), so a report can
never aggregate rows outside the caller's authorized slice. Dashboard
payloads keep the camelCase keys the client reads.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import timedelta

from sqlalchemy import func

from ..access import Scope, ScopePredicate, apply_scope
from ..errors import ValidationError
from ..extensions import db
from ..models import Invoice, Transaction, User
from finops.time_utils import lookback_start, month_key


# Dashboard range tokens -> lookback window (None = all time)
COMMISSION_RANGES = {
    "3months": timedelta(days=90),
    "6months": timedelta(days=182),
    "1year": timedelta(days=365),
    "all": None,
}

TOP_PERFORMER_LIMIT = 5


def _money(cents: int) -> float:
    return round((cents or 0) / 100, 2)


def parse_range(value: str | None) -> str:
    token = (value or "6months").strip().lower()
    if token not in COMMISSION_RANGES:
        raise ValidationError(
            f"Unknown range '{value}'. Expected one of: {', '.join(COMMISSION_RANGES)}"
        )
    return token


def commission_report(predicate: ScopePredicate, range_token: str = "6months") -> dict:
    """
    Revenue and commission from approved invoices in the caller's slice.

    monthlyData is bucketed by calendar month of invoice creation.
    """
    start = lookback_start(COMMISSION_RANGES[range_token])

    invoices = apply_scope(
        db.session.query(Invoice),
        Invoice,
        predicate,
        status="approved",
        start=start,
    ).order_by(Invoice.created_at).all()

    revenue_cents = sum(inv.amount_cents for inv in invoices)
    commission_cents = sum(inv.commission_amount_cents for inv in invoices)
    avg_rate = (
        round(sum(float(inv.commission_rate) for inv in invoices) / len(invoices), 2)
        if invoices else 0.0
    )

    monthly: dict[str, dict] = {}
    per_user: dict[int, dict] = defaultdict(lambda: {"revenue": 0, "commission": 0, "invoices": 0})
    for inv in invoices:
        bucket = monthly.setdefault(month_key(inv.created_at), {"revenue": 0, "commission": 0})
        bucket["revenue"] += inv.amount_cents
        bucket["commission"] += inv.commission_amount_cents
        if inv.user_id is not None:
            row = per_user[inv.user_id]
            row["revenue"] += inv.amount_cents
            row["commission"] += inv.commission_amount_cents
            row["invoices"] += 1

    ranked = sorted(per_user.items(), key=lambda item: item[1]["commission"], reverse=True)[:TOP_PERFORMER_LIMIT]
    names = {}
    if ranked:
        ids = [user_id for user_id, _ in ranked]
        names = {u.id: u.name for u in db.session.query(User).filter(User.id.in_(ids)).all()}

    return {
        "range": range_token,
        "totalRevenue": _money(revenue_cents),
        "totalCommission": _money(commission_cents),
        "avgCommissionRate": avg_rate,
        "invoiceCount": len(invoices),
        "topPerformers": [
            {
                "user_id": user_id,
                "name": names.get(user_id),
                "revenue": _money(row["revenue"]),
                "commission": _money(row["commission"]),
                "invoices": row["invoices"],
            }
            for user_id, row in ranked
        ],
        "monthlyData": [
            {"month": month, "revenue": _money(row["revenue"]), "commission": _money(row["commission"])}
            for month, row in sorted(monthly.items())
        ],
    }


def kpi_summary(scope: Scope, predicate: ScopePredicate) -> dict:
    base = apply_scope(db.session.query(Invoice), Invoice, predicate)

    totals = base.with_entities(
        func.count(Invoice.id),
        func.coalesce(func.sum(Invoice.amount_cents), 0),
        func.coalesce(func.sum(Invoice.commission_amount_cents), 0),
    ).one()
    pending = base.filter(Invoice.status == "pending").count()

    result = {
        "scope": scope.value,
        "totalInvoices": int(totals[0] or 0),
        "totalAmount": _money(int(totals[1] or 0)),
        "totalCommission": _money(int(totals[2] or 0)),
        "pendingInvoices": pending,
    }
    if scope is Scope.ALL:
        result["totalUsers"] = db.session.query(User).filter(User.is_admin.is_(False)).count()
    return result


def department_category_summary(predicate: ScopePredicate) -> list[dict]:
    """Transaction totals grouped by department and category."""
    query = apply_scope(
        db.session.query(
            Transaction.department,
            Transaction.category,
            func.count(Transaction.id).label("count"),
            func.coalesce(func.sum(Transaction.amount_cents), 0).label("total_cents"),
        ),
        Transaction,
        predicate,
    )
    rows = (
        query.group_by(Transaction.department, Transaction.category)
        .order_by(Transaction.department, Transaction.category)
        .all()
    )
    return [
        {
            "department": row.department,
            "category": row.category,
            "count": int(row.count or 0),
            "total": _money(int(row.total_cents or 0)),
            "total_cents": int(row.total_cents or 0),
        }
        for row in rows
    ]
