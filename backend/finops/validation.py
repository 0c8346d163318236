from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from flask import current_app, request
from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .access import GRADES
from .models import RECORD_STATUSES, PROJECT_STATUSES
from finops.time_utils import parse_iso_datetime


# Maximum amount: $99,999,999.99
MAX_AMOUNT_CENTS = 9_999_999_999

CATEGORIES = (
    "travel",
    "office",
    "marketing",
    "software",
    "consulting",
    "training",
    "other",
)

ROLES = ("user", "admin")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """writable_fields: what clients are allowed to set on an update (security boundary)."""
    writable_fields: set[str]


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return int(value.strip())
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
) -> dict:
    """
    Validates + normalizes a partial update against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def get_json_body() -> dict:
    """Request JSON as a dict; anything else is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


def configured_departments() -> tuple[str, ...]:
    return tuple(current_app.config["FINOPS_DEPARTMENTS"])


def _require_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    choices = tuple(choices)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required")
    if not isinstance(value, str) or value.strip() not in choices:
        raise ValidationError(f"Unknown {field} '{value}'. Expected one of: {', '.join(choices)}")
    return value.strip()


def require_department(value: Any, field: str = "department") -> str:
    return _require_choice(value, field, configured_departments())


def optional_department(value: Any) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return require_department(value)


def require_category(value: Any) -> str:
    if isinstance(value, str):
        value = value.strip().lower()
    return _require_choice(value, "category", CATEGORIES)


def require_record_status(value: Any) -> str:
    if isinstance(value, str):
        value = value.strip().lower()
    return _require_choice(value, "status", RECORD_STATUSES)


def optional_status_filter(value: str | None) -> str | None:
    """Status query filter; 'all' and empty mean no filter."""
    if value is None or value.strip() == "" or value.strip().lower() == "all":
        return None
    return require_record_status(value)


def require_project_status(value: Any) -> str:
    return _require_choice(value, "status", PROJECT_STATUSES)


def require_role(value: Any) -> str:
    return _require_choice(value, "role", ROLES)


def require_grade(value: Any) -> int:
    """Accepts 1/2/3 or the dashboard labels "G1"/"G2"/"G3"."""
    if isinstance(value, str):
        stripped = value.strip().upper()
        if stripped.startswith("G"):
            stripped = stripped[1:]
        if not stripped.isdigit():
            raise ValidationError("grade must be 1, 2 or 3")
        value = int(stripped)
    if isinstance(value, bool) or not isinstance(value, int) or value not in GRADES:
        raise ValidationError("grade must be 1, 2 or 3")
    return value


def require_text(value: Any, field: str, max_length: int | None = None) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    text = value.strip()
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def parse_amount_cents(value: Any, field: str = "amount", allow_zero: bool = False) -> int:
    """
    Convert a decimal currency amount (e.g. 125.5 or "125.50") to integer cents.

    Floats go through str() so 0.1 + 0.2 style artifacts never reach the
    rounding step.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")

    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents < 0 or (cents == 0 and not allow_zero):
        raise ValidationError(f"{field} must be greater than 0")
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")
    return cents


def parse_commission_rate(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("5.00")
    if isinstance(value, bool):
        raise ValidationError("commission_rate must be a number")
    try:
        rate = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("commission_rate must be a number")
    if not rate.is_finite() or rate < 0 or rate > 100:
        raise ValidationError("commission_rate must be between 0 and 100")
    return rate.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_datetime_param(value: str | None, field: str, end_of_day: bool = False) -> datetime | None:
    """ISO-8601 query param; a bare date used as an upper bound covers the whole day."""
    if value is None or value.strip() == "":
        return None
    try:
        return parse_iso_datetime(value, end_of_day=end_of_day)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date or datetime")
