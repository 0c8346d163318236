# Overview: Flask API routes for the audit trail; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..access.evaluator import AUDIT_LOGS
from ..decorators import require_auth, require_access
from ..errors import ValidationError
from ..services import audit_service
from ..validation import parse_datetime_param


audit_bp = Blueprint("audit", __name__, url_prefix="/audit-logs")

MAX_PAGE_SIZE = 500


@audit_bp.get("")
@require_auth
@require_access(AUDIT_LOGS)
def list_audit_logs():
    """
    Newest first. Admins only.

    Query params:
    - user_id: int
    - start, end: ISO-8601 bounds
    - limit: int (default 100, max 500)
    - offset: int (default 0)

    The total row count is returned in the X-Total-Count header.
    """
    limit = request.args.get("limit", 100, type=int)
    offset = request.args.get("offset", 0, type=int)
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if offset < 0:
        raise ValidationError("offset must be >= 0")

    entries, total = audit_service.list_entries(
        user_id=request.args.get("user_id", type=int),
        start=parse_datetime_param(request.args.get("start"), "start"),
        end=parse_datetime_param(request.args.get("end"), "end", end_of_day=True),
        limit=limit,
        offset=offset,
    )
    response = jsonify([entry.to_dict() for entry in entries])
    response.headers["X-Total-Count"] = str(total)
    return response, 200
