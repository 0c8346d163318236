# Overview: Flask API routes for invoices; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..access import Target
from ..access.evaluator import INVOICES, CREATE, UPDATE_STATUS
from ..decorators import require_auth, require_access
from ..services import invoice_service
from ..validation import get_json_body, optional_status_filter, parse_datetime_param


invoices_bp = Blueprint("invoices", __name__, url_prefix="/invoices")


def _submitted_department() -> Target:
    department = get_json_body().get("department")
    return Target(department=department or None)


@invoices_bp.get("")
@require_auth
@require_access(INVOICES)
def list_invoices():
    """
    Invoices visible to the caller.

    Query params: scope, status, department, start, end (see /transactions).
    """
    invoices = invoice_service.list_invoices(
        g.access.predicate,
        status=optional_status_filter(request.args.get("status")),
        start=parse_datetime_param(request.args.get("start"), "start"),
        end=parse_datetime_param(request.args.get("end"), "end", end_of_day=True),
    )
    return jsonify([inv.to_dict() for inv in invoices]), 200


@invoices_bp.post("")
@require_auth
@require_access(INVOICES, CREATE, target=_submitted_department)
def create_invoice():
    """
    Submit an invoice.

    Request body:
    - amount: number (required, > 0)
    - category: str (required)
    - description: str (required)
    - commission_rate: number percent (optional, default 5.0)
    - due_date: ISO-8601 (optional)
    - department: str (optional, must be the caller's own)
    """
    invoice = invoice_service.create_invoice(g.principal, get_json_body())
    return jsonify({"message": "Invoice created", "invoice": invoice.to_dict()}), 201


@invoices_bp.patch("/<int:invoice_id>/status")
@require_auth
@require_access(INVOICES, UPDATE_STATUS)
def update_invoice_status(invoice_id: int):
    """Approve or reject a pending invoice. Finance heads only."""
    data = get_json_body()
    invoice = invoice_service.update_status(invoice_id, data.get("status"), g.principal)
    return jsonify({"message": f"Invoice {invoice.status}", "invoice": invoice.to_dict()}), 200
