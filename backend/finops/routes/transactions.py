# Overview: Flask API routes for expense transactions; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..access import Target
from ..access.evaluator import TRANSACTIONS, CREATE, UPDATE_STATUS
from ..decorators import require_auth, require_access
from ..services import transaction_service
from ..validation import get_json_body, optional_status_filter, parse_datetime_param


transactions_bp = Blueprint("transactions", __name__, url_prefix="/transactions")


def _submitted_department() -> Target:
    department = get_json_body().get("department")
    return Target(department=department or None)


@transactions_bp.get("")
@require_auth
@require_access(TRANSACTIONS)
def list_transactions():
    """
    Transaction feed for the caller's scope. Admins are blocked.

    Query params:
    - scope: self | department | team | all (default self)
    - status: pending | approved | rejected | all
    - department: narrows scope=all; must match the caller's slice otherwise
    - start, end: ISO-8601 bounds on the transaction timestamp
    """
    transactions = transaction_service.list_transactions(
        g.access.predicate,
        status=optional_status_filter(request.args.get("status")),
        start=parse_datetime_param(request.args.get("start"), "start"),
        end=parse_datetime_param(request.args.get("end"), "end", end_of_day=True),
    )
    return jsonify([t.to_dict() for t in transactions]), 200


@transactions_bp.post("")
@require_auth
@require_access(TRANSACTIONS, CREATE, target=_submitted_department)
def create_transaction():
    """
    Submit an expense.

    Request body:
    - amount: number (required, > 0)
    - category: str (required)
    - justification: str (required)
    - department: str (optional, must be the caller's own)
    """
    transaction = transaction_service.create_transaction(g.principal, get_json_body())
    return jsonify(transaction.to_dict()), 201


@transactions_bp.patch("/<int:transaction_id>/status")
@require_auth
@require_access(TRANSACTIONS, UPDATE_STATUS)
def update_transaction_status(transaction_id: int):
    data = get_json_body()
    transaction = transaction_service.update_status(transaction_id, data.get("status"), g.principal)
    return jsonify({"message": f"Transaction {transaction.status}", "transaction": transaction.to_dict()}), 200
