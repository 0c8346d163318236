# Overview: Flask API routes for dashboard reports; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..access.evaluator import BUDGET, COMMISSION, KPI, SUMMARY
from ..decorators import require_auth, require_access
from ..services import budget_service, reporting_service


reports_bp = Blueprint("reports", __name__)


@reports_bp.get("/budget")
@require_auth
@require_access(BUDGET)
def budget_overview():
    report = budget_service.budget_overview(g.access.scope, g.access.predicate)
    return jsonify(report), 200


@reports_bp.get("/commission")
@require_auth
@require_access(COMMISSION)
def commission_report():
    """
    Query params:
    - scope: self | department | team | all
    - range: 3months | 6months | 1year | all (default 6months)
    """
    range_token = reporting_service.parse_range(request.args.get("range"))
    report = reporting_service.commission_report(g.access.predicate, range_token)
    report["scope"] = g.access.scope.value
    return jsonify(report), 200


@reports_bp.get("/kpi")
@require_auth
@require_access(KPI)
def kpi_cards():
    return jsonify(reporting_service.kpi_summary(g.access.scope, g.access.predicate)), 200


@reports_bp.get("/summary")
@require_auth
@require_access(SUMMARY)
def department_summary():
    rows = reporting_service.department_category_summary(g.access.predicate)
    return jsonify(rows), 200
