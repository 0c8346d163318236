"""
Transaction endpoint tests.

Verifies:
- Submission by grade 1/2 into the caller's own department
- Scoped listing and filters
- One-way status transitions by finance heads
"""

from datetime import datetime

import pytest
from sqlalchemy.dialects import postgresql

from finops.models import Transaction
from finops.services import transaction_service
from finops.services.concurrency import lock_for_update

from conftest import add_transaction


# =============================================================================
# SUBMISSION
# =============================================================================


class TestCreateTransaction:

    def test_employee_submits(self, client, employee, employee_headers):
        resp = client.post(
            "/transactions",
            json={"amount": "125.50", "category": "Travel", "justification": "Train to client"},
            headers=employee_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["amount_cents"] == 12550
        assert body["category"] == "travel"
        assert body["department"] == "Finance"
        assert body["status"] == "pending"
        assert body["user_id"] == employee.id

    def test_body_department_must_match(self, client, employee_headers):
        resp = client.post(
            "/transactions",
            json={"amount": 10, "category": "office", "justification": "Pens", "department": "HR"},
            headers=employee_headers,
        )
        assert resp.status_code == 403
        assert resp.get_json()["reason"] == "scope-mismatch"

    def test_finance_head_cannot_submit(self, client, finance_head_headers):
        resp = client.post(
            "/transactions",
            json={"amount": 10, "category": "office", "justification": "Pens"},
            headers=finance_head_headers,
        )
        assert resp.status_code == 403
        assert resp.get_json()["reason"] == "insufficient-grade"

    @pytest.mark.parametrize(
        "payload",
        [
            {"category": "office", "justification": "x"},
            {"amount": 0, "category": "office", "justification": "x"},
            {"amount": -5, "category": "office", "justification": "x"},
            {"amount": "abc", "category": "office", "justification": "x"},
            {"amount": 5, "category": "yachts", "justification": "x"},
            {"amount": 5, "category": "office"},
            {"amount": 5, "category": "office", "justification": "   "},
        ],
    )
    def test_invalid_payload(self, client, employee_headers, payload):
        resp = client.post("/transactions", json=payload, headers=employee_headers)
        assert resp.status_code == 400

    def test_non_object_body(self, client, employee_headers):
        resp = client.post("/transactions", json=[1, 2], headers=employee_headers)
        assert resp.status_code == 400


# =============================================================================
# LISTING
# =============================================================================


class TestListTransactions:

    def test_self_scope_returns_own_rows(self, client, employee, employee_headers, ledger):
        resp = client.get("/transactions", headers=employee_headers)
        assert resp.status_code == 200
        assert {row["user_id"] for row in resp.get_json()} == {employee.id}

    def test_manager_department_scope(self, client, manager_headers, ledger, employee, manager):
        resp = client.get("/transactions?scope=department", headers=manager_headers)
        assert resp.status_code == 200
        assert {row["user_id"] for row in resp.get_json()} == {employee.id, manager.id}

    def test_finance_head_all_scope(self, client, finance_head_headers, ledger):
        resp = client.get("/transactions?scope=all", headers=finance_head_headers)
        assert resp.status_code == 200
        assert len(resp.get_json()) == 3

    def test_status_filter(self, client, db_session, employee, employee_headers):
        add_transaction(db_session, employee, status="pending")
        add_transaction(db_session, employee, status="approved")

        resp = client.get("/transactions?status=approved", headers=employee_headers)
        assert [row["status"] for row in resp.get_json()] == ["approved"]

        resp = client.get("/transactions?status=all", headers=employee_headers)
        assert len(resp.get_json()) == 2

    def test_date_filter(self, client, db_session, employee, employee_headers):
        add_transaction(db_session, employee, timestamp=datetime(2024, 1, 10))
        add_transaction(db_session, employee, timestamp=datetime(2024, 5, 10))

        resp = client.get("/transactions?start=2024-03-01&end=2024-12-31", headers=employee_headers)
        rows = resp.get_json()
        assert len(rows) == 1
        assert rows[0]["timestamp"].startswith("2024-05-10")

    def test_bad_status_filter(self, client, employee_headers):
        resp = client.get("/transactions?status=lost", headers=employee_headers)
        assert resp.status_code == 400

    def test_bad_date(self, client, employee_headers):
        resp = client.get("/transactions?start=yesterday", headers=employee_headers)
        assert resp.status_code == 400


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================


class TestTransactionStatus:

    def test_finance_head_approves(self, client, db_session, employee, finance_head, finance_head_headers):
        transaction = add_transaction(db_session, employee)

        resp = client.patch(
            f"/transactions/{transaction.id}/status",
            json={"status": "approved"},
            headers=finance_head_headers,
        )
        assert resp.status_code == 200
        body = resp.get_json()["transaction"]
        assert body["status"] == "approved"
        assert body["reviewed_by_user_id"] == finance_head.id
        assert body["reviewed_at"] is not None

    def test_second_transition_conflicts(self, client, db_session, employee, finance_head_headers):
        transaction = add_transaction(db_session, employee, status="rejected")

        resp = client.patch(
            f"/transactions/{transaction.id}/status",
            json={"status": "approved"},
            headers=finance_head_headers,
        )
        assert resp.status_code == 409
        assert db_session.get(Transaction, transaction.id).status == "rejected"

    def test_back_to_pending_is_invalid(self, client, db_session, employee, finance_head_headers):
        transaction = add_transaction(db_session, employee)
        resp = client.patch(
            f"/transactions/{transaction.id}/status",
            json={"status": "pending"},
            headers=finance_head_headers,
        )
        assert resp.status_code == 400

    def test_missing_transaction(self, client, finance_head_headers):
        resp = client.patch("/transactions/9999/status", json={"status": "approved"}, headers=finance_head_headers)
        assert resp.status_code == 404

    @pytest.mark.parametrize("headers_fixture", ["employee_headers", "manager_headers", "admin_headers"])
    def test_other_callers_denied(self, request, client, db_session, employee, headers_fixture):
        transaction = add_transaction(db_session, employee)
        headers = request.getfixturevalue(headers_fixture)
        resp = client.patch(
            f"/transactions/{transaction.id}/status",
            json={"status": "approved"},
            headers=headers,
        )
        assert resp.status_code == 403

    def test_status_change_locks_the_row(self, client, db_session, employee, finance_head_headers, monkeypatch):
        locked = []

        def spy(query):
            query = lock_for_update(query)
            locked.append(str(query.statement.compile(dialect=postgresql.dialect())))
            return query

        monkeypatch.setattr(transaction_service, "lock_for_update", spy)
        transaction = add_transaction(db_session, employee)

        resp = client.patch(
            f"/transactions/{transaction.id}/status",
            json={"status": "approved"},
            headers=finance_head_headers,
        )
        assert resp.status_code == 200
        assert len(locked) == 1
        assert "FOR UPDATE" in locked[0]
