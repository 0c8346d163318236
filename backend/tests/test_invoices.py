"""
Invoice endpoint tests.
"""

from decimal import Decimal

import pytest

from finops.services import invoice_service
from finops.services.concurrency import lock_for_update
from finops.services.invoice_service import compute_commission_cents, generate_invoice_number

from conftest import add_invoice


class TestCommissionMath:

    @pytest.mark.parametrize(
        "amount_cents,rate,expected",
        [
            (100000, Decimal("5.00"), 5000),
            (12345, Decimal("5.00"), 617),   # 617.25
            (10, Decimal("5.00"), 1),        # 0.5 rounds half-up
            (99999, Decimal("0.00"), 0),
            (250000, Decimal("12.50"), 31250),
        ],
    )
    def test_compute_commission_cents(self, amount_cents, rate, expected):
        assert compute_commission_cents(amount_cents, rate) == expected

    def test_invoice_number_format(self, app):
        number = generate_invoice_number()
        assert number.startswith("INV-")
        prefix, month, suffix = number.split("-")
        assert len(month) == 6 and month.isdigit()
        assert len(suffix) == 8


class TestCreateInvoice:

    def test_manager_creates_with_default_rate(self, client, manager, manager_headers):
        resp = client.post(
            "/invoices",
            json={"amount": 2000, "category": "consulting", "description": "Q3 audit support"},
            headers=manager_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["message"] == "Invoice created"
        invoice = body["invoice"]
        assert invoice["commission_rate"] == 5.0
        assert invoice["commission_amount_cents"] == 10000
        assert invoice["department"] == manager.department
        assert invoice["status"] == "pending"
        assert invoice["invoice_number"].startswith("INV-")

    def test_custom_rate_and_due_date(self, client, employee_headers):
        resp = client.post(
            "/invoices",
            json={
                "amount": "1000",
                "category": "software",
                "description": "Licences",
                "commission_rate": 7.5,
                "due_date": "2026-12-01",
            },
            headers=employee_headers,
        )
        assert resp.status_code == 201
        invoice = resp.get_json()["invoice"]
        assert invoice["commission_amount_cents"] == 7500
        assert invoice["due_date"] == "2026-12-01T00:00:00Z"

    @pytest.mark.parametrize("rate", [-1, 101, "lots"])
    def test_invalid_rate(self, client, employee_headers, rate):
        resp = client.post(
            "/invoices",
            json={"amount": 10, "category": "other", "description": "x", "commission_rate": rate},
            headers=employee_headers,
        )
        assert resp.status_code == 400

    def test_admin_cannot_create(self, client, admin_headers):
        resp = client.post(
            "/invoices",
            json={"amount": 10, "category": "other", "description": "x"},
            headers=admin_headers,
        )
        assert resp.status_code == 403
        assert resp.get_json()["reason"] == "insufficient-role"


class TestListInvoices:

    def test_hr_employee_never_sees_finance_rows(self, client, hr_employee, hr_employee_headers, ledger):
        resp = client.get("/invoices", headers=hr_employee_headers)
        assert resp.status_code == 200
        rows = resp.get_json()
        assert len(rows) == 1
        assert rows[0]["user_id"] == hr_employee.id

    def test_hr_manager_department_scope(self, client, hr_manager_headers, ledger):
        resp = client.get("/invoices?scope=team", headers=hr_manager_headers)
        assert resp.status_code == 200
        assert {row["department"] for row in resp.get_json()} == {"HR"}

    def test_status_filter_within_scope(self, client, db_session, manager, manager_headers, hr_manager):
        add_invoice(db_session, manager, number="INV-A", status="approved")
        add_invoice(db_session, manager, number="INV-B", status="pending")
        add_invoice(db_session, hr_manager, number="INV-C", status="approved")

        resp = client.get("/invoices?scope=department&status=approved", headers=manager_headers)
        assert [row["invoice_number"] for row in resp.get_json()] == ["INV-A"]


class TestInvoiceStatus:

    def test_reject(self, client, db_session, employee, finance_head_headers):
        invoice = add_invoice(db_session, employee, number="INV-R")
        resp = client.patch(f"/invoices/{invoice.id}/status", json={"status": "rejected"}, headers=finance_head_headers)
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Invoice rejected"

    def test_already_decided(self, client, db_session, employee, finance_head_headers):
        invoice = add_invoice(db_session, employee, number="INV-D", status="approved")
        resp = client.patch(f"/invoices/{invoice.id}/status", json={"status": "rejected"}, headers=finance_head_headers)
        assert resp.status_code == 409

    def test_unknown_status(self, client, db_session, employee, finance_head_headers):
        invoice = add_invoice(db_session, employee, number="INV-U")
        resp = client.patch(f"/invoices/{invoice.id}/status", json={"status": "paid"}, headers=finance_head_headers)
        assert resp.status_code == 400

    def test_status_change_locks_the_row(self, client, db_session, employee, finance_head_headers, monkeypatch):
        calls = []

        def spy(query):
            calls.append(query)
            return lock_for_update(query)

        monkeypatch.setattr(invoice_service, "lock_for_update", spy)
        invoice = add_invoice(db_session, employee, number="INV-L")

        resp = client.patch(f"/invoices/{invoice.id}/status", json={"status": "approved"}, headers=finance_head_headers)
        assert resp.status_code == 200
        assert len(calls) == 1
