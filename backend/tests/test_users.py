"""
User administration tests.

Verifies:
- Admin-only CRUD
- Self-action guards on role change and deletion
- Profile picture updates by the account itself
- Registration and /me
"""

import pytest

from finops.models import User, Transaction, RevokedIdentity

from conftest import make_user, headers_for, add_transaction


# =============================================================================
# REGISTRATION
# =============================================================================


class TestRegister:

    def test_register_creates_grade_one_user(self, client, db_session):
        resp = client.post(
            "/register",
            json={"name": "Nia", "email": "Nia@Finops.test", "department": "Planning", "external_uid": "uid-nia"},
        )
        assert resp.status_code == 201

        user = db_session.query(User).filter_by(email="nia@finops.test").one()
        assert user.grade == 1
        assert user.is_admin is False
        assert user.department == "Planning"

    def test_register_ignores_privilege_fields(self, client, db_session):
        resp = client.post(
            "/register",
            json={"name": "Sly", "email": "sly@finops.test", "department": "HR", "is_admin": True, "grade": 3},
        )
        assert resp.status_code == 201
        user = db_session.query(User).filter_by(email="sly@finops.test").one()
        assert user.is_admin is False
        assert user.grade == 1

    def test_duplicate_email(self, client, employee):
        resp = client.post(
            "/register",
            json={"name": "Dup", "email": employee.email, "department": "HR"},
        )
        assert resp.status_code == 409

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "a@finops.test", "department": "HR"},
            {"name": "A", "email": "not-an-email", "department": "HR"},
            {"name": "A", "email": "a@finops.test", "department": "Sales"},
            {"name": "A", "email": "a@finops.test"},
        ],
    )
    def test_invalid_registration(self, client, db_session, payload):
        resp = client.post("/register", json=payload)
        assert resp.status_code == 400

    def test_me(self, client, manager, manager_headers):
        resp = client.get("/me", headers=manager_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["principal"] == {
            "id": manager.id,
            "is_admin": False,
            "grade": 2,
            "department": "Finance",
            "email": manager.email,
        }
        assert body["user"]["email"] == manager.email


# =============================================================================
# ADMIN CRUD
# =============================================================================


class TestAdminUserManagement:

    def test_list_users(self, client, admin_headers, employee, manager):
        resp = client.get("/users", headers=admin_headers)
        assert resp.status_code == 200
        emails = {u["email"] for u in resp.get_json()}
        assert {employee.email, manager.email} <= emails

    def test_list_filters(self, client, admin_headers, employee, manager, hr_employee):
        resp = client.get("/users?department=Finance&grade=2&include_admins=false", headers=admin_headers)
        assert [u["id"] for u in resp.get_json()] == [manager.id]

    def test_create_user(self, client, admin_headers):
        resp = client.post(
            "/users",
            json={"name": "Omar", "email": "omar@finops.test", "grade": "G2", "department": "Data&AI"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        user = resp.get_json()["user"]
        assert user["grade"] == 2
        assert user["role"] == "user"
        assert user["department"] == "Data&AI"

    def test_create_admin_with_grade_rejected(self, client, admin_headers):
        resp = client.post(
            "/users",
            json={"name": "Root", "email": "root@finops.test", "role": "admin", "grade": 3},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_create_duplicate_email(self, client, admin_headers, employee):
        resp = client.post(
            "/users",
            json={"name": "Again", "email": employee.email, "department": "HR"},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_create_unknown_role(self, client, admin_headers):
        resp = client.post(
            "/users",
            json={"name": "X", "email": "x@finops.test", "role": "superuser", "department": "HR"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_get_missing_user(self, client, admin_headers):
        resp = client.get("/users/999999", headers=admin_headers)
        assert resp.status_code == 404

    def test_update_grade_and_department(self, client, admin_headers, employee):
        resp = client.patch(
            f"/users/{employee.id}",
            json={"grade": 2, "department": "Planning", "designation": "Lead analyst"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        user = resp.get_json()["user"]
        assert user["grade"] == 2
        assert user["department"] == "Planning"
        assert user["designation"] == "Lead analyst"

    def test_update_rejects_unknown_field(self, client, admin_headers, employee):
        resp = client.patch(f"/users/{employee.id}", json={"email": "new@finops.test"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_update_is_admin_on_self_forbidden(self, client, admin, admin_headers):
        resp = client.patch(f"/users/{admin.id}", json={"is_admin": False}, headers=admin_headers)
        assert resp.status_code == 403
        assert resp.get_json()["reason"] == "self-action-forbidden"

    def test_admin_may_edit_own_name(self, client, admin, admin_headers):
        resp = client.patch(f"/users/{admin.id}", json={"name": "Renamed"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["name"] == "Renamed"

    def test_promote_other_user(self, client, admin_headers, manager):
        resp = client.patch(f"/users/{manager.id}/role", json={"role": "admin"}, headers=admin_headers)
        assert resp.status_code == 200
        user = resp.get_json()["user"]
        assert user["is_admin"] is True
        assert user["grade"] is None

    def test_demote_admin_needs_department(self, client, db_session, admin_headers):
        other_admin = make_user(db_session, "admin2@finops.test", is_admin=True, department=None)
        resp = client.patch(f"/users/{other_admin.id}/role", json={"role": "user"}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.patch(
            f"/users/{other_admin.id}/role",
            json={"role": "user", "grade": 3, "department": "Finance"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["user"]["grade"] == 3

    @pytest.mark.parametrize("path", ["/users", "/users/1"])
    def test_graded_users_cannot_read(self, client, manager_headers, path):
        resp = client.get(path, headers=manager_headers)
        assert resp.status_code == 403


# =============================================================================
# DELETION
# =============================================================================


class TestDeleteUser:

    def test_delete_own_account_forbidden(self, client, admin, admin_headers):
        resp = client.delete(f"/users/{admin.id}", headers=admin_headers)
        assert resp.status_code == 403
        assert resp.get_json()["reason"] == "self-action-forbidden"

    def test_delete_revokes_identity(self, client, db_session, admin, admin_headers, employee):
        token_headers = headers_for(employee)
        transaction = add_transaction(db_session, employee)

        resp = client.delete(f"/users/{employee.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["email"] == employee.email

        revoked = db_session.query(RevokedIdentity).one()
        assert revoked.external_uid == "uid-employee"
        assert revoked.revoked_by_user_id == admin.id

        # Submitted records survive without an owner
        assert db_session.get(Transaction, transaction.id).user_id is None

        resp = client.get("/transactions", headers=token_headers)
        assert resp.status_code == 401
        assert resp.get_json()["reason"] == "invalid-token"

    def test_non_admin_cannot_delete(self, client, manager_headers, employee):
        resp = client.delete(f"/users/{employee.id}", headers=manager_headers)
        assert resp.status_code == 403
        assert resp.get_json()["reason"] == "insufficient-role"


# =============================================================================
# PROFILE PICTURE
# =============================================================================


class TestProfilePicture:

    def test_update_own_picture(self, client, employee, employee_headers):
        resp = client.patch(
            f"/users/{employee.id}/profile-picture",
            json={"profile_picture_url": "https://cdn.finops.test/p/1.png"},
            headers=employee_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["profile_picture_url"] == "https://cdn.finops.test/p/1.png"

    def test_clear_picture(self, client, employee, employee_headers):
        resp = client.patch(
            f"/users/{employee.id}/profile-picture",
            json={"profile_picture_url": None},
            headers=employee_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["profile_picture_url"] is None

    def test_bad_url(self, client, employee, employee_headers):
        resp = client.patch(
            f"/users/{employee.id}/profile-picture",
            json={"profile_picture_url": "javascript:alert(1)"},
            headers=employee_headers,
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize("headers_fixture", ["admin_headers", "manager_headers"])
    def test_cannot_update_someone_else(self, request, client, employee, headers_fixture):
        resp = client.patch(
            f"/users/{employee.id}/profile-picture",
            json={"profile_picture_url": "/static/x.png"},
            headers=request.getfixturevalue(headers_fixture),
        )
        assert resp.status_code == 403
