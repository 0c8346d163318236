"""
Pytest fixtures for FinOps backend tests.

Provides test database setup, users per grade plus an admin, bearer-token
headers and the test client.
"""

import pytest

from finops import create_app
from finops.extensions import db
from finops.models import User, Transaction, Invoice, BudgetFigure, Project
from finops.services import identity_service
from finops.time_utils import utcnow


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'JWT_SECRET': 'test-jwt-secret-at-least-32-bytes-long',
    'FINOPS_DEPARTMENTS': ('Finance', 'HR', 'Digital Transformation', 'Planning', 'Data&AI'),
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(db_session, email, *, grade=1, department='Finance', is_admin=False, name=None, external_uid=None):
    user = User(
        name=name or email.split('@')[0].title(),
        email=email,
        is_admin=is_admin,
        grade=None if is_admin else grade,
        department=department,
        external_uid=external_uid,
        created_at=utcnow(),
    )
    db_session.add(user)
    db_session.commit()
    return user


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user) -> dict:
    return auth_headers(identity_service.issue_token(user))


# =============================================================================
# USERS
# =============================================================================


@pytest.fixture(scope='function')
def admin(db_session):
    return make_user(db_session, 'admin@finops.test', is_admin=True, department=None, external_uid='uid-admin')


@pytest.fixture(scope='function')
def employee(db_session):
    """Grade 1, Finance."""
    return make_user(db_session, 'employee@finops.test', grade=1, external_uid='uid-employee')


@pytest.fixture(scope='function')
def manager(db_session):
    """Grade 2, Finance."""
    return make_user(db_session, 'manager@finops.test', grade=2, external_uid='uid-manager')


@pytest.fixture(scope='function')
def finance_head(db_session):
    """Grade 3, Finance."""
    return make_user(db_session, 'head@finops.test', grade=3, external_uid='uid-head')


@pytest.fixture(scope='function')
def hr_employee(db_session):
    """Grade 1, HR."""
    return make_user(db_session, 'hr.employee@finops.test', grade=1, department='HR')


@pytest.fixture(scope='function')
def hr_manager(db_session):
    """Grade 2, HR."""
    return make_user(db_session, 'hr.manager@finops.test', grade=2, department='HR')


@pytest.fixture
def admin_headers(admin):
    return headers_for(admin)


@pytest.fixture
def employee_headers(employee):
    return headers_for(employee)


@pytest.fixture
def manager_headers(manager):
    return headers_for(manager)


@pytest.fixture
def finance_head_headers(finance_head):
    return headers_for(finance_head)


@pytest.fixture
def hr_employee_headers(hr_employee):
    return headers_for(hr_employee)


@pytest.fixture
def hr_manager_headers(hr_manager):
    return headers_for(hr_manager)


# =============================================================================
# RECORDS
# =============================================================================


def add_transaction(db_session, user, *, amount_cents=10000, category='travel', status='pending', timestamp=None):
    transaction = Transaction(
        user_id=user.id,
        amount_cents=amount_cents,
        category=category,
        department=user.department,
        justification='Client visit',
        status=status,
        timestamp=timestamp or utcnow(),
    )
    db_session.add(transaction)
    db_session.commit()
    return transaction


def add_invoice(
    db_session,
    user,
    *,
    number,
    amount_cents=100000,
    commission_rate=5,
    status='pending',
    created_at=None,
    category='consulting',
):
    invoice = Invoice(
        invoice_number=number,
        user_id=user.id,
        amount_cents=amount_cents,
        category=category,
        department=user.department,
        description='Advisory work',
        commission_rate=commission_rate,
        commission_amount_cents=round(amount_cents * commission_rate / 100),
        status=status,
        created_at=created_at or utcnow(),
    )
    db_session.add(invoice)
    db_session.commit()
    return invoice


def add_budget(db_session, department, budget_cents, spent_cents=0):
    figure = BudgetFigure(department=department, budget_cents=budget_cents, spent_cents=spent_cents)
    db_session.add(figure)
    db_session.commit()
    return figure


def add_project(db_session, department, name, *, budget_cents=0, status='active'):
    project = Project(name=name, department=department, budget_cents=budget_cents, status=status, created_at=utcnow())
    db_session.add(project)
    db_session.commit()
    return project


@pytest.fixture
def ledger(db_session, employee, manager, hr_employee):
    """
    Two Finance users and one HR user, each with one transaction and one invoice.
    """
    rows = {}
    for user, prefix in ((employee, 'FIN-E'), (manager, 'FIN-M'), (hr_employee, 'HR-E')):
        rows[user.id] = {
            'transaction': add_transaction(db_session, user),
            'invoice': add_invoice(db_session, user, number=f'INV-{prefix}'),
        }
    return rows
