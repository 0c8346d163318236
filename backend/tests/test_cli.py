"""
CLI command tests.
"""

from finops.models import BudgetFigure, User
from finops.services import identity_service


def test_system_init_seeds_budget_figures(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0
    assert "PASS System initialization complete" in result.output

    departments = {f.department for f in db_session.query(BudgetFigure).all()}
    assert departments == set(app.config["FINOPS_DEPARTMENTS"])

    # Idempotent
    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0
    assert db_session.query(BudgetFigure).count() == len(app.config["FINOPS_DEPARTMENTS"])


def test_budget_set(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["budget", "set", "--department", "HR", "--budget", "1200.50", "--spent", "200"])
    assert result.exit_code == 0
    assert "remaining 1000.50" in result.output

    figure = db_session.query(BudgetFigure).filter_by(department="HR").one()
    assert figure.budget_cents == 120050
    assert figure.spent_cents == 20000


def test_budget_set_unknown_department(app, db_session):
    result = app.test_cli_runner().invoke(args=["budget", "set", "--department", "Moon", "--budget", "10"])
    assert "FAIL" in result.output
    assert db_session.query(BudgetFigure).count() == 0


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--name", "Bootstrap Admin",
        "--email", "boot@finops.test",
        "--role", "admin",
    ])
    assert result.exit_code == 0
    assert "PASS Created user" in result.output
    assert db_session.query(User).filter_by(email="boot@finops.test").one().is_admin is True

    result = runner.invoke(args=["users", "list"])
    assert "boot@finops.test" in result.output


def test_tokens_issue(app, db_session, manager):
    result = app.test_cli_runner().invoke(args=["tokens", "issue", "--user-id", str(manager.id)])
    assert result.exit_code == 0

    principal = identity_service.verify_token(result.output.strip())
    assert principal.id == manager.id
    assert principal.grade == 2


def test_tokens_issue_unknown_user(app, db_session):
    result = app.test_cli_runner().invoke(args=["tokens", "issue", "--user-id", "424242"])
    assert "FAIL" in result.output
