# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/finops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and one budget figure per configured department.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--department Finance]
#   List all users with role, grade and department.
# - python -m flask users create --name "Ada" --email ada@example.com --role admin
#   Create a user (grade and department are required for graded users).
#
# Local development tokens (stand-in for the identity provider):
# - python -m flask tokens issue --user-id 1 [--ttl-minutes 120]
#   Print a signed bearer token for an existing user.
#
# Budget figures:
# - python -m flask budget set --department Finance --budget 250000 [--spent 1200.50]
#   Create or update a department's budget and spent figures.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import FinOpsError
from .extensions import db
from .models import BudgetFigure, User
from .services import budget_service, identity_service, user_service
from .validation import parse_amount_cents, require_department


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables and seed a zero budget figure for each configured department.

    Existing figures are left untouched.
    """
    click.echo("START Initializing FinOps backend...")
    db.create_all()
    click.echo("PASS Tables created")

    for department in current_app.config["FINOPS_DEPARTMENTS"]:
        existing = db.session.query(BudgetFigure).filter_by(department=department).first()
        if existing:
            click.echo(f"PASS Budget figure exists: {department}")
            continue
        budget_service.set_budget(department, 0, 0)
        click.echo(f"PASS Created budget figure: {department}")

    click.echo("PASS System initialization complete")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--role', type=click.Choice(['admin', 'user']), default='user', show_default=True, help='Role')
@click.option('--grade', type=click.IntRange(1, 3), help='Grade for non-admin users (1-3)')
@click.option('--department', help='Department (required for non-admin users)')
@click.option('--designation', help='Job title')
@click.option('--external-uid', help='Identity provider uid')
@with_appcontext
def create_user_cli(name, email, role, grade, department, designation, external_uid):
    """Create a user account. The first admin is usually created this way."""
    try:
        user = user_service.create_user(
            name,
            email,
            role=role,
            grade=grade,
            department=department,
            designation=designation,
            external_uid=external_uid,
        )
    except FinOpsError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")
        return

    click.echo(f"PASS Created user: {user.name} ({user.email}) with role '{role}'")
    click.echo(f"     User ID: {user.id}")
    if not user.is_admin:
        click.echo(f"     Grade: {user.grade}, Department: {user.department}")


@users_group.command('list')
@click.option('--department', help='Filter by department')
@with_appcontext
def list_users(department):
    """List all users with role, grade and department."""
    query = db.session.query(User)
    if department:
        query = query.filter_by(department=department)

    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<32} {'Role':<7} {'Grade':<6} {'Department'}")
    click.echo("="*100)

    for user in users:
        role = "admin" if user.is_admin else "user"
        grade = str(user.grade) if user.grade is not None else "-"
        click.echo(
            f"{user.id:<5} {user.name:<20} {user.email:<32} {role:<7} {grade:<6} {user.department or '-'}"
        )

    click.echo("="*100 + "\n")


@click.group('tokens')
def tokens_group():
    """Development bearer tokens."""


@tokens_group.command('issue')
@click.option('--user-id', type=int, required=True, help='User ID')
@click.option('--ttl-minutes', type=int, help='Lifetime in minutes (defaults to JWT_ACCESS_TTL_MINUTES)')
@with_appcontext
def issue_token_cli(user_id, ttl_minutes):
    """
    Print a signed access token for an existing user.

    SECURITY: Uses the configured shared secret. Local development only.
    """
    user = db.session.get(User, user_id)
    if not user:
        click.echo(f"FAIL User ID {user_id} not found")
        return

    click.echo(identity_service.issue_token(user, ttl_minutes=ttl_minutes))


@click.group('budget')
def budget_group():
    """Department budget figures."""


@budget_group.command('set')
@click.option('--department', required=True, help='Department name')
@click.option('--budget', 'budget_amount', required=True, help='Budget amount (e.g. 250000 or 1200.50)')
@click.option('--spent', 'spent_amount', help='Spent amount (left unchanged if omitted)')
@with_appcontext
def set_budget_cli(department, budget_amount, spent_amount):
    """Create or update a department budget figure."""
    try:
        department = require_department(department)
        budget_cents = parse_amount_cents(budget_amount, "budget", allow_zero=True)
        spent_cents = (
            parse_amount_cents(spent_amount, "spent", allow_zero=True)
            if spent_amount is not None else None
        )
        figure = budget_service.set_budget(department, budget_cents, spent_cents)
    except FinOpsError as e:
        click.echo(f"FAIL {e.message}")
        return

    data = figure.to_dict()
    click.echo(
        f"PASS {figure.department}: budget {data['budget']:.2f}, "
        f"spent {data['spent']:.2f}, remaining {data['remaining']:.2f}"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(tokens_group)
    app.cli.add_command(budget_group)
