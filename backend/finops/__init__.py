# backend/finops/__init__.py
from flask import Flask, request, jsonify, g
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import FinOpsError, DependencyError
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None, audit_sink=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .services import audit_service
    app.extensions[audit_service.EXTENSION_KEY] = audit_sink or audit_service.SqlAuditSink()

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.transactions import transactions_bp
    from .routes.invoices import invoices_bp
    from .routes.projects import projects_bp
    from .routes.reports import reports_bp
    from .routes.users import users_bp
    from .routes.audit import audit_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(audit_bp)

    register_error_handlers(app)

    @app.before_request
    def reset_request_identity():
        # g outlives a request when an app context is already pushed (CLI, tests)
        g.principal = None
        g.access = None
        g.audit_request = False

    @app.after_request
    def record_audit_entry(response):
        # Set by require_access once authorization passed; the handler may still fail
        principal = g.get("principal")
        if principal is not None and g.get("audit_request"):
            audit_service.record_request(principal.id, request.method, request.path)
        return response

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
            response.headers["Access-Control-Expose-Headers"] = "X-Total-Count"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def register_error_handlers(app: Flask) -> None:
    """Convert exceptions into JSON bodies of the shape {error, message, reason?}."""

    @app.errorhandler(FinOpsError)
    def handle_finops_error(exc: FinOpsError):
        db.session.rollback()
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(exc: SQLAlchemyError):
        db.session.rollback()
        app.logger.exception("Database error on %s %s", request.method, request.path)
        error = DependencyError()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.name, "message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal Server Error", "message": "Internal server error"}), 500
