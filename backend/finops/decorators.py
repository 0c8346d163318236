# Overview: Request authentication and access decorators for API routes.

from functools import wraps
from typing import Callable, Optional

from flask import request, g, current_app

from .access import (
    Allowed,
    Target,
    evaluate,
    narrow,
    parse_scope,
    NO_TOKEN,
)
from .access.evaluator import READ, SCOPED_RESOURCES
from .errors import AuthenticationError, AuthorizationError, ValidationError
from .services import identity_service
from .validation import optional_department


def _is_authenticated() -> bool:
    return g.get("principal") is not None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets:
    - g.principal: the normalized caller (id, is_admin, grade, department)

    Raises AuthenticationError (401) if:
    - No Authorization header or not a Bearer token
    - Invalid, expired or revoked token
    - The account behind the token no longer exists
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            raise AuthenticationError("Authentication required", reason=NO_TOKEN)

        token = auth_header.split(" ", 1)[1].strip()
        if not token:
            raise AuthenticationError("Authentication required", reason=NO_TOKEN)

        try:
            g.principal = identity_service.verify_token(token)
        except AuthenticationError as exc:
            current_app.logger.warning(
                "Rejected bearer token on %s %s: %s", request.method, request.path, exc.message
            )
            raise

        return f(*args, **kwargs)

    return decorated_function


def _require_allowed(decision) -> Allowed:
    if isinstance(decision, Allowed):
        return decision

    current_app.logger.warning(
        "Access denied for user %s on %s %s: %s",
        g.principal.id, request.method, request.path, decision.reason,
    )
    if decision.structural:
        raise ValidationError(decision.message, reason=decision.reason)
    raise AuthorizationError(decision.message, reason=decision.reason)


def require_access(
    resource: str,
    action: str = READ,
    target: Optional[Callable[..., Target]] = None,
):
    """
    Run the access evaluator once for this request.

    - Scoped reads take ?scope= (self | department | team | all, default self)
      and an optional ?department= filter, composed by AND.
    - target(**view_kwargs) resolves what a mutation points at (a user id,
      a department) when the rule depends on it.

    Sets:
    - g.access: the Allowed decision (scope + predicate) for the handler
    - g.audit_request: marks the request for the audit hook

    Raises AuthorizationError (403) or ValidationError (400, structural
    denials and malformed scope tokens).
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                raise AuthenticationError("Authentication required", reason=NO_TOKEN)

            principal = g.principal
            scope = None
            department_filter = None
            if action == READ and resource in SCOPED_RESOURCES:
                scope = parse_scope(request.args.get("scope"))
                department_filter = optional_department(request.args.get("department"))

            resolved_target = target(**kwargs) if target is not None else None

            decision = evaluate(principal, resource, action, scope=scope, target=resolved_target)
            if isinstance(decision, Allowed) and department_filter is not None:
                decision = narrow(decision, department_filter)

            g.access = _require_allowed(decision)
            g.audit_request = True
            return f(*args, **kwargs)

        return decorated_function
    return decorator
