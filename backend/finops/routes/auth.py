# Overview: Flask API routes for registration and the current caller; parses input and returns JSON responses.

"""
Identity routes

Credentials and token issuance belong to the external identity provider.
This API only registers the application-side account and reports who the
bearer of a token is.
"""

from flask import Blueprint, jsonify, g

from ..decorators import require_auth
from ..services import user_service
from ..validation import get_json_body


auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/register")
def register_route():
    """
    Self-registration. The account is always grade 1 and never admin.

    Request body:
    - name, email, department: str (required)
    - external_uid: str (optional, identity provider uid)
    - designation: str (optional)
    """
    data = get_json_body()
    user_service.register_user(
        data.get("name"),
        data.get("email"),
        data.get("department"),
        external_uid=data.get("external_uid"),
        designation=data.get("designation"),
    )
    return jsonify({"message": "User registered successfully"}), 201


@auth_bp.get("/me")
@require_auth
def me_route():
    """The verified caller plus the stored account."""
    user = user_service.get_user(g.principal.id)
    return jsonify({"principal": g.principal.to_dict(), "user": user.to_dict()}), 200
