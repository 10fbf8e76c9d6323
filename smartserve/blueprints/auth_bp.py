"""
Auth Blueprint — registration and bearer-token login.

Endpoints:
  POST /api/auth/register         — username + email + password → user + token
  POST /api/auth/login            — email + password → user + token
  GET  /api/auth/me               — current user profile
  POST /api/auth/change-password  — current + new password
"""

from flask import Blueprint, g

from smartserve.blueprints import json_body, register_error_handlers
from smartserve.middleware.jwt_auth import login_required
from smartserve.services.jwt_service import issue_token
from smartserve.services.user_service import (
    authenticate_user,
    change_password as change_user_password,
    get_user,
    register_user,
)
from smartserve.utils.errors import E, api_error, api_success

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
register_error_handlers(auth_bp)


# ═══════════════════════════════════════════════════════════════
# POST /api/auth/register
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/register", methods=["POST"])
def register():
    """
    Register a new user and log them in.

    Body: { "username": "...", "email": "...", "password": "...",
            "phone": "...", "address": "..." }
    """
    data = json_body()
    missing = [f for f in ("username", "email", "password") if not data.get(f)]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED,
            f"Missing required fields: {', '.join(missing)}",
            details={f: "required" for f in missing},
        )

    user = register_user(
        data["username"],
        data["email"],
        data["password"],
        phone=data.get("phone"),
        address=data.get("address"),
    )
    return api_success(
        {"user": user.to_dict(), **issue_token(user)},
        "User registered successfully",
        status=201,
    )


# ═══════════════════════════════════════════════════════════════
# POST /api/auth/login
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate with email + password, return a bearer token.

    Body: { "email": "...", "password": "..." }
    """
    data = json_body()
    email = data.get("email") or ""
    password = data.get("password") or ""

    if not email or not password:
        return api_error(E.VALIDATION_REQUIRED, "Email and password are required")

    user = authenticate_user(email, password)
    return api_success({"user": user.to_dict(), **issue_token(user)}, "Login successful")


# ═══════════════════════════════════════════════════════════════
# GET /api/auth/me
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    """Get current user profile from the bearer token."""
    user = get_user(g.current_user_id)
    return api_success(user.to_dict(), "Current user")


# ═══════════════════════════════════════════════════════════════
# POST /api/auth/change-password
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    """
    Change current user's password.

    Body: { "current_password": "...", "new_password": "..." }
    """
    data = json_body()
    current_pw = data.get("current_password") or ""
    new_pw = data.get("new_password") or ""

    if not current_pw or not new_pw:
        return api_error(E.VALIDATION_REQUIRED, "Both current and new password are required")

    change_user_password(g.current_user_id, current_pw, new_pw)
    return api_success(None, "Password changed successfully")
