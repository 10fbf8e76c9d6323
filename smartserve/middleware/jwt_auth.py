"""
JWT Auth Middleware — parses the bearer token, sets g.current_user_id.

The hook never rejects a request itself. It only records who the caller is
(or why the token was refused); protected views enforce authentication with
the ``login_required`` decorator.
"""

from functools import wraps

import jwt as pyjwt
from flask import g, request

from smartserve.services.jwt_service import decode_access_token, user_id_from_payload
from smartserve.utils.errors import E, api_error


# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/auth/login",
    "/api/auth/register",
    "/api/health",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user_id = None
        g.jwt_error = None

        path = request.path
        if not path.startswith("/api/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:].strip()

        try:
            payload = decode_access_token(token)
            g.current_user_id = user_id_from_payload(payload)
        except pyjwt.ExpiredSignatureError:
            g.jwt_error = "expired"
        except pyjwt.InvalidTokenError:
            g.jwt_error = "invalid"


def login_required(view):
    """Reject the request with 401 unless the JWT hook verified a user id."""

    @wraps(view)
    def _wrapped(*args, **kwargs):
        if getattr(g, "current_user_id", None) is None:
            if getattr(g, "jwt_error", None) == "expired":
                return api_error(E.TOKEN_EXPIRED, "Your session has expired. Please log in again.")
            return api_error(E.UNAUTHORIZED, "Authentication required. Please log in.")
        return view(*args, **kwargs)

    return _wrapped
