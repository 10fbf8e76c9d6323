"""Service request blueprint.

REST API for a user's own service requests.

Endpoints:
  Create    POST   /api/requests
  List      GET    /api/requests
  Detail    GET    /api/requests/<id>
  Update    PUT    /api/requests/<id>      (service_type, description, priority, location)
  Delete    DELETE /api/requests/<id>

Every endpoint requires a bearer token; the verified user id is the owner.
Status changes do not go through this blueprint — see status_bp.
"""

from __future__ import annotations

from flask import Blueprint, g

from smartserve.blueprints import json_body, register_error_handlers
from smartserve.middleware.jwt_auth import login_required
from smartserve.services.request_lifecycle import get_lifecycle
from smartserve.utils.errors import E, api_error, api_success

request_bp = Blueprint("requests", __name__, url_prefix="/api/requests")
register_error_handlers(request_bp)


@request_bp.route("", methods=["POST"])
@login_required
def create_request():
    """Submit a new service request.

    Body: { service_type, description, priority?, location? }
    Returns: created request (201), status always "Pending".
    """
    data = json_body()
    missing = [f for f in ("service_type", "description") if not data.get(f)]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED,
            f"Missing required fields: {', '.join(missing)}",
            details={f: "required" for f in missing},
        )

    sr = get_lifecycle().create_request(
        g.current_user_id,
        data["service_type"],
        data["description"],
        priority=data.get("priority"),
        location=data.get("location"),
    )
    return api_success(sr.to_dict(), "Service request created successfully", status=201)


@request_bp.route("", methods=["GET"])
@login_required
def list_requests():
    """All of the caller's requests, newest first."""
    requests = get_lifecycle().list_requests(g.current_user_id)
    return api_success(
        [sr.to_dict() for sr in requests],
        f"Retrieved {len(requests)} service requests",
    )


@request_bp.route("/<int:request_id>", methods=["GET"])
@login_required
def get_request(request_id: int):
    sr = get_lifecycle().get_request(g.current_user_id, request_id)
    return api_success(sr.to_dict(), "Service request retrieved")


@request_bp.route("/<int:request_id>", methods=["PUT", "PATCH"])
@login_required
def update_request(request_id: int):
    """Update editable fields. Sending ``status`` here is a validation error.

    Body: any subset of { service_type, description, priority, location }
    """
    sr = get_lifecycle().update_request_fields(g.current_user_id, request_id, json_body())
    return api_success(sr.to_dict(), "Service request updated successfully")


@request_bp.route("/<int:request_id>", methods=["DELETE"])
@login_required
def delete_request(request_id: int):
    result = get_lifecycle().delete_request(g.current_user_id, request_id)
    return api_success(result, "Service request deleted successfully")
