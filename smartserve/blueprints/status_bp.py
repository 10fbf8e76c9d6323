"""Status tracking blueprint.

Endpoints:
  Record transition   POST /api/status/track
  Full history        GET  /api/status/history/<request_id>
  Current status      GET  /api/status/current/<request_id>

Transitions are permissive (any status may follow any other). Each one
appends a ledger row and moves the request's status snapshot in the same
commit, so /current and /history never disagree.
"""

from __future__ import annotations

from flask import Blueprint, g

from smartserve.blueprints import json_body, register_error_handlers
from smartserve.middleware.jwt_auth import login_required
from smartserve.services.request_lifecycle import get_lifecycle
from smartserve.utils.errors import E, api_error, api_success

status_bp = Blueprint("status", __name__, url_prefix="/api/status")
register_error_handlers(status_bp)


@status_bp.route("/track", methods=["POST"])
@login_required
def track_status():
    """Record a status change for one of the caller's requests.

    Body: { request_id, status, assigned_to?, notes? }
    Returns: the new ledger entry (201).
    """
    data = json_body()
    missing = [f for f in ("request_id", "status") if data.get(f) in (None, "")]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED,
            f"Missing required fields: {', '.join(missing)}",
            details={f: "required" for f in missing},
        )

    entry = get_lifecycle().record_status_transition(
        g.current_user_id,
        data["request_id"],
        data["status"],
        assigned_to=data.get("assigned_to"),
        notes=data.get("notes"),
    )
    return api_success(entry.to_dict(), "Status update recorded successfully", status=201)


@status_bp.route("/history/<int:request_id>", methods=["GET"])
@login_required
def status_history(request_id: int):
    """Ledger entries for the request, newest first."""
    history = get_lifecycle().get_status_history(g.current_user_id, request_id)
    return api_success(
        [entry.to_dict() for entry in history],
        f"Retrieved {len(history)} status updates",
    )


@status_bp.route("/current/<int:request_id>", methods=["GET"])
@login_required
def current_status(request_id: int):
    """Current status snapshot plus the newest ledger entry (or null)."""
    latest = get_lifecycle().get_latest_status(g.current_user_id, request_id)
    entry = latest["latest_entry"]
    return api_success({
        "request_id": latest["request_id"],
        "current_status": latest["current_status"],
        "last_updated": latest["last_updated"].isoformat() if latest["last_updated"] else None,
        "latest_entry": entry.to_dict() if entry else None,
    }, "Current status retrieved")
