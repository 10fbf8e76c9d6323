"""
Service Request Lifecycle

Owns every read and write of ServiceRequest and its status ledger:
  - Ownership check through the single owner_id_matches predicate
  - Field validation (service type, description, priority, location, notes)
  - Status transitions: ledger append + snapshot update in one commit
  - History / latest-status projections

Status transitions are permissive: any status in REQUEST_STATUSES may
follow any other. Pending is the implicit initial state and writes no
ledger entry.

Usage:
    from smartserve.services.request_lifecycle import get_lifecycle

    lifecycle = get_lifecycle()
    sr = lifecycle.create_request(owner_id=42, service_type="Repair",
                                  description="Device broken, needs urgent fix")
    entry = lifecycle.record_status_transition(42, sr.id, "Assigned", assigned_to="Jane")
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from smartserve.core.exceptions import InternalError, ValidationError
from smartserve.models.service_request import (
    ASSIGNEE_MAX,
    COMPLETED_STATUS,
    DEFAULT_PRIORITY,
    DESCRIPTION_MAX,
    DESCRIPTION_MIN,
    INITIAL_STATUS,
    LOCATION_MAX,
    NOTES_MAX,
    PRIORITIES,
    REQUEST_STATUSES,
    SERVICE_TYPES,
    ServiceRequest,
    StatusLedgerEntry,
)

logger = logging.getLogger(__name__)

EXTENSION_KEY = "request_lifecycle"

UPDATABLE_FIELDS = ("service_type", "description", "priority", "location")

# Every status may be entered from every status.
STATUS_TRANSITIONS = {status: frozenset(REQUEST_STATUSES) for status in REQUEST_STATUSES}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Validation ───────────────────────────────────────────────────────────────


def _check_choice(errors: dict, field: str, value, choices) -> None:
    if not isinstance(value, str) or value not in choices:
        errors[field] = f"{field} must be one of: {', '.join(choices)}"


def _check_description(errors: dict, value) -> None:
    if not isinstance(value, str) or not value.strip():
        errors["description"] = "description is required"
    elif not DESCRIPTION_MIN <= len(value) <= DESCRIPTION_MAX:
        errors["description"] = (
            f"description must be between {DESCRIPTION_MIN} and {DESCRIPTION_MAX} characters"
        )


def _check_optional_text(errors: dict, field: str, value, max_len: int) -> None:
    if value is None:
        return
    if not isinstance(value, str):
        errors[field] = f"{field} must be a string"
    elif len(value) > max_len:
        errors[field] = f"{field} cannot exceed {max_len} characters"


def _raise_if(errors: dict) -> None:
    if errors:
        first = next(iter(errors.values()))
        raise ValidationError(first, details=errors)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _log_context(owner_id, service_request_id, **fields) -> dict:
    """Structured ``extra=`` fields for lifecycle log records."""
    return {"owner_id": owner_id, "service_request_id": service_request_id, **fields}


def validate_transition(current_status: str, new_status: str) -> dict:
    """Validate whether ``new_status`` may follow ``current_status``.

    Returns:
        {"valid": bool, "from": str, "to": str, "reason": str|None}
    """
    if not isinstance(new_status, str) or new_status not in STATUS_TRANSITIONS:
        return {"valid": False, "from": current_status, "to": new_status,
                "reason": f"status must be one of: {', '.join(REQUEST_STATUSES)}"}
    if new_status not in STATUS_TRANSITIONS.get(current_status, ()):
        return {"valid": False, "from": current_status, "to": new_status,
                "reason": f"Cannot move from '{current_status}' to '{new_status}'"}
    return {"valid": True, "from": current_status, "to": new_status, "reason": None}


# ── Manager ─────────────────────────────────────────────────────────────────


class RequestLifecycleManager:
    """Service-request operations for an already-verified caller.

    Built once per application with explicit store references:

        RequestLifecycleManager(SqlRequestStore(db), SqlStatusLedger(db), db)

    Every operation takes ``owner_id`` first. Lookups go through
    ``requests.get_owned`` so a foreign request and a missing one raise the
    same NotFoundError before anything is written.
    """

    def __init__(self, requests, ledger, db):
        self.requests = requests
        self.ledger = ledger
        self._db = db

    @contextmanager
    def _transaction(self, action: str):
        """Commit on success; roll back and raise InternalError on store failure."""
        session = self._db.session
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Store failure during %s", action)
            raise InternalError() from exc

    @contextmanager
    def _reading(self, action: str):
        try:
            yield
        except SQLAlchemyError as exc:
            self._db.session.rollback()
            logger.exception("Store failure during %s", action)
            raise InternalError() from exc

    # ── Requests ─────────────────────────────────────────────────────────

    def create_request(
        self,
        owner_id: int,
        service_type: str,
        description: str,
        priority: str | None = None,
        location: str | None = None,
    ) -> ServiceRequest:
        """Create a Pending request. No ledger entry is written."""
        priority = priority or DEFAULT_PRIORITY
        location = _blank_to_none(location)

        errors: dict = {}
        if not service_type:
            errors["service_type"] = "service_type is required"
        else:
            _check_choice(errors, "service_type", service_type, SERVICE_TYPES)
        _check_description(errors, description)
        _check_choice(errors, "priority", priority, PRIORITIES)
        _check_optional_text(errors, "location", location, LOCATION_MAX)
        _raise_if(errors)

        now = _utcnow()
        with self._transaction("create_request"):
            sr = self.requests.add(ServiceRequest(
                user_id=owner_id,
                service_type=service_type,
                description=description,
                priority=priority,
                location=location,
                status=INITIAL_STATUS,
                created_at=now,
                updated_at=now,
            ))

        logger.info(
            "Service request created id=%s owner=%s type=%s priority=%s",
            sr.id, owner_id, sr.service_type, sr.priority,
            extra=_log_context(owner_id, sr.id, to_status=sr.status),
        )
        return sr

    def get_request(self, owner_id: int, request_id) -> ServiceRequest:
        with self._reading("get_request"):
            return self.requests.get_owned(request_id, owner_id)

    def list_requests(self, owner_id: int) -> list[ServiceRequest]:
        """All of the owner's requests, newest first."""
        with self._reading("list_requests"):
            return self.requests.list_for_owner(owner_id)

    def update_request_fields(self, owner_id: int, request_id, fields: dict) -> ServiceRequest:
        """Update any subset of UPDATABLE_FIELDS. Never touches status or the ledger."""
        with self._reading("update_request_fields"):
            sr = self.requests.get_owned(request_id, owner_id)

        fields = dict(fields or {})
        unknown = sorted(set(fields) - set(UPDATABLE_FIELDS))
        if unknown:
            raise ValidationError(
                f"Fields cannot be updated: {', '.join(unknown)}",
                details={name: "not updatable" for name in unknown},
            )
        if "location" in fields:
            fields["location"] = _blank_to_none(fields["location"])

        errors: dict = {}
        if "service_type" in fields:
            _check_choice(errors, "service_type", fields["service_type"], SERVICE_TYPES)
        if "description" in fields:
            _check_description(errors, fields["description"])
        if "priority" in fields:
            _check_choice(errors, "priority", fields["priority"], PRIORITIES)
        if "location" in fields:
            _check_optional_text(errors, "location", fields["location"], LOCATION_MAX)
        _raise_if(errors)

        if not fields:
            return sr

        with self._transaction("update_request_fields"):
            for name, value in fields.items():
                setattr(sr, name, value)
            sr.updated_at = _utcnow()

        logger.info(
            "Service request updated id=%s owner=%s fields=%s",
            sr.id, owner_id, sorted(fields),
            extra=_log_context(owner_id, sr.id),
        )
        return sr

    def delete_request(self, owner_id: int, request_id) -> dict:
        """Delete the request; the FK cascade removes its ledger entries."""
        with self._reading("delete_request"):
            sr = self.requests.get_owned(request_id, owner_id)
        deleted_id = sr.id

        with self._transaction("delete_request"):
            self.requests.delete(sr)

        logger.info(
            "Service request deleted id=%s owner=%s", deleted_id, owner_id,
            extra=_log_context(owner_id, deleted_id),
        )
        return {"deleted_id": deleted_id}

    # ── Status ledger ────────────────────────────────────────────────────

    def record_status_transition(
        self,
        owner_id: int,
        request_id,
        new_status: str,
        assigned_to: str | None = None,
        notes: str | None = None,
    ) -> StatusLedgerEntry:
        """Append a ledger entry and move the request snapshot to ``new_status``.

        Both writes share one commit. The request row is locked for the
        duration so concurrent transitions on the same request serialize on
        engines with row locks.

        Raises:
            NotFoundError: request missing or owned by another user.
            ValidationError: unknown status, notes > 500 or assignee > 255 chars.
            InternalError: the store failed; nothing was written.
        """
        session = self._db.session
        try:
            sr = self.requests.get_owned(request_id, owner_id, for_update=True)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Store failure during record_status_transition")
            raise InternalError() from exc

        assigned_to = _blank_to_none(assigned_to)
        notes = _blank_to_none(notes)

        errors: dict = {}
        if not new_status:
            errors["status"] = "status is required"
        else:
            check = validate_transition(sr.status, new_status)
            if not check["valid"]:
                errors["status"] = check["reason"]
        _check_optional_text(errors, "notes", notes, NOTES_MAX)
        _check_optional_text(errors, "assigned_to", assigned_to, ASSIGNEE_MAX)
        if errors:
            # Release the row lock taken above before bailing out.
            session.rollback()
            _raise_if(errors)

        previous_status = sr.status
        now = _utcnow()
        with self._transaction("record_status_transition"):
            entry = self.ledger.append(
                sr.id,
                new_status,
                assigned_to=assigned_to,
                notes=notes,
                created_at=now,
            )
            sr.status = new_status
            sr.updated_at = now
            sr.completed_at = now if new_status == COMPLETED_STATUS else None

        logger.info(
            "Service request status id=%s owner=%s %s -> %s entry=%s",
            sr.id, owner_id, previous_status, new_status, entry.id,
            extra=_log_context(
                owner_id, sr.id,
                from_status=previous_status, to_status=new_status, ledger_entry_id=entry.id,
            ),
        )
        return entry

    def get_status_history(self, owner_id: int, request_id) -> list[StatusLedgerEntry]:
        """All ledger entries for the request, newest first."""
        with self._reading("get_status_history"):
            sr = self.requests.get_owned(request_id, owner_id)
            return self.ledger.history(sr.id)

    def get_latest_status(self, owner_id: int, request_id) -> dict:
        """Current snapshot plus the newest ledger entry (or None)."""
        with self._reading("get_latest_status"):
            sr = self.requests.get_owned(request_id, owner_id)
            latest = self.ledger.latest(sr.id)
        return {
            "request_id": sr.id,
            "current_status": sr.status,
            "last_updated": sr.updated_at,
            "latest_entry": latest,
        }


def get_lifecycle() -> RequestLifecycleManager:
    """Return the manager wired up by ``create_app``."""
    return current_app.extensions[EXTENSION_KEY]
