"""Service request data models.

Two models:
  ServiceRequest     — a request submitted by a user. Carries a denormalized
                       ``status`` snapshot of its most recent ledger entry.
  StatusLedgerEntry  — append-only status history for one request
                       (table ``status_tracking``).

Status lifecycle is permissive: any value in REQUEST_STATUSES may follow any
other. Pending is the implicit initial state and has no ledger entry.
"""

from __future__ import annotations

from datetime import datetime, timezone

from smartserve.models import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enumerations ────────────────────────────────────────────────────────────

SERVICE_TYPES = ("Maintenance", "Repair", "Installation", "Support", "Consultation")
PRIORITIES = ("Low", "Medium", "High", "Urgent")
REQUEST_STATUSES = ("Pending", "Assigned", "In Progress", "On Hold", "Completed", "Cancelled")

DEFAULT_PRIORITY = "Medium"
INITIAL_STATUS = "Pending"
COMPLETED_STATUS = "Completed"

# ── Field limits ────────────────────────────────────────────────────────────

DESCRIPTION_MIN = 10
DESCRIPTION_MAX = 1000
LOCATION_MAX = 255
ASSIGNEE_MAX = 255
NOTES_MAX = 500


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ── ServiceRequest ──────────────────────────────────────────────────────────


class ServiceRequest(db.Model):
    """A service request owned by exactly one user.

    ``status`` always mirrors the newest StatusLedgerEntry (or Pending when
    the ledger is empty). Only RequestLifecycleManager writes it, in the same
    transaction as the ledger append.
    """

    __tablename__ = "service_requests"
    __table_args__ = (
        db.Index("idx_sr_user_created", "user_id", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning user. Immutable after creation.",
    )
    service_type = db.Column(
        db.Enum(*SERVICE_TYPES, name="service_request_types"),
        nullable=False,
    )
    description = db.Column(db.Text, nullable=False)
    priority = db.Column(
        db.Enum(*PRIORITIES, name="service_request_priorities"),
        nullable=False,
        default=DEFAULT_PRIORITY,
    )
    location = db.Column(db.String(LOCATION_MAX), nullable=True)
    status = db.Column(
        db.Enum(*REQUEST_STATUSES, name="service_request_statuses"),
        nullable=False,
        default=INITIAL_STATUS,
        comment="Snapshot of the newest status_tracking row.",
    )
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    completed_at = db.Column(db.DateTime, nullable=True)

    # Relationships
    user = db.relationship("User", back_populates="service_requests")
    status_entries = db.relationship(
        "StatusLedgerEntry",
        back_populates="request",
        lazy="dynamic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "service_type": self.service_type,
            "description": self.description,
            "priority": self.priority,
            "location": self.location,
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "completed_at": _iso(self.completed_at),
        }

    def __repr__(self) -> str:
        return f"<ServiceRequest {self.id} {self.status}>"


# ── StatusLedgerEntry ───────────────────────────────────────────────────────


class StatusLedgerEntry(db.Model):
    """One immutable status change of a ServiceRequest.

    Rows are inserted by RequestLifecycleManager.record_status_transition and
    never updated. They disappear only through the FK cascade when the
    parent request is deleted.
    """

    __tablename__ = "status_tracking"
    __table_args__ = (
        db.Index("idx_st_request_created", "request_id", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(
        db.Integer,
        db.ForeignKey("service_requests.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning request. Immutable.",
    )
    status = db.Column(
        db.Enum(*REQUEST_STATUSES, name="status_tracking_statuses"),
        nullable=False,
    )
    assigned_to = db.Column(db.String(ASSIGNEE_MAX), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    request = db.relationship("ServiceRequest", back_populates="status_entries")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "status": self.status,
            "assigned_to": self.assigned_to,
            "notes": self.notes,
            "timestamp": _iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<StatusLedgerEntry {self.id} req={self.request_id} {self.status}>"
