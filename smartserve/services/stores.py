"""
Store adapters for the request lifecycle.

SqlRequestStore  — ServiceRequest rows, always read through the owner check.
SqlStatusLedger  — append/read access to status_tracking rows.

Neither adapter commits. The transaction boundary belongs to
RequestLifecycleManager, so a ledger append and the matching snapshot
update always land in the same commit.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select

from smartserve.models.service_request import ServiceRequest, StatusLedgerEntry
from smartserve.services.helpers.scoped_queries import get_owned


class SqlRequestStore:
    """ServiceRequest persistence on a Flask-SQLAlchemy ``db``."""

    def __init__(self, db):
        self._db = db

    @property
    def session(self):
        return self._db.session

    def get_owned(self, request_id, owner_id, *, for_update: bool = False) -> ServiceRequest:
        return get_owned(ServiceRequest, request_id, owner_id=owner_id, for_update=for_update)

    def list_for_owner(self, owner_id: int) -> list[ServiceRequest]:
        stmt = (
            select(ServiceRequest)
            .where(ServiceRequest.user_id == owner_id)
            .order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc())
        )
        return list(self.session.execute(stmt).scalars())

    def add(self, service_request: ServiceRequest) -> ServiceRequest:
        self.session.add(service_request)
        self.session.flush()
        return service_request

    def delete(self, service_request: ServiceRequest) -> None:
        self.session.delete(service_request)


class SqlStatusLedger:
    """Append-only status history. No update or delete methods on purpose."""

    def __init__(self, db):
        self._db = db

    @property
    def session(self):
        return self._db.session

    def append(
        self,
        request_id: int,
        status: str,
        *,
        assigned_to: str | None,
        notes: str | None,
        created_at: datetime,
    ) -> StatusLedgerEntry:
        entry = StatusLedgerEntry(
            request_id=request_id,
            status=status,
            assigned_to=assigned_to,
            notes=notes,
            created_at=created_at,
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def _newest_first(self, request_id: int):
        return (
            select(StatusLedgerEntry)
            .where(StatusLedgerEntry.request_id == request_id)
            .order_by(StatusLedgerEntry.created_at.desc(), StatusLedgerEntry.id.desc())
        )

    def history(self, request_id: int) -> list[StatusLedgerEntry]:
        return list(self.session.execute(self._newest_first(request_id)).scalars())

    def latest(self, request_id: int) -> StatusLedgerEntry | None:
        stmt = self._newest_first(request_id).limit(1)
        return self.session.execute(stmt).scalar_one_or_none()
