"""
Owner-scoped query helpers.

Every get-by-id on user-owned data MUST go through these helpers instead of
Model.query.get(pk) or db.session.get(Model, pk). A direct .get() skips the
ownership check, and with it the guarantee that another user's request is
indistinguishable from a missing one.

Usage:
    # Required lookup: raises NotFoundError for missing AND foreign rows
    sr = get_owned(ServiceRequest, request_id, owner_id=user_id)

    # Same, but take a row lock for the rest of the transaction
    sr = get_owned(ServiceRequest, request_id, owner_id=user_id, for_update=True)

    # When None is an acceptable outcome
    sr = get_owned_or_none(ServiceRequest, request_id, owner_id=user_id)

Owner column:
    The model must expose a ``user_id`` column. Passing a model without one
    raises ValueError at call time so the bug surfaces in tests rather than
    silently allowing an unscoped lookup in production.
"""

import logging

from sqlalchemy import select

from smartserve.core.exceptions import NotFoundError
from smartserve.models import db

logger = logging.getLogger(__name__)

OWNER_COLUMN = "user_id"


def _as_int(value):
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def owner_id_matches(owner_id, entity) -> bool:
    """The single authorization predicate for user-owned entities.

    True only when ``entity`` exists and its owning user id equals the
    verified caller id. Ids arriving as strings (URL params, JSON bodies)
    are compared by integer value.
    """
    if entity is None:
        return False
    caller = _as_int(owner_id)
    if caller is None:
        return False
    return getattr(entity, OWNER_COLUMN) == caller


def get_owned(model, pk, *, owner_id, for_update: bool = False):
    """Fetch a single entity by PK and verify the caller owns it.

    Missing rows, rows owned by another user and unparseable ids all raise
    the same NotFoundError. The three cases are intentionally
    indistinguishable to the caller.

    Args:
        model: SQLAlchemy model class with ``id`` and ``user_id`` columns.
        pk: Primary key value to look up (int or numeric string).
        owner_id: Verified id of the calling user.
        for_update: Lock the row (SELECT ... FOR UPDATE) for the rest of
                    the transaction. Ignored by engines without row locks.

    Returns:
        The model instance if it exists and belongs to ``owner_id``.

    Raises:
        ValueError: If the model has no owner column.
        NotFoundError: If the entity does not exist or is owned by someone else.
    """
    if not hasattr(model, OWNER_COLUMN):
        raise ValueError(
            f"{model.__name__} has no {OWNER_COLUMN} column; "
            "refusing to perform an unscoped lookup."
        )

    entity = None
    key = _as_int(pk)
    if key is not None:
        stmt = select(model).where(model.id == key)
        if for_update:
            stmt = stmt.with_for_update()
        entity = db.session.execute(stmt).scalar_one_or_none()

    if not owner_id_matches(owner_id, entity):
        logger.debug(
            "get_owned: %s id=%s not visible to owner=%s",
            model.__name__,
            pk,
            owner_id,
        )
        raise NotFoundError(resource=model.__name__, resource_id=pk)

    return entity


def get_owned_or_none(model, pk, *, owner_id, for_update: bool = False):
    """Same as get_owned but returns None instead of raising NotFoundError."""
    try:
        return get_owned(model, pk, owner_id=owner_id, for_update=for_update)
    except NotFoundError:
        return None
