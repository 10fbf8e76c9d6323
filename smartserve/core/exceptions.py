"""
Service-wide exception hierarchy.

Every service raises these types and nothing else for expected failures.
Blueprints register handlers against them once and get consistent HTTP
status codes and error envelopes everywhere.

Usage:
    from smartserve.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="ServiceRequest", resource_id=42)
    raise ValidationError("description is too short", details={"description": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist for the calling user.

    Security note: used for BOTH genuinely missing records AND records owned
    by another user. A 403 would confirm the resource exists; a 404 does not.

    Args:
        resource: Human-readable entity name (e.g. "ServiceRequest").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
        owner_id: Optional caller id the lookup was scoped to. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        owner_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.owner_id = owner_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if owner_id is not None:
            msg += f" (owner={owner_id})"
        super().__init__(msg)

    @property
    def public_message(self) -> str:
        """Message safe for HTTP responses (no ids, no owner)."""
        return f"{self.resource} not found"


class ValidationError(Exception):
    """Raised when caller-supplied input violates a documented constraint.

    Covers missing required fields, out-of-range lengths and unrecognised
    enumerated values. Always recoverable by the caller.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
                 Keys are field names; values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would create a duplicate identity.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value (kept for logs only).
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)

    @property
    def public_message(self) -> str:
        return f"{self.resource} with this {self.field} is already registered"


class AuthenticationError(Exception):
    """Raised when credentials or a bearer token cannot be verified. Maps to HTTP 401."""


class InternalError(Exception):
    """Raised when the underlying store fails.

    The message is opaque on purpose; the original exception is chained
    (``raise InternalError(...) from exc``) and logged for operators.
    """

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
