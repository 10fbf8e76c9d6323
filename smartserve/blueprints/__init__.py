"""
SmartServe
Blueprint helpers shared by the API blueprints.
"""

import logging

from flask import request
from werkzeug.exceptions import HTTPException

from smartserve.core.exceptions import (
    AuthenticationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from smartserve.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def json_body() -> dict:
    """Return the JSON request body, or {} when absent or not an object."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def register_error_handlers(bp):
    """Map the service exception hierarchy onto HTTP responses for ``bp``."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        # Log carries the id; the response never does.
        logger.info("%s endpoint=%s", error, request.endpoint)
        return api_error(E.NOT_FOUND, error.public_message)

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, error.public_message)

    @bp.errorhandler(AuthenticationError)
    def _handle_auth(error: AuthenticationError):
        return api_error(E.UNAUTHORIZED, str(error))

    @bp.errorhandler(InternalError)
    def _handle_internal(error: InternalError):
        return api_error(E.INTERNAL, "Internal server error")

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")
