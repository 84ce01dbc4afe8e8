import logging

from django.db import DatabaseError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for errors raised by the ledger services."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Ledger operation failed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LedgerError, ValueError):
    """A required field is missing or invalid. Raised before any mutation."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request."


class ConflictError(LedgerError):
    """A user with the same name already exists."""

    # The API reports duplicates as a plain bad request.
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "User already exists."


class NotFoundError(LedgerError, LookupError):
    """The referenced user does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User not found."


class PersistenceError(LedgerError):
    """The database is unreachable or rejected the operation."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Storage is unavailable."


def error_response(exc: LedgerError) -> Response:
    return Response({"error": exc.message}, status=exc.status_code)


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
    if isinstance(detail, list) and detail:
        return _first_message(detail[0])
    return str(detail)


def api_exception_handler(exc, context):
    """
    DRF exception handler that gives every error the `{"error": ...}` shape.

    Serializer failures keep DRF's per-field messages under "fields".
    Database failures are logged and reported as 503.
    """
    if isinstance(exc, LedgerError):
        return error_response(exc)

    if isinstance(exc, DatabaseError):
        view = context.get("view")
        logger.exception(
            "Database error while handling %s: %s",
            type(view).__name__ if view else "request",
            exc,
        )
        return error_response(PersistenceError())

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        response.data = {
            "error": _first_message(exc.detail),
            "fields": response.data,
        }
    elif isinstance(response.data, dict) and "detail" in response.data:
        response.data = {"error": str(response.data["detail"])}

    return response
