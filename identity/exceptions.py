import logging

from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Base class for identity reconciliation failures."""


class ValidationError(IdentityError):
    """The request fragment is missing or malformed. Raised before any store access."""


class StoreError(IdentityError):
    """The contact store failed to read or write."""


class TransientStoreError(StoreError):
    """A store failure that may succeed if the whole reconciliation is retried."""


class ConcurrentMergeConflict(TransientStoreError):
    """A cluster root was demoted by another request after it was matched."""


class InvariantViolation(IdentityError):
    """The contact graph is not a depth-one forest with one primary per cluster."""


def _error_message(detail):
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = _error_message(value)
            return message if key in ("detail", "non_field_errors") else f"{key}: {message}"
        return ""
    if isinstance(detail, (list, tuple)):
        return _error_message(detail[0]) if detail else ""
    return str(detail)


def api_exception_handler(exc, context):
    """
    REST framework exception handler.

    Every error body is {"error": "<message>"}. Domain validation errors are
    400, store failures and broken invariants are 500.
    """
    if isinstance(exc, ValidationError):
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, IdentityError):
        logger.error(f"Identity reconciliation failed: {exc}", exc_info=exc)
        return Response(
            {"error": "Internal server error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    response = exception_handler(exc, context)
    if response is None:
        logger.error(f"Unhandled error: {exc}", exc_info=exc)
        return Response(
            {"error": "Internal server error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, (Http404, drf_exceptions.NotFound)):
        response.data = {"error": "Route not found"}
    else:
        response.data = {"error": _error_message(response.data)}
    return response
