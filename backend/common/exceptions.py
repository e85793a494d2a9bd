"""
DRF exception handler for ride service failures.

Registered as ``REST_FRAMEWORK["EXCEPTION_HANDLER"]``. Service errors, DRF
permission denials and request validation errors all become
``{"success": false, "error": <code>, "message": <text>}`` with a status
derived from their kind; anything else falls through to DRF.
"""

import logging

from django.db import DatabaseError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from services.ride_management.exceptions import RideServiceError

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "invalid_input": status.HTTP_400_BAD_REQUEST,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "conflict": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
    "storage_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(code: str, message: str, http_status: int, **extra) -> Response:
    body = {"success": False, "error": code, "message": message}
    body.update(extra)
    return Response(body, status=http_status)


def first_error_message(detail) -> str:
    """Flatten a DRF error detail into one readable line."""
    if isinstance(detail, dict):
        if not detail:
            return "Invalid input"
        field, errors = next(iter(detail.items()))
        message = first_error_message(errors)
        if field == "non_field_errors":
            return message
        return f"{field}: {message}"
    if isinstance(detail, list):
        return first_error_message(detail[0]) if detail else "Invalid input"
    return str(detail)


def ride_exception_handler(exc, context):
    if isinstance(exc, RideServiceError):
        http_status = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
        if http_status >= 500:
            logger.error("Ride operation failed in %s: %s", context.get("view"), exc)
            return error_response(exc.error_code, "Database error", http_status)
        return error_response(exc.error_code, str(exc), http_status)

    if isinstance(exc, exceptions.PermissionDenied):
        # Permission classes may set their own ``code``
        code = exc.get_codes()
        if not isinstance(code, str) or code == exceptions.PermissionDenied.default_code:
            code = "forbidden"
        return error_response(code, str(exc.detail), STATUS_BY_KIND["forbidden"])

    if isinstance(exc, exceptions.ValidationError):
        return error_response(
            "invalid_input",
            first_error_message(exc.detail),
            STATUS_BY_KIND["invalid_input"],
            details=exc.detail,
        )

    if isinstance(exc, exceptions.ParseError):
        return error_response("invalid_input", str(exc.detail), STATUS_BY_KIND["invalid_input"])

    if isinstance(exc, DatabaseError):
        logger.exception("Unhandled database error in %s", context.get("view"), exc_info=exc)
        return error_response("storage_error", "Database error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return exception_handler(exc, context)
