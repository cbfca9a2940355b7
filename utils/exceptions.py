"""
Typed HTTP errors and the REST framework exception handler.

Every error leaving the API is serialized to the same envelope:

    {"status": "error", "message": "...", "code": "..."}

Validation failures additionally carry the field errors under "errors".
"""

import logging

from django.core.exceptions import PermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from utils.service_base import ErrorCodes, ServiceResult

logger = logging.getLogger(__name__)


class BadRequestError(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request"
    default_code = "bad_request"


class UnauthorizedError(exceptions.APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required"
    default_code = "unauthorized"


class ForbiddenError(exceptions.APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have permission to perform this action"
    default_code = "forbidden"


class NotFoundError(exceptions.APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"
    default_code = "not_found"


class ConflictError(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource conflict"
    default_code = "conflict"


# Error codes that are not a plain 400
ERROR_CODE_EXCEPTIONS = {
    ErrorCodes.NOT_FOUND: NotFoundError,
    ErrorCodes.USER_NOT_FOUND: NotFoundError,
    ErrorCodes.MARKET_NOT_FOUND: NotFoundError,
    ErrorCodes.PRODUCT_NOT_FOUND: NotFoundError,
    ErrorCodes.CATEGORY_NOT_FOUND: NotFoundError,
    ErrorCodes.REVIEW_NOT_FOUND: NotFoundError,
    ErrorCodes.LIST_NOT_FOUND: NotFoundError,
    ErrorCodes.LIST_ITEM_NOT_FOUND: NotFoundError,
    ErrorCodes.ORDER_NOT_FOUND: NotFoundError,
    ErrorCodes.DISCOUNT_NOT_FOUND: NotFoundError,
    ErrorCodes.MEAL_NOT_FOUND: NotFoundError,
    ErrorCodes.NOTIFICATION_NOT_FOUND: NotFoundError,
    ErrorCodes.TICKET_NOT_FOUND: NotFoundError,
    ErrorCodes.ADDRESS_NOT_FOUND: NotFoundError,
    ErrorCodes.LOCATION_NOT_FOUND: NotFoundError,
    ErrorCodes.INVALID_CREDENTIALS: UnauthorizedError,
    ErrorCodes.PERMISSION_DENIED: ForbiddenError,
    ErrorCodes.NOT_AGENT: ForbiddenError,
    ErrorCodes.NOT_OWNER: ForbiddenError,
    ErrorCodes.ACCOUNT_BLOCKED: ForbiddenError,
    ErrorCodes.ACCOUNT_DEACTIVATED: ForbiddenError,
    ErrorCodes.EMAIL_NOT_VERIFIED: ForbiddenError,
    ErrorCodes.LIST_READ_ONLY: ForbiddenError,
    ErrorCodes.EMAIL_TAKEN: ConflictError,
    ErrorCodes.DUPLICATE_REVIEW: ConflictError,
    ErrorCodes.CONFLICT: ConflictError,
}


def raise_for_result(result: ServiceResult):
    """Return the value of a successful result, raise the matching HTTP error otherwise."""
    if result.ok:
        return result.value
    exc_class = ERROR_CODE_EXCEPTIONS.get(result.error, BadRequestError)
    raise exc_class(detail=result.error_detail, code=result.error)


def _first_message(detail):
    if isinstance(detail, list) and detail:
        return _first_message(detail[0])
    if isinstance(detail, dict) and detail:
        key, value = next(iter(detail.items()))
        message = _first_message(value)
        return message if key == "non_field_errors" else f"{key}: {message}"
    return str(detail)


def api_exception_handler(exc, context):
    """Wrap every API error in the standard error envelope."""
    if isinstance(exc, Http404):
        exc = NotFoundError()
    elif isinstance(exc, PermissionDenied):
        exc = ForbiddenError(detail=str(exc) or None)

    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.error(f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}: {exc}", exc_info=exc)
        return Response(
            {"status": "error", "message": "Internal server error", "code": ErrorCodes.INTERNAL_ERROR},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, exceptions.ValidationError):
        body = {
            "status": "error",
            "message": _first_message(exc.detail),
            "code": ErrorCodes.VALIDATION_ERROR,
            "errors": exc.detail,
        }
    else:
        detail = getattr(exc, "detail", str(exc))
        codes = exc.get_codes() if isinstance(exc, exceptions.APIException) else None
        body = {
            "status": "error",
            "message": str(detail),
            "code": codes if isinstance(codes, str) else getattr(exc, "default_code", "error"),
        }

    response.data = body
    return response
