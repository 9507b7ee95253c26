from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    MethodNotAllowed,
    NotAcceptable,
    NotFound,
    ParseError,
    UnsupportedMediaType,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from core.exceptions import EntityDecodeError, ShopError

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR_MESSAGE = "An unexpected error occurred."

EXCEPTION_CODE_MAP: dict[type[Exception], str] = {
    ValidationError: "validation_error",
    NotFound: "not_found",
    MethodNotAllowed: "method_not_allowed",
    NotAcceptable: "not_acceptable",
    UnsupportedMediaType: "unsupported_media_type",
    ParseError: "parse_error",
}


def build_error_envelope(*, code: str, message: str, errors: Any, status_code: int) -> dict[str, Any]:
    return {
        "code": code,
        "message": message,
        "errors": errors,
        "status": status_code,
    }


def error_response(
    *,
    code: str,
    message: str,
    errors: Any = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> Response:
    return Response(
        build_error_envelope(code=code, message=message, errors=errors, status_code=status_code),
        status=status_code,
    )


def shop_error_response(exc: ShopError, view_name: str) -> Response:
    # Corrupt documents need a person to look at the store; storage outages usually pass.
    if isinstance(exc, EntityDecodeError):
        logger.error("Stored shop data is unreadable in %s: %s", view_name, exc, exc_info=exc)
    else:
        logger.warning("Shop storage unavailable in %s: %s", view_name, exc)
    return error_response(
        code=exc.code,
        message=exc.message,
        errors=exc.details or None,
        status_code=exc.status_code,
    )


def custom_exception_handler(exc: Exception, context: dict[str, Any]) -> Response:
    view = context.get("view")
    view_name = view.__class__.__name__ if view else "unknown"

    if isinstance(exc, ShopError):
        return shop_error_response(exc, view_name)

    response = drf_exception_handler(exc, context)
    if response is None:
        logger.exception("Unhandled API exception in %s", view_name)
        return error_response(
            code="internal_server_error",
            message=GENERIC_SERVER_ERROR_MESSAGE,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    response.data = build_error_envelope(
        code=_code_for(exc),
        message=_message_for(exc, response.data),
        errors=_field_errors(response.data),
        status_code=response.status_code,
    )
    return response


def _code_for(exc: Exception) -> str:
    for exception_type, stable_code in EXCEPTION_CODE_MAP.items():
        if isinstance(exc, exception_type):
            return stable_code
    return str(getattr(exc, "default_code", "api_error"))


def _message_for(exc: Exception, data: Any) -> str:
    if isinstance(exc, ValidationError):
        return "Validation failed."
    if isinstance(data, Mapping) and data.get("detail"):
        return str(data["detail"])
    if isinstance(exc, APIException):
        return str(exc.detail)
    return GENERIC_SERVER_ERROR_MESSAGE


def _field_errors(data: Any) -> Any:
    """Field-keyed validation errors; a bare ``detail`` carries no field errors."""
    if isinstance(data, Mapping):
        return None if set(data) == {"detail"} else data
    if isinstance(data, Sequence) and not isinstance(data, str):
        return data
    return None
