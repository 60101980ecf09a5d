# dt_core/common/api/exceptions.py
"""
API error envelope:

    {"error": {"code": ..., "message": ..., "details": ..., "request_id": ...}}

Every DRF error, service refusal (409) and missing row (404) is rendered through
api_exception_handler so operators see one shape for all failures.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any

from django.core.exceptions import ObjectDoesNotExist
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from dt_core.screening.classifier import ClassificationInvariantError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "HTTP_X_REQUEST_ID"


def request_id_for(request) -> str:
    """
    Caller-supplied X-Request-ID when present, otherwise a fresh one; cached on the request.
    """
    if request is None:
        return uuid.uuid4().hex
    rid = getattr(request, "request_id", None) or request.META.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.request_id = rid
    return rid


def error_body(*, request, code: str, message: str, details: Any = None) -> dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": request_id_for(request),
        }
    }


class ConflictError(APIException):
    """
    The drug test is in the wrong state for the requested action
    (already finalised, not screened yet, substance not eligible for confirmation).
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Drug test state does not allow this action."
    default_code = "conflict"


# First match wins; order subclasses before their bases.
_ERROR_CODES: tuple[tuple[type[BaseException], str], ...] = (
    (ValidationError, "validation_error"),
    (NotAuthenticated, "not_authenticated"),
    (PermissionDenied, "permission_denied"),
    (Http404, "not_found"),
    (NotFound, "not_found"),
)


def _code_for(exc: BaseException) -> str:
    for exc_type, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    if isinstance(exc, APIException):
        return exc.default_code or "api_error"
    return "error"


def _split_detail(data: Any) -> tuple[str, Any]:
    # {"detail": "..."} -> message; remaining keys (if any) become details
    if isinstance(data, dict) and "detail" in data:
        rest = {k: v for k, v in data.items() if k != "detail"}
        return str(data["detail"]), rest or None
    return "Request failed.", data


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")

    # selectors/services use .get(); a missing row is a 404, not a crash
    if isinstance(exc, ObjectDoesNotExist):
        exc = NotFound(f"{type(exc).__qualname__.split('.')[0]} not found.")

    response = drf_exception_handler(exc, context)

    if response is None:
        if isinstance(exc, ClassificationInvariantError):
            logger.critical("Classification invariant broken: %s", exc.counts)
            code, message = "classification_invariant", "Screen result could not be classified."
        else:
            logger.exception("Unhandled API error", exc_info=exc)
            code, message = "server_error", "Unexpected server error."
        return Response(
            error_body(request=request, code=code, message=message),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    message, details = _split_detail(response.data)
    return Response(
        error_body(request=request, code=_code_for(exc), message=message, details=details),
        status=response.status_code,
        headers=response.headers,
    )
