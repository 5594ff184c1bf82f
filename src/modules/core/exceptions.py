"""Standardized API error responses.

Every error leaving the API has the same envelope::

    {
        "type": "validation_error",
        "errors": [
            {"code": "required", "detail": "This field is required.", "attr": "plan_id"}
        ]
    }

``type`` is ``validation_error``, ``client_error`` or ``server_error`` for
framework errors, and the snake_case kind of a domain error otherwise
(``invalid_transition``, ``incompatible_offer``...).  ``attr`` is present
only when the error belongs to a specific input field.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional

import structlog
from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.settings import api_settings
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)


def _flatten(detail: Any, attr: Optional[str] = None) -> Iterator[Dict[str, Any]]:
    """Walk DRF's nested error detail and yield one entry per message."""
    if isinstance(detail, dict):
        for key, value in detail.items():
            if key in (api_settings.NON_FIELD_ERRORS_KEY, "detail"):
                child = attr
            else:
                child = key if attr is None else f"{attr}.{key}"
            yield from _flatten(value, child)
    elif isinstance(detail, list):
        for index, item in enumerate(detail):
            child = attr
            if isinstance(item, dict):
                child = str(index) if attr is None else f"{attr}.{index}"
            yield from _flatten(item, child)
    else:
        entry: Dict[str, Any] = {
            "code": getattr(detail, "code", None) or "error",
            "detail": str(detail),
        }
        if attr is not None:
            entry["attr"] = attr
        yield entry


def _error_type(exc: Exception, status_code: int) -> str:
    if isinstance(exc, (exceptions.ValidationError, exceptions.ParseError)):
        return "validation_error"
    if status_code >= 500:
        return "server_error"
    return "client_error"


def standard_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    """DRF ``EXCEPTION_HANDLER`` that rewrites every handled error body.

    Unhandled exceptions (``None`` from DRF) still propagate so Django
    returns a 500 and the traceback is logged.
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    response.data = {
        "type": _error_type(exc, response.status_code),
        "errors": list(_flatten(response.data)),
    }
    return response


def error_response(
    error_type: str,
    errors: List[Dict[str, Any]],
    http_status: int,
) -> Response:
    """Build a response in the standard envelope for errors raised outside DRF.

    Views use this when translating service-layer exceptions and DTO
    validation errors, so every error looks the same to API clients.
    """
    logger.info(
        "api.error_response",
        error_type=error_type,
        codes=[entry.get("code") for entry in errors],
        status_code=http_status,
    )
    return Response({"type": error_type, "errors": errors}, status=http_status)
