"""Mapping of domain errors to HTTP responses.

Installed as the REST framework EXCEPTION_HANDLER, so handlers can let
DomainError propagate. Only the error code and its user-safe message leave
the service.
"""

from typing import Any

import structlog
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from allocation.domain.errors import (
    BadRequestError,
    ConflictError,
    DomainError,
    NotFoundError,
    StorageUnavailableError,
)

logger = structlog.get_logger(__name__)

_STATUS_BY_FAMILY: list[tuple[type[DomainError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (BadRequestError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StorageUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(error: DomainError) -> int:
    for family, http_status in _STATUS_BY_FAMILY:
        if isinstance(error, family):
            return http_status
    return status.HTTP_400_BAD_REQUEST


def domain_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    if isinstance(exc, DomainError):
        http_status = status_for(exc)
        logger.info(
            "domain_error_response",
            code=exc.code.value,
            status=http_status,
            view=type(context.get("view")).__name__,
        )
        return Response({"code": exc.code.value, "message": exc.message}, status=http_status)
    return exception_handler(exc, context)
