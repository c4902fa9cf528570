"""Translate domain errors into JSON HTTP responses."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.clubmeet.core.errors import (
    ClubMeetError,
    ConflictError,
    NotFoundError,
    RemoteAuthError,
    RemoteError,
    ValidationError,
)

logger = structlog.get_logger(__name__)


def _status_for(exc: ClubMeetError) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, RemoteAuthError):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, RemoteError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def clubmeet_error_handler(request: Request, exc: ClubMeetError) -> JSONResponse:
    status_code = _status_for(exc)
    content: dict = {"detail": str(exc), "error": type(exc).__name__}

    entity = getattr(exc, "entity", None)
    if entity is not None and hasattr(entity, "model_dump"):
        content["conflicting"] = entity.model_dump(mode="json")

    log_method = logger.error if status_code >= 500 else logger.info
    log_method(
        "api.domain_error",
        path=request.url.path,
        status_code=status_code,
        error=type(exc).__name__,
        detail=str(exc),
    )
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClubMeetError, clubmeet_error_handler)
