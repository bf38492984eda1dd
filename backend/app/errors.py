"""Map engagement errors to HTTP responses."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from homexpert.engagement.errors import (
    ConcurrencyTimeoutError,
    EngagementError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

from .logging_config import get_logger

logger = get_logger("homexpert.errors")

STATUS_BY_ERROR = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    UnauthorizedError: status.HTTP_403_FORBIDDEN,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ConcurrencyTimeoutError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(error: EngagementError) -> int:
    """HTTP status for an engagement error; conflicts default to 409."""
    for error_cls, code in STATUS_BY_ERROR.items():
        if isinstance(error, error_cls):
            return code
    return status.HTTP_409_CONFLICT


async def engagement_error_handler(request: Request, exc: EngagementError) -> JSONResponse:
    code = status_for(exc)
    logger.info(f"{request.method} {request.url.path} | {code} {exc.kind} | {exc.message}")
    return JSONResponse(
        status_code=code,
        content={
            "detail": exc.message,
            "kind": exc.kind,
            "refresh": exc.refresh_required,
            "existing_id": exc.existing_id,
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EngagementError, engagement_error_handler)
