"""
Translate domain errors into `{success: false, message}` responses.

Register on a FastAPI app via `register_exception_handlers(app)`.
"""

import logging

import psycopg
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mailotp.domain.errors import (
    CodeExhausted,
    CodeGenerationFailed,
    CodeMismatch,
    DeliveryFailed,
    InvalidCode,
    NoActiveChallenge,
    OtpError,
    StoreUnavailable,
    TooSoon,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[OtpError], int] = {
    TooSoon: status.HTTP_429_TOO_MANY_REQUESTS,
    CodeExhausted: status.HTTP_429_TOO_MANY_REQUESTS,
    NoActiveChallenge: status.HTTP_400_BAD_REQUEST,
    InvalidCode: status.HTTP_400_BAD_REQUEST,
    CodeMismatch: status.HTTP_400_BAD_REQUEST,
    DeliveryFailed: status.HTTP_502_BAD_GATEWAY,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    CodeGenerationFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: OtpError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return status.HTTP_400_BAD_REQUEST


async def otp_error_handler(request: Request, exc: OtpError) -> JSONResponse:
    status_code = status_for(exc)
    content: dict = {"success": False, "message": exc.message}
    headers: dict[str, str] = {}

    if isinstance(exc, TooSoon):
        content["remaining_seconds"] = exc.remaining_seconds
        headers["Retry-After"] = str(exc.remaining_seconds)
    elif isinstance(exc, CodeMismatch):
        content["attempts_remaining"] = exc.attempts_remaining

    if status_code >= 500:
        logger.error(
            "request failed",
            extra={"path": request.url.path, "error": type(exc).__name__},
            exc_info=exc,
        )
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = [".".join(str(p) for p in err["loc"][1:]) for err in exc.errors()]
    return JSONResponse(
        status_code=422,
        content={"success": False, "message": "invalid request", "fields": fields},
    )


async def database_error_handler(request: Request, exc: psycopg.Error) -> JSONResponse:
    logger.error(
        "accounts database error",
        extra={"path": request.url.path, "error": type(exc).__name__},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"success": False, "message": StoreUnavailable.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OtpError, otp_error_handler)
    app.add_exception_handler(psycopg.Error, database_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
