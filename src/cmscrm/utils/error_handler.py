# src/cmscrm/utils/error_handler.py
from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.cmscrm.config import settings
from src.cmscrm.utils.exceptions import AppError, UnclassifiedError, ValidationError
from src.cmscrm.utils.responses import error_response
from src.cmscrm.utils.validation import format_errors

logger = logging.getLogger("fastapi")

INTERNAL_ERROR = "Internal server error"
RATE_LIMITED = "Too many requests from this IP, please try again later."


def _safe_args(exc: Exception) -> str:
    a = getattr(exc, "args", None)
    return str(a) if a else "No additional details"


def _log_http(request: Request, status_code: int, detail: str, exc: Exception) -> None:
    """
    Log levels:
    - 404 -> INFO (normal noise)
    - 401/403 -> WARNING (auth/permission)
    - other 4xx -> WARNING with args
    - 5xx -> EXCEPTION (stack trace)
    """
    method, path = request.method, request.url.path

    if status_code == 404:
        logger.info("404 Not Found: %s %s | detail=%s", method, path, detail)
        return

    if status_code in (401, 403):
        logger.warning("%s: %s %s | detail=%s", status_code, method, path, detail)
        return

    if 400 <= status_code < 500:
        logger.warning(
            "%s: %s %s | detail=%s | args=%s",
            status_code, method, path, detail, _safe_args(exc),
        )
        return

    logger.error(
        "%s: %s %s | detail=%s", status_code, method, path, detail,
        exc_info=(type(exc), exc, exc.__traceback__),
    )


def _dev_error(exc: BaseException) -> str | None:
    return str(exc) if settings.is_development else None


# ----------------------------------------
# Handlers
# ----------------------------------------
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    _log_http(request, exc.status_code, exc.message, exc)

    if isinstance(exc, ValidationError):
        return error_response(exc.status_code, exc.message, extra={"errors": exc.errors})

    if isinstance(exc, UnclassifiedError):
        cause = exc.cause if exc.cause is not None else exc
        return error_response(exc.status_code, exc.message, error=_dev_error(cause))

    return error_response(exc.status_code, exc.message)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = format_errors(exc.errors())
    logger.warning("400 Validation error: %s %s | %s", request.method, request.url.path, errors)
    return error_response(400, "Validation failed", extra={"errors": errors})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    status = int(exc.status_code)
    detail = str(exc.detail)
    _log_http(request, status, detail, exc)

    if status == 404 and detail == "Not Found":
        # router-level miss, not a handler raising 404
        return error_response(404, "Endpoint not found", extra={"path": request.url.path})

    return error_response(status, detail, headers=getattr(exc, "headers", None))


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("429: %s %s | limit=%s", request.method, request.url.path, exc.detail)
    return error_response(429, RATE_LIMITED)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("500 Unhandled exception: %s %s | %s", request.method, request.url.path, exc)
    return error_response(500, INTERNAL_ERROR, error=_dev_error(exc))


def register_exception_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
