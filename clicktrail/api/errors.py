"""
Exception handlers for both HTTP surfaces.

Services raise ClickTrailError subclasses; these handlers turn them into
JSON responses so endpoints stay free of try/except boilerplate.

- Admin surface: {error, message, code, details}, plus stack outside production
- Redirect surface: {error, message} only
"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from clicktrail.core.exceptions import ClickTrailError
from clicktrail.core.setting import settings

logger = logging.getLogger(__name__)

INTERNAL_ERROR_TITLE = "Internal Server Error"


def _log(request: Request, exc: Exception, status_code: int) -> None:
    if status_code >= 500:
        logger.error(
            f"{request.method} {request.url.path} failed: {str(exc)}",
            exc_info=exc
        )
    else:
        logger.info(f"{request.method} {request.url.path} -> {status_code}: {str(exc)}")


def _stack(exc: Exception) -> Optional[str]:
    if settings.is_production:
        return None
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def admin_error_body(
    error: str,
    message: str,
    code: Optional[str] = None,
    details: Any = None,
    exc: Optional[Exception] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "error": error,
        "message": message,
        "code": code,
        "details": details if details is not None else message,
    }
    if exc is not None:
        stack = _stack(exc)
        if stack:
            body["stack"] = stack
    return body


# Admin surface

async def admin_clicktrail_error_handler(request: Request, exc: ClickTrailError) -> JSONResponse:
    _log(request, exc, exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=admin_error_body(exc.title, exc.message, exc.code, exc=exc),
    )


async def admin_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    _log(request, exc, status.HTTP_400_BAD_REQUEST)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=admin_error_body(
            "Bad Request",
            "Request validation failed",
            "VALIDATION_ERROR",
            details=[
                {"loc": list(error.get("loc", ())), "msg": error.get("msg")}
                for error in exc.errors()
            ],
        ),
    )


async def admin_http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=admin_error_body(_title_for(exc.status_code), str(exc.detail), "HTTP_ERROR"),
        headers=getattr(exc, "headers", None),
    )


async def admin_unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    _log(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=admin_error_body(INTERNAL_ERROR_TITLE, "An unexpected error occurred", "INTERNAL_ERROR", details=str(exc), exc=exc),
    )


# Redirect surface

def redirect_error_body(error: str, message: str) -> Dict[str, str]:
    return {"error": error, "message": message}


async def redirect_clicktrail_error_handler(request: Request, exc: ClickTrailError) -> JSONResponse:
    _log(request, exc, exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=redirect_error_body(exc.title, exc.message),
    )


async def redirect_http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=redirect_error_body(_title_for(exc.status_code), str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def redirect_rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    response = JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=redirect_error_body(_title_for(status.HTTP_429_TOO_MANY_REQUESTS), f"Rate limit exceeded: {exc.detail}"),
    )
    return request.app.state.limiter._inject_headers(response, getattr(request.state, "view_rate_limit", None))


async def redirect_unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    _log(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=redirect_error_body(INTERNAL_ERROR_TITLE, "An unexpected error occurred"),
    )


def _title_for(status_code: int) -> str:
    titles = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        410: "Gone",
        429: "Too Many Requests",
        503: "Service Unavailable",
    }
    return titles.get(status_code, INTERNAL_ERROR_TITLE if status_code >= 500 else "Error")


def register_admin_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClickTrailError, admin_clicktrail_error_handler)
    app.add_exception_handler(RequestValidationError, admin_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, admin_http_error_handler)
    app.add_exception_handler(Exception, admin_unhandled_error_handler)


def register_redirect_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClickTrailError, redirect_clicktrail_error_handler)
    app.add_exception_handler(RateLimitExceeded, redirect_rate_limit_handler)
    app.add_exception_handler(StarletteHTTPException, redirect_http_error_handler)
    app.add_exception_handler(Exception, redirect_unhandled_error_handler)
