# tablekit/middleware/error_handler.py
# Error envelope for the HTTP layer.
# Services report failures as ActionResult; routers turn those into AppError
# subclasses, and everything leaves as {"error": {"code", "message", ...}}.

import logging
import traceback
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from tablekit.utils.logger import log_exception

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error; subclasses pin the code and HTTP status."""

    error_code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "An internal error occurred"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Rejected input: unknown filter column, blank view name, bad record fields."""
    error_code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Validation failed"


class NotFoundError(AppError):
    error_code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class DatabaseError(AppError):
    """Saved-view storage could not be reached."""
    error_code = "DATABASE_ERROR"
    status_code = 503
    default_message = "Database operation failed"


def create_error_response(
    error_code: str,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {"code": error_code, "message": message}
    if details:
        body["details"] = details
    if request_id:
        body["request_id"] = request_id
    return JSONResponse(status_code=status_code, content={"error": body})


def _app_error_response(exc: AppError, request_id: Optional[str] = None) -> JSONResponse:
    return create_error_response(exc.error_code, exc.message, exc.status_code, exc.details, request_id)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Outermost guard: whatever escapes the routes becomes a JSON error.

    Tracebacks are only echoed back to the client in debug mode.
    """

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get("X-Request-ID", str(id(request)))
        log_extra = {"request_id": request_id, "path": request.url.path}

        try:
            return await call_next(request)
        except AppError as e:
            logger.warning(f"{e.error_code}: {e.message}", extra=log_extra)
            return _app_error_response(e, request_id)
        except HTTPException as e:
            logger.warning(f"HTTP {e.status_code}: {e.detail}", extra=log_extra)
            return create_error_response("HTTP_ERROR", str(e.detail), e.status_code, request_id=request_id)
        except Exception as e:
            log_exception(e, context=f"{request.method} {request.url.path}")
            logger.error(f"Unhandled {type(e).__name__}: {e}", extra=log_extra, exc_info=True)
            details = {"type": type(e).__name__, "traceback": traceback.format_exc()} if self.debug else None
            return create_error_response(
                "INTERNAL_ERROR",
                "An internal error occurred. Please try again later.",
                500,
                details,
                request_id,
            )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the handlers that run inside FastAPI's exception middleware."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
        return _app_error_response(exc)

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return create_error_response("HTTP_ERROR", str(exc.detail), exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return create_error_response(
            "VALIDATION_ERROR", "Request validation failed", 422, {"errors": errors}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        log_exception(exc, context=f"{request.method} {request.url.path}")
        return create_error_response("INTERNAL_ERROR", "An internal error occurred", 500)
