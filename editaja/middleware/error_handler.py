"""Global exception handling: every failure leaves the API as an ok/error envelope."""

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from editaja.utils.exceptions import EditAjaException, ServiceUnavailableError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)


def error_response(
    status_code: int,
    message: str,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """
    Create JSON error response.

    Args:
        status_code: HTTP status code.
        message: Error message.
        error_code: Error code identifier.
        details: Additional error details.
        headers: Extra response headers.
        extra: Extra top-level body fields.

    Returns:
        JSON response.
    """
    content: Dict[str, Any] = {"ok": False, "error": message}
    if error_code:
        content["code"] = error_code
    if details:
        content["details"] = details
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Global error handler middleware that catches and formats all exceptions."""

    async def dispatch(self, request: Request, call_next: Any) -> JSONResponse:
        """
        Handle exceptions and return proper JSON responses.

        Args:
            request: HTTP request.
            call_next: Next middleware/route handler.

        Returns:
            JSON response with error details.
        """
        # Let OPTIONS (CORS preflight) requests pass through untouched
        if request.method == "OPTIONS":
            return await call_next(request)

        try:
            return await call_next(request)
        except EditAjaException as e:
            return handle_app_exception(request, e)
        except Exception as e:
            logger.error(
                f"Unhandled exception: {str(e)}",
                extra={"extra_data": {"exception_type": type(e).__name__, "path": request.url.path}},
                exc_info=True,
            )
            return error_response(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                message="An unexpected error occurred",
                error_code="INTERNAL_SERVER_ERROR",
            )


def handle_app_exception(request: Request, exc: EditAjaException) -> JSONResponse:
    """Render an application exception."""
    logger.warning(
        f"edit Aja exception: {exc.error_code} - {exc.message}",
        extra={"extra_data": {"error_code": exc.error_code, "details": exc.details, "path": request.url.path}},
    )
    headers = extra = None
    if isinstance(exc, ServiceUnavailableError):
        headers = {"Retry-After": str(exc.retry_after)}
        extra = {"retryAfter": exc.retry_after}
    return error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details,
        headers=headers,
        extra=extra,
    )


async def app_exception_handler(request: Request, exc: EditAjaException) -> JSONResponse:
    return handle_app_exception(request, exc)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render FastAPI's HTTPException in the ok/error envelope."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    details = exc.detail if isinstance(exc.detail, dict) else None
    return error_response(
        status_code=exc.status_code,
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as a 400 envelope."""
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())[1:]), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    all_missing = all(err.get("type") == "missing" for err in exc.errors())
    message = "Missing required fields" if all_missing else "Invalid request"
    return error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        message=message,
        error_code="VALIDATION_ERROR",
        details={"errors": errors},
    )
