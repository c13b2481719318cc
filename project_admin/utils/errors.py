"""Custom exception classes and error handling."""
from typing import Any, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from project_admin.config.sentry import add_breadcrumb, capture_exception
from project_admin.utils.logger import get_logger

logger = get_logger(__name__)


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or "APP_ERROR"
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Validation error."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            code="VALIDATION_ERROR",
            details=details or {},
        )


class NotFoundError(AppError):
    """Resource not found error."""

    def __init__(self, resource: str, identifier: Optional[Any] = None):
        message = f"{resource} not found"
        if identifier is not None:
            message += f" (id: {identifier})"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            code="NOT_FOUND",
        )


class UnauthorizedError(AppError):
    """Unauthorized access error."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="UNAUTHORIZED",
        )


class ForbiddenError(AppError):
    """Forbidden access error."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            code="FORBIDDEN",
        )


class ConflictError(AppError):
    """Resource already exists."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            code="CONFLICT",
            details=details or {},
        )


class CorsOriginError(AppError):
    """Request origin is not in the CORS allow-list."""

    def __init__(self, origin: str):
        super().__init__(
            message="Not allowed by CORS",
            status_code=status.HTTP_403_FORBIDDEN,
            code="CORS_ORIGIN_DENIED",
            details={"origin": origin},
        )
        self.origin = origin


class PayloadTooLargeError(AppError):
    """Declared request body exceeds the configured limit."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            message=f"Request body too large ({size} bytes, limit {limit})",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            code="PAYLOAD_TOO_LARGE",
            details={"size": size, "limit": limit},
        )


class ConfigurationError(AppError):
    """Required environment configuration is missing or invalid."""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code="CONFIGURATION_ERROR",
            details={"errors": errors or []},
        )
        self.errors = errors or []


class DatabaseConnectionError(AppError):
    """Database could not be reached during startup."""

    def __init__(self, message: str, attempts: int):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code="DATABASE_UNAVAILABLE",
            details={"attempts": attempts},
        )
        self.attempts = attempts


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[Any] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """Build the failure envelope shared by every handler."""
    content = {
        "success": False,
        "error": code,
        "message": message,
    }
    if details:
        content["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _request_data(request: Request) -> dict:
    return {
        "path": request.url.path,
        "method": request.method,
    }


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle application errors."""
    add_breadcrumb(
        message=f"Application error: {exc.code}",
        category="error",
        level="warning" if exc.status_code < 500 else "error",
        data={**_request_data(request), "status_code": exc.status_code},
    )

    logger.warning(
        "Application error",
        error=exc.code,
        message=exc.message,
        path=request.url.path,
        status_code=exc.status_code,
    )

    if exc.status_code >= 500:
        capture_exception(
            exc,
            level="error",
            context={
                "request": _request_data(request),
                "error": {"code": exc.code, "message": exc.message, "details": exc.details},
            },
            tags={"error_type": exc.code, "path": request.url.path},
        )

    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request body/query validation errors, including malformed JSON."""
    add_breadcrumb(
        message="Request validation failed",
        category="validation",
        level="warning",
        data=_request_data(request),
    )

    logger.warning(
        "Validation error",
        path=request.url.path,
        errors=exc.errors(),
    )

    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Request validation failed",
        exc.errors(),
    )


async def not_found_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Fallback for requests that matched no route."""
    logger.info("Route not found", path=request.url.path, method=request.method)
    return error_response(
        status.HTTP_404_NOT_FOUND,
        "NOT_FOUND",
        f"Not Found - {request.url.path}",
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (404, 405, ...) in the application envelope."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return await not_found_handler(request, exc)

    return error_response(
        exc.status_code,
        "HTTP_ERROR",
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    add_breadcrumb(
        message=f"Unexpected error: {type(exc).__name__}",
        category="exception",
        level="error",
        data={**_request_data(request), "error_type": type(exc).__name__},
    )

    logger.error(
        "Unexpected error",
        error=str(exc),
        path=request.url.path,
        exc_info=exc,
    )

    capture_exception(
        exc,
        level="error",
        context={"request": {**_request_data(request), "url": str(request.url)}},
        tags={"error_type": type(exc).__name__, "path": request.url.path},
    )

    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An unexpected error occurred",
    )
