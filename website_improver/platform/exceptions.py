from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from website_improver.platform.logger import get_logger
from website_improver.platform.response import api_response

logger = get_logger(__name__)


class AppError(Exception):
    """Base class for errors that map onto a stable API error code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.message
        self.code = code or self.code
        super().__init__(self.message)


class InputValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    message = "Invalid request data"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "Authentication required"


class InsufficientCreditsError(AppError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    code = "INSUFFICIENT_CREDITS"
    message = "Insufficient credits to perform analysis"


class NotFoundError(AppError):
    # Also raised for resources owned by someone else.
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Resource not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "ANALYSIS_NOT_COMPLETE"
    message = "Analysis results not yet available"


class JobFinalizedError(ConflictError):
    code = "JOB_ALREADY_FINISHED"
    message = "Analysis job has already finished"


class RateLimitedError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMIT_EXCEEDED"
    message = "Too many requests. Please try again later."

    def __init__(self, message: Optional[str] = None, retry_after: int = 60):
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamFailureError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "UPSTREAM_ERROR"
    message = "Upstream service failed"


class PersistenceError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"
    message = "Failed to persist changes"


def add_exception_handlers(app):
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.exception(f"{exc.code} on {request.url.path}: {exc.message}")
            return api_response(
                message="Internal server error",
                status_code=exc.status_code,
                error_code=exc.code,
            )

        headers = None
        if isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after)}

        return api_response(
            message=exc.message,
            status_code=exc.status_code,
            error_code=exc.code,
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return api_response(
            message=str(exc.detail) or "Error",
            status_code=exc.status_code,
            error_code="HTTP_ERROR",
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(error.get("loc", [])), "msg": error.get("msg", "")}
            for error in exc.errors()
        ]
        return api_response(
            message="Invalid request data",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_ERROR",
            data={"errors": errors},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return api_response(
            message="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_ERROR",
        )
