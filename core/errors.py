"""Error taxonomy and the middleware that renders it as JSON."""

import logging
from typing import Any, Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from core.config import settings
from schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for errors returned to the client with a stable kind."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "api_error"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(APIError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_type = "validation_error"
    default_message = "Validation error"


class EmptyCartError(ValidationError):
    error_type = "empty_cart"
    default_message = "Cart is empty"


class AuthenticationError(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "authentication_error"
    default_message = "Not authenticated"


class ForbiddenError(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    error_type = "forbidden"
    default_message = "Forbidden"


class NotFoundError(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"
    default_message = "Not found"


class ConflictError(APIError):
    status_code = status.HTTP_409_CONFLICT
    error_type = "conflict"
    default_message = "Conflict"


class InvalidTransitionError(ConflictError):
    error_type = "invalid_transition"
    default_message = "Invalid status transition"


class RateLimitError(APIError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_type = "rate_limited"
    default_message = "Too many requests"


class PaymentAuthorizationError(APIError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    error_type = "payment_authorization_error"
    default_message = "Payment authorization failed"


class InternalError(APIError):
    error_type = "internal_error"
    default_message = "An unexpected error occurred"


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    error_response = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Catch service errors and unexpected exceptions and format them.

    Stack traces are logged; clients only see the original message of an
    unexpected error when DEBUG is on.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        return await call_next(request)

    except APIError as e:
        log = logger.error if e.status_code >= 500 else logger.warning
        log(
            "API error: %s - %s",
            e.error_type,
            e.message,
            extra={"request_id": request_id, "status_code": e.status_code},
        )
        return create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=e.status_code,
            details=e.details,
            request_id=request_id,
        )

    except Exception as e:
        logger.exception("Unhandled exception: %s", e, extra={"request_id": request_id})
        return create_error_response(
            error_type=InternalError.error_type,
            message=str(e) if settings.DEBUG else InternalError.default_message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
