"""Global error handling middleware for consistent error responses."""

import logging
import traceback
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from pricing_engine.core.exceptions import (
    PricingError,
    ReturnQuantityError,
    RoundingInvariantViolation,
)
from pricing_engine.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors.

    Raised by routes for errors that should reach the client with a
    specific status code and message.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str = "api_error",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code to return.
            error_type: Error category/type for client handling.
            details: Optional additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found error."""

    def __init__(self, message: str = "Resource not found", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_type="not_found",
            details=details,
        )


def pricing_error_status(error: PricingError) -> int:
    """HTTP status code for a domain error.

    Configuration and reconstruction errors are 422: the request was well
    formed but the stored pricing data cannot serve it.
    """
    if isinstance(error, RoundingInvariantViolation):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(error, ReturnQuantityError):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_422_UNPROCESSABLE_ENTITY


def pricing_error_details(error: PricingError) -> list[dict[str, Any]] | None:
    """Flatten a domain error's details into error response entries."""
    if not error.details:
        return None
    return [
        {"loc": [key], "msg": str(value), "type": error.error_type}
        for key, value in error.details.items()
    ]


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create a standardized JSON error response.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        details: Optional error details.
        request_id: Optional request ID for tracing.

    Returns:
        JSONResponse: Formatted error response.
    """
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
    """Middleware to catch and format all exceptions.

    Domain errors from the pricing core are mapped to status codes here so
    routes only handle the cases that need a customer-facing message.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: Either the successful response or formatted error response.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        response = await call_next(request)
        return response

    except APIError as e:
        logger.warning(
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

    except RoundingInvariantViolation as e:
        logger.error(
            "Refund rounding invariant violated: %s\n%s",
            e.message,
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type=e.error_type,
            message="Refund could not be computed",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )

    except PricingError as e:
        status_code = pricing_error_status(e)
        logger.warning(
            "Pricing error: %s - %s",
            e.error_type,
            e.message,
            extra={"request_id": request_id, "status_code": status_code},
        )
        return create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=status_code,
            details=pricing_error_details(e),
            request_id=request_id,
        )

    except HTTPException as e:
        logger.warning(
            "HTTP exception: %s - %s",
            e.status_code,
            e.detail,
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
        )

    except Exception as e:
        logger.error(
            "Unhandled exception: %s\n%s",
            str(e),
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
