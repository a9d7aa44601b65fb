"""
FastAPI exception handlers for structured error responses.

Maps request-level exceptions to HTTP status codes and the standard
``{success: false, error, message, details?, timestamp}`` body.
"""

import math

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from classification_proxy.api.models import ErrorResponse
from classification_proxy.exceptions import ProxyError
from classification_proxy.models.enums import ErrorCode

logger = structlog.get_logger(__name__)


def _error_body(error: ErrorResponse) -> dict:
    return error.model_dump(mode="json", by_alias=True, exclude_none=True)


async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
    """
    Handle request-level failures (auth, validation, quota, fingerprint cap).

    429 responses also carry a Retry-After header when the retry delay is
    known.
    """
    logger.warning(
        "Request rejected",
        error=exc.code.value,
        message=exc.message,
        status_code=exc.status_code,
    )

    headers = {}
    retry_after_ms = exc.details.get("retryAfterMs")
    if exc.status_code == status.HTTP_429_TOO_MANY_REQUESTS and retry_after_ms is not None:
        headers["Retry-After"] = str(max(1, math.ceil(retry_after_ms / 1000)))

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(
            ErrorResponse(error=exc.code.value, message=exc.message, details=exc.details or None)
        ),
        headers=headers or None,
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle malformed JSON bodies and invalid query parameters.

    Maps to 400 Bad Request (client error).
    """
    errors = [
        {"loc": ".".join(str(part) for part in err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.warning("Invalid request format", errors=errors)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(
            ErrorResponse(
                error=ErrorCode.INVALID_REQUEST.value,
                message="Request validation failed",
                details={"errors": errors},
            )
        ),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.

    Maps to 500 Internal Server Error.
    """
    logger.exception("Unexpected error", error_type=type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            ErrorResponse(
                error=ErrorCode.INTERNAL_ERROR.value,
                message="An internal error occurred",
            )
        ),
    )


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    ProxyError: proxy_error_handler,
    RequestValidationError: request_validation_error_handler,
    Exception: generic_error_handler,
}
