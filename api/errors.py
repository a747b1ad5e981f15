"""
API Error Handling

Standardized error handling for the API. Domain exceptions are mapped
to HTTP statuses through one table; anything unmapped is a 400.
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.models.responses import ErrorResponse, ErrorDetail
from core.schemas.errors import ErrorCodes, OracleNetException

logger = logging.getLogger(__name__)


STATUS_BY_CODE: dict[str, int] = {
    ErrorCodes.INVALID_ADDRESS: 400,
    ErrorCodes.INVALID_ISSUE_URL: 400,
    ErrorCodes.WRONG_ISSUE_NUMBER: 400,
    ErrorCodes.MISSING_LABEL: 400,
    ErrorCodes.CODE_MISMATCH_OR_EXPIRED: 400,
    ErrorCodes.COMMENT_AUTHOR_MISMATCH: 400,
    ErrorCodes.COMMENT_NOT_FOUND: 400,
    ErrorCodes.INVALID_SIGNATURE: 401,
    ErrorCodes.NONCE_NOT_FOUND_OR_EXPIRED: 401,
    ErrorCodes.NONCE_REPLAY: 401,
    ErrorCodes.ISSUE_NOT_FOUND: 404,
    ErrorCodes.IDENTITY_NOT_FOUND: 404,
    ErrorCodes.LEAF_NOT_FOUND: 404,
    ErrorCodes.CONFLICTING_LINK: 409,
    ErrorCodes.PROOF_VERIFICATION_FAILED: 422,
    ErrorCodes.STORAGE_ERROR: 500,
    ErrorCodes.UPSTREAM_UNAVAILABLE: 503,
}


class APIError(Exception):
    """Base API error with structured response."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.retryable = retryable
        super().__init__(message)

    @classmethod
    def from_domain(cls, exc: OracleNetException) -> "APIError":
        return cls(
            code=exc.code,
            message=exc.message,
            status_code=STATUS_BY_CODE.get(exc.code, 400),
            details=exc.details,
            retryable=exc.retryable,
        )

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code=self.code,
                message=self.message,
                details=self.details,
                retryable=self.retryable,
            ),
        )


class InvalidRequestError(APIError):
    """Invalid request parameters."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code="INVALID_REQUEST",
            message=message,
            status_code=400,
            details=details,
        )


class InternalError(APIError):
    """Internal server error."""

    def __init__(self, message: str = "Internal server error", details: dict[str, Any] | None = None):
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
            details=details,
        )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(),
    )


async def domain_error_handler(request: Request, exc: OracleNetException) -> JSONResponse:
    """Handle domain exceptions raised by the verification services."""
    api_error = APIError.from_domain(exc)
    if api_error.status_code >= 500:
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
    return await api_error_handler(request, api_error)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request body validation failures."""
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return await api_error_handler(
        request,
        InvalidRequestError("Request validation failed", details={"errors": errors}),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
                details={"type": type(exc).__name__},
            ),
        ).model_dump(),
    )
