"""Unified API response format and error codes."""

from contextvars import ContextVar
from typing import Any
from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from utils.timezone import now_utc

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def set_request_id(request_id: str):
    """Bind the current request id. Returns a token for reset_request_id()."""
    return _request_id.set(request_id)


def reset_request_id(token) -> None:
    _request_id.reset(token)


def current_request_id() -> str:
    """Request id bound by RequestIDMiddleware, or a fresh one outside a request."""
    return _request_id.get() or str(uuid4())


class APIError(BaseModel):
    """Error details in API response."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")


class APIMeta(BaseModel):
    """Metadata included in every API response."""

    timestamp: datetime = Field(..., description="Response timestamp (UTC)")
    request_id: str = Field(..., description="Request identifier for tracing")


class APIResponse(BaseModel):
    """
    Unified response format for all API endpoints.

    Every endpoint returns this structure, making client parsing predictable.
    """

    success: bool
    data: Any | None = None
    error: APIError | None = None
    meta: APIMeta


def success_response(data: Any) -> APIResponse:
    """Create a success response."""
    return APIResponse(
        success=True,
        data=data,
        error=None,
        meta=APIMeta(
            timestamp=now_utc(),
            request_id=current_request_id(),
        ),
    )


def error_response(code: str, message: str, data: Any | None = None) -> APIResponse:
    """Create an error response. `data` carries partial results, e.g. a failed batch."""
    return APIResponse(
        success=False,
        data=data,
        error=APIError(code=code, message=message),
        meta=APIMeta(
            timestamp=now_utc(),
            request_id=current_request_id(),
        ),
    )


class ErrorCodes:
    """Standard error codes for consistent error handling."""

    # Resource Errors
    NOT_FOUND = "NOT_FOUND"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Invoice Lifecycle
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    INTEGRITY_MISMATCH = "INTEGRITY_MISMATCH"
    RENDER_FAILED = "RENDER_FAILED"
    BULK_GENERATE_FAILED = "BULK_GENERATE_FAILED"
    TIMEOUT = "TIMEOUT"

    # Infrastructure
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    INVOICE_NUMBER_UNAVAILABLE = "INVOICE_NUMBER_UNAVAILABLE"
