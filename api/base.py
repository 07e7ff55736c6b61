"""Unified API response format and error handling."""

from typing import Any
from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from utils.timezone import now_utc


class APIError(BaseModel):
    """Error details in API response."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")


class APIMeta(BaseModel):
    """Metadata included in every API response."""

    timestamp: datetime = Field(..., description="Response timestamp (UTC)")
    request_id: str = Field(..., description="Unique request identifier for tracing")


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
            request_id=str(uuid4()),
        ),
    )


def error_response(code: str, message: str) -> APIResponse:
    """Create an error response."""
    return APIResponse(
        success=False,
        data=None,
        error=APIError(code=code, message=message),
        meta=APIMeta(
            timestamp=now_utc(),
            request_id=str(uuid4()),
        ),
    )


class ErrorCodes:
    """
    Standard error codes for consistent error handling.

    Checkout validation failures reuse the code carried by the
    BookingValidationError subclass that was raised.
    """

    # Resource Errors
    NOT_FOUND = "NOT_FOUND"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Checkout
    EMPTY_CART = "EMPTY_CART"
    MISSING_CUSTOMER_INFO = "MISSING_CUSTOMER_INFO"
    MISSING_SCHEDULE = "MISSING_SCHEDULE"
    MISSING_STAFF = "MISSING_STAFF"
    MISSING_PAYMENT_METHOD = "MISSING_PAYMENT_METHOD"
    UNAUTHENTICATED_PAYMENT_MODE = "UNAUTHENTICATED_PAYMENT_MODE"
    INVALID_INPUT = "INVALID_INPUT"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    MISMATCHED_TOTAL = "MISMATCHED_TOTAL"
    EXCEEDS_WALLET_BALANCE = "EXCEEDS_WALLET_BALANCE"

    # Booking Lifecycle
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"

    # Wallet
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"

    # Infrastructure
    INTERNAL_ERROR = "INTERNAL_ERROR"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
