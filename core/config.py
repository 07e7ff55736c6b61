"""Checkout engine configuration."""

from datetime import timedelta

from pydantic import BaseModel, Field


class CheckoutConfig(BaseModel):
    """
    Tunables for the ledger, reconciliation and booking lifecycle.

    The points conversion rate (100 points per currency unit) is a fixed
    property of the wallet and deliberately not configurable here.
    """

    # Wallet ledger
    ledger_max_retries: int = Field(
        default=5,
        description="Optimistic concurrency attempts per wallet mutation",
        ge=1,
        le=50,
    )

    # Reconciliation of failed wallet debits
    reconciliation_max_attempts: int = Field(
        default=8,
        description="Retries before an outbox entry is flagged for manual review",
        ge=1,
        le=100,
    )
    reconciliation_backoff_seconds: int = Field(
        default=30,
        description="Base delay between retries; doubles per attempt",
        ge=1,
    )
    reconciliation_max_backoff_seconds: int = Field(
        default=3600,
        description="Upper bound on the delay between retries",
        ge=1,
    )
    reconciliation_batch_size: int = Field(
        default=100,
        description="Outbox entries processed per worker pass",
        ge=1,
        le=1000,
    )
    reconciliation_interval_seconds: float = Field(
        default=60.0,
        description="Pause between worker passes",
        gt=0,
    )

    # Booking lifecycle
    loyalty_points_per_unit: int = Field(
        default=10,
        description="Reward points per currency unit spent, credited on completion",
        ge=0,
        le=100,
    )
    refund_wallet_on_cancel: bool = Field(
        default=True,
        description="Credit the wallet portion back when a booking is cancelled",
    )
    booking_reference_prefix: str = Field(
        default="BK",
        description="Prefix of human-readable booking references",
        min_length=1,
        max_length=8,
    )
    salon_timezone: str = Field(
        default="Asia/Dubai",
        description="IANA timezone used for the date part of booking references",
    )

    def backoff_delay(self, attempts: int) -> timedelta:
        """Wait before the next retry of an outbox entry that has failed `attempts` times."""
        exponent = min(max(attempts - 1, 0), 30)
        seconds = min(
            self.reconciliation_backoff_seconds * 2 ** exponent,
            self.reconciliation_max_backoff_seconds,
        )
        return timedelta(seconds=seconds)
