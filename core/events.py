"""
Domain events for the checkout engine.

Immutable event objects that represent state changes. A service publishes
what happened and handlers react (loyalty reward, refund) without the
publisher knowing who is listening.

Event Categories:
- BookingEvent: Booking lifecycle (created, status changed, completed, cancelled)
- WalletEvent: Ledger mutations (debited, credited)

Events carry the full domain object so handlers don't need to re-fetch state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class CheckoutEvent:
    """Base class for all checkout domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


# =============================================================================
# BOOKING EVENTS
# =============================================================================


@dataclass(frozen=True)
class BookingEvent(CheckoutEvent):
    """Events related to booking lifecycle."""
    pass


@dataclass(frozen=True)
class BookingCreated(BookingEvent):
    """A booking was persisted."""
    booking: Any = None  # Booking; Any avoids a circular import

    @classmethod
    def create(cls, booking: Any) -> "BookingCreated":
        return cls(booking=booking)


@dataclass(frozen=True)
class BookingStatusChanged(BookingEvent):
    """Booking moved between non-terminal statuses, or to no-show."""
    booking: Any = None
    previous_status: str | None = None

    @classmethod
    def create(cls, booking: Any, previous_status: str) -> "BookingStatusChanged":
        return cls(booking=booking, previous_status=previous_status)


@dataclass(frozen=True)
class BookingCompleted(BookingEvent):
    """Services were delivered."""
    booking: Any = None

    @classmethod
    def create(cls, booking: Any) -> "BookingCompleted":
        return cls(booking=booking)


@dataclass(frozen=True)
class BookingCancelled(BookingEvent):
    """Booking was cancelled."""
    booking: Any = None

    @classmethod
    def create(cls, booking: Any) -> "BookingCancelled":
        return cls(booking=booking)


# =============================================================================
# WALLET EVENTS
# =============================================================================


@dataclass(frozen=True)
class WalletEvent(CheckoutEvent):
    """Events related to wallet ledger mutations."""
    pass


@dataclass(frozen=True)
class WalletDebited(WalletEvent):
    transaction: Any = None  # WalletTransaction

    @classmethod
    def create(cls, transaction: Any) -> "WalletDebited":
        return cls(transaction=transaction)


@dataclass(frozen=True)
class WalletCredited(WalletEvent):
    transaction: Any = None

    @classmethod
    def create(cls, transaction: Any) -> "WalletCredited":
        return cls(transaction=transaction)
