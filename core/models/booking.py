"""Booking domain models.

A booking is an immutable financial record of one checkout: customer,
cart, charges, price breakdown and payment split are snapshotted at
creation. Only status, notes and the loyalty flag change afterwards.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from core.exceptions import BookingValidationError
from core.models.charges import ChargeModifiers, PriceBreakdown
from core.models.line_item import LineItem
from core.models.payment import PaymentAllocation, PaymentChoice


class BookingStatus(str, Enum):
    """Booking lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Allowed moves; statuses absent as keys are terminal.
STATUS_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {
        BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS,
        BookingStatus.CANCELLED, BookingStatus.NO_SHOW,
    },
    BookingStatus.CONFIRMED: {
        BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED,
        BookingStatus.CANCELLED, BookingStatus.NO_SHOW,
    },
    BookingStatus.IN_PROGRESS: {
        BookingStatus.COMPLETED, BookingStatus.CANCELLED,
    },
}


class PaymentStatus(str, Enum):
    """Whether the charge is settled at booking time."""

    PENDING = "pending"  # Cash portion still to be collected at the salon
    PAID = "paid"


class CustomerIdentity(BaseModel):
    """Identity snapshot supplied by the session provider."""

    is_authenticated: bool = False
    customer_id: str | None = None
    name: str | None = Field(None, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)

    model_config = {"frozen": True}

    @property
    def missing_fields(self) -> list[str]:
        return [f for f in ("name", "email", "phone") if not getattr(self, f)]


class Schedule(BaseModel):
    """Appointment date and time slot (salon-local, e.g. '14:30')."""

    booking_date: date | None = None
    time_slot: str | None = None

    model_config = {"frozen": True}


class StaffAssignment(BaseModel):
    """Staff member performing the booked services."""

    staff_id: str
    name: str
    role: str | None = None

    model_config = {"frozen": True}


class BookingRequest(BaseModel):
    """
    Checkout submission.

    Everything is optional at this level so that a missing field comes back
    as a typed validation error rather than a schema error.
    """

    customer: CustomerIdentity | None = None
    line_items: list[LineItem] = Field(default_factory=list)
    modifiers: ChargeModifiers = Field(default_factory=ChargeModifiers)
    schedule: Schedule | None = None
    staff: list[StaffAssignment] = Field(default_factory=list)
    payment: PaymentChoice | None = None
    notes: str | None = Field(None, max_length=2000)


class Booking(BaseModel):
    """Full booking entity as stored."""

    id: UUID
    booking_reference: str
    customer: CustomerIdentity
    line_items: list[LineItem]
    modifiers: ChargeModifiers
    breakdown: PriceBreakdown
    allocation: PaymentAllocation
    staff: list[StaffAssignment]
    schedule: Schedule
    status: BookingStatus
    payment_status: PaymentStatus
    notes: str | None = None
    points_awarded: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def customer_id(self) -> str | None:
        return self.customer.customer_id

    @property
    def total_duration_minutes(self) -> int:
        return sum(getattr(item, "duration_minutes", 0) for item in self.line_items)

    @property
    def is_terminal(self) -> bool:
        return self.status not in STATUS_TRANSITIONS


class BookingWarning(BaseModel):
    """Non-fatal problem after the booking was saved."""

    code: str
    message: str


LEDGER_WRITE_FAILED = "LEDGER_WRITE_FAILED"


@dataclass
class BookingResult:
    """
    Outcome of BookingService.create_booking.

    Exactly one of booking / error is set. warnings may accompany a booking.
    """

    booking: Booking | None = None
    error: BookingValidationError | None = None
    warnings: list[BookingWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.booking is not None
