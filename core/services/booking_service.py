"""
Booking service: checkout assembly and booking lifecycle.

create_booking validates a checkout, prices it, allocates the payment,
persists the booking, and charges the wallet. Bookings are snapshots: the
cart, charges and payment split never change after creation. Only status,
notes and the loyalty flag move afterwards.

Wallet movements are recorded in a transactional outbox together with the
booking change that owes them: the payment with the booking, a refund with
its cancellation, the loyalty reward with its completion. The payment is
applied right away and is refused if, by the time it is written, the
balance no longer covers it. If the immediate attempt fails the booking
still stands and ReconciliationService finishes the movement later.
"""

import logging
from datetime import datetime
from uuid import UUID, uuid4

from core.allocation import allocate, validate_allocation
from core.audit import AuditLogger, AuditAction, compute_changes
from core.config import CheckoutConfig
from core.event_bus import EventBus
from core.events import BookingCancelled, BookingCompleted, BookingCreated, BookingStatusChanged
from core.exceptions import (
    BookingValidationError,
    EmptyCartError,
    InvalidStatusTransitionError,
    MissingCustomerInfoError,
    MissingPaymentMethodError,
    MissingScheduleError,
    MissingStaffError,
    PersistenceFailedError,
    UnauthenticatedPaymentModeError,
)
from core.models import (
    Booking, BookingRequest, BookingResult, BookingStatus, BookingWarning,
    OutboxEntry, OutboxPurpose, PaymentAllocation, PaymentMode, PaymentStatus, PriceBreakdown,
    STATUS_TRANSITIONS, LEDGER_WRITE_FAILED,
)
from core.pricing import compute_price, reward_cents_for
from core.repositories import BookingRepository, LedgerOutboxRepository
from core.services.reconciliation_service import ReconciliationService
from core.services.wallet_ledger import WalletLedger
from utils.timezone import now_utc, local_date

logger = logging.getLogger(__name__)

_STATUS_EVENTS = {
    BookingStatus.COMPLETED: BookingCompleted,
    BookingStatus.CANCELLED: BookingCancelled,
}

_REFERENCE_PREFIXES = {
    OutboxPurpose.PAYMENT: "booking",
    OutboxPurpose.REFUND: "refund",
    OutboxPurpose.REWARD: "reward",
}


class BookingService:
    """Service for booking creation and lifecycle."""

    def __init__(
        self,
        bookings: BookingRepository,
        outbox: LedgerOutboxRepository,
        ledger: WalletLedger,
        audit: AuditLogger,
        event_bus: EventBus,
        config: CheckoutConfig | None = None,
        reconciliation: ReconciliationService | None = None
    ):
        self.bookings = bookings
        self.outbox = outbox
        self.ledger = ledger
        self.audit = audit
        self.event_bus = event_bus
        self.config = config or CheckoutConfig()
        self.reconciliation = reconciliation or ReconciliationService(
            outbox, bookings, ledger, audit, self.config
        )

    # =========================================================================
    # CHECKOUT
    # =========================================================================

    def create_booking(self, request: BookingRequest) -> BookingResult:
        """
        Turn a checkout submission into a persisted booking.

        Validation failures come back in the result rather than raising:
        empty cart, customer info, schedule, staff, payment method, guest
        wallet use, pricing input, then the payment split, first failure wins.

        Args:
            request: Checkout submission

        Returns:
            BookingResult with the booking and any warnings, or the
            validation error

        Raises:
            PersistenceFailedError: The booking could not be saved; nothing
                was written and the customer may retry
        """
        try:
            self._validate_request(request)
            breakdown = compute_price(request.line_items, request.modifiers)
            allocation = self._allocate(request, breakdown.grand_total_cents)
        except BookingValidationError as e:
            logger.info(f"Booking rejected: {e.code} ({e})")
            return BookingResult(error=e)

        now = now_utc()
        booking = self._assemble(request, breakdown, allocation, now)
        payment_entry = self._payment_entry(booking, now)

        try:
            booking = self.bookings.create(booking, payment_entry)
        except Exception as e:
            logger.exception(f"Failed to persist booking {booking.booking_reference}")
            raise PersistenceFailedError(
                "Your booking could not be saved. Please try again."
            ) from e

        logger.info(
            f"Booking {booking.booking_reference} created: total {breakdown.grand_total_cents} cents "
            f"(wallet {allocation.wallet_cents}, cash {allocation.cash_cents})"
        )

        warnings = []
        if payment_entry is not None:
            booking, warning = self._apply_payment(booking, payment_entry)
            if warning is not None:
                warnings.append(warning)

        self._audit_creation(booking)
        self.event_bus.publish(BookingCreated.create(booking))

        return BookingResult(booking=booking, warnings=warnings)

    def _validate_request(self, request: BookingRequest) -> None:
        if not request.line_items:
            raise EmptyCartError()

        customer = request.customer
        if customer is None:
            raise MissingCustomerInfoError(["name", "email", "phone"])
        if customer.missing_fields:
            raise MissingCustomerInfoError(customer.missing_fields)

        schedule = request.schedule
        if schedule is None or schedule.booking_date is None or not schedule.time_slot:
            raise MissingScheduleError()

        if not request.staff:
            raise MissingStaffError()

        if request.payment is None:
            raise MissingPaymentMethodError()

        if request.payment.mode.uses_wallet:
            if not customer.is_authenticated or not customer.customer_id:
                raise UnauthenticatedPaymentModeError()

    def _allocate(self, request: BookingRequest, grand_total_cents: int) -> PaymentAllocation:
        """Split the grand total and check the split against the live wallet balance."""
        payment = request.payment

        if not payment.mode.uses_wallet:
            return allocate(grand_total_cents, PaymentMode.CASH)

        balance = self.ledger.get_account(request.customer.customer_id).balance_cents

        if payment.mode == PaymentMode.MIXED and (
            payment.wallet_cents is not None or payment.cash_cents is not None
        ):
            wallet = payment.wallet_cents
            cash = payment.cash_cents
            if wallet is None:
                wallet = grand_total_cents - cash
            if cash is None:
                cash = grand_total_cents - wallet
            allocation = PaymentAllocation(mode=PaymentMode.MIXED, wallet_cents=wallet, cash_cents=cash)
        else:
            allocation = allocate(grand_total_cents, payment.mode, balance)

        validate_allocation(allocation, grand_total_cents, balance)
        return allocation

    def _next_reference(self, now: datetime) -> str:
        """Booking reference like BK-20240115-000042, dated in salon-local time."""
        number = self.bookings.next_reference_number()
        day = local_date(now, self.config.salon_timezone)
        return f"{self.config.booking_reference_prefix}-{day:%Y%m%d}-{number:06d}"

    def _assemble(
        self,
        request: BookingRequest,
        breakdown: PriceBreakdown,
        allocation: PaymentAllocation,
        now: datetime
    ) -> Booking:
        try:
            booking_reference = self._next_reference(now)
        except Exception as e:
            logger.exception("Failed to issue booking reference")
            raise PersistenceFailedError(
                "Your booking could not be saved. Please try again."
            ) from e

        payment_status = (
            PaymentStatus.PAID if allocation.mode == PaymentMode.WALLET else PaymentStatus.PENDING
        )

        return Booking(
            id=uuid4(),
            booking_reference=booking_reference,
            customer=request.customer,
            line_items=request.line_items,
            modifiers=request.modifiers,
            breakdown=breakdown,
            allocation=allocation,
            staff=request.staff,
            schedule=request.schedule,
            status=BookingStatus.PENDING,
            payment_status=payment_status,
            notes=request.notes,
            points_awarded=False,
            created_at=now,
            updated_at=now,
        )

    def _outbox_entry(
        self,
        booking: Booking,
        purpose: OutboxPurpose,
        amount_cents: int,
        description: str,
        now: datetime
    ) -> OutboxEntry:
        return OutboxEntry(
            id=uuid4(),
            booking_id=booking.id,
            purpose=purpose,
            customer_id=booking.customer_id,
            amount_cents=amount_cents,
            reference=f"{_REFERENCE_PREFIXES[purpose]}:{booking.id}",
            description=description,
            next_attempt_at=now,
            created_at=now,
            updated_at=now,
        )

    def _payment_entry(self, booking: Booking, now: datetime) -> OutboxEntry | None:
        if booking.allocation.wallet_cents <= 0:
            return None

        return self._outbox_entry(
            booking, OutboxPurpose.PAYMENT, booking.allocation.wallet_cents,
            f"Payment for booking {booking.booking_reference}", now
        )

    def _apply_payment(self, booking: Booking, entry: OutboxEntry) -> tuple[Booking, BookingWarning | None]:
        """
        Charge the wallet portion of a just-saved booking.

        Returns:
            The booking as it now stands, and a LEDGER_WRITE_FAILED warning
            if the wallet payment did not land
        """
        try:
            outcome = self.reconciliation.apply(entry)
        except Exception:
            # Entry stays due immediately; reconciliation picks it up as is
            logger.exception(
                f"Could not record wallet payment for booking {booking.booking_reference}; "
                f"left for reconciliation"
            )
            outcome = "failed"

        if outcome in ("completed", "resolved"):
            return booking, None

        if outcome == "needs_review":
            # Another checkout spent the balance after this one was validated
            logger.warning(
                f"Booking {booking.booking_reference} stands unpaid: wallet payment parked for review"
            )
            stored = self.bookings.get(booking.id)
            return stored or booking, BookingWarning(
                code=LEDGER_WRITE_FAILED,
                message=(
                    "Your booking is confirmed, but your wallet balance no longer covers "
                    "the wallet payment. Please settle the amount at the salon."
                ),
            )

        return booking, BookingWarning(
            code=LEDGER_WRITE_FAILED,
            message="Your booking is confirmed. The wallet payment is still being processed.",
        )

    def _audit_creation(self, booking: Booking) -> None:
        try:
            self.audit.log_change(
                entity_type="booking",
                entity_id=booking.id,
                action=AuditAction.CREATE,
                changes={"created": {
                    "booking_reference": booking.booking_reference,
                    "customer_id": booking.customer_id,
                    "grand_total_cents": booking.breakdown.grand_total_cents,
                    "allocation": booking.allocation.model_dump(mode="json"),
                }}
            )
        except Exception:
            # Booking is committed; an audit gap must not fail the checkout
            logger.exception(f"Failed to audit creation of booking {booking.booking_reference}")

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def get_by_id(self, booking_id: UUID) -> Booking | None:
        """
        Get booking by ID.

        Returns:
            Booking if found, None otherwise.
        """
        return self.bookings.get(booking_id)

    def get_by_reference(self, booking_reference: str) -> Booking | None:
        return self.bookings.get_by_reference(booking_reference)

    def list_for_customer(self, customer_id: str, limit: int = 50) -> list[Booking]:
        """List a customer's bookings, newest first."""
        return self.bookings.list_for_customer(customer_id, limit)

    def change_status(self, booking_id: UUID, new_status: BookingStatus) -> Booking:
        """
        Move a booking through its lifecycle.

        Cancelling a booking paid from the wallet owes a refund, completing
        an account holder's booking owes the loyalty reward. Either is
        recorded in the outbox together with the status change and applied
        by the event handlers or, failing that, by reconciliation.

        Args:
            booking_id: Booking UUID
            new_status: Target status

        Returns:
            Updated booking

        Raises:
            ValueError: If booking not found
            InvalidStatusTransitionError: Move not allowed from the current status
        """
        current = self.get_by_id(booking_id)
        if current is None:
            raise ValueError(f"Booking {booking_id} not found")

        if new_status not in STATUS_TRANSITIONS.get(current.status, set()):
            raise InvalidStatusTransitionError(current.status.value, new_status.value)

        movement = self._movement_for(current, new_status)
        updated = self.bookings.update_status(
            booking_id, new_status, expected_status=current.status, outbox_entry=movement
        )
        if updated is None:
            latest = self.get_by_id(booking_id)
            actual = latest.status.value if latest else current.status.value
            raise InvalidStatusTransitionError(actual, new_status.value)

        self.audit.log_change(
            entity_type="booking",
            entity_id=booking_id,
            action=AuditAction.UPDATE,
            changes={"status": {"old": current.status.value, "new": new_status.value}}
        )

        logger.info(
            f"Booking {updated.booking_reference} moved {current.status.value} -> {new_status.value}"
        )

        event_class = _STATUS_EVENTS.get(new_status)
        if event_class is not None:
            self.event_bus.publish(event_class.create(updated))
        else:
            self.event_bus.publish(BookingStatusChanged.create(updated, current.status.value))

        return updated

    def _movement_for(self, booking: Booking, new_status: BookingStatus) -> OutboxEntry | None:
        """Refund or loyalty reward owed by moving `booking` to `new_status`, if any."""
        if not booking.customer.is_authenticated or booking.customer_id is None:
            return None

        now = now_utc()

        if new_status == BookingStatus.CANCELLED:
            if not self.config.refund_wallet_on_cancel or booking.allocation.wallet_cents <= 0:
                return None
            return self._outbox_entry(
                booking, OutboxPurpose.REFUND, booking.allocation.wallet_cents,
                f"Refund for cancelled booking {booking.booking_reference}", now
            )

        if new_status == BookingStatus.COMPLETED and not booking.points_awarded:
            amount_cents = reward_cents_for(
                booking.breakdown.grand_total_cents, self.config.loyalty_points_per_unit
            )
            if amount_cents <= 0:
                return None
            return self._outbox_entry(
                booking, OutboxPurpose.REWARD, amount_cents,
                f"Loyalty reward for booking {booking.booking_reference}", now
            )

        return None

    def update_notes(self, booking_id: UUID, notes: str | None) -> Booking:
        """
        Replace a booking's notes.

        Raises:
            ValueError: If booking not found
        """
        current = self.get_by_id(booking_id)
        if current is None:
            raise ValueError(f"Booking {booking_id} not found")

        if current.notes == notes:
            return current

        updated = self.bookings.update_notes(booking_id, notes)
        if updated is None:
            raise ValueError(f"Booking {booking_id} not found")

        changes = compute_changes({"notes": current.notes}, {"notes": updated.notes})
        if changes:
            self.audit.log_change(
                entity_type="booking",
                entity_id=booking_id,
                action=AuditAction.UPDATE,
                changes=changes
            )

        return updated

    def mark_points_awarded(self, booking_id: UUID) -> bool:
        """
        Flag that the loyalty reward for this booking has been credited.

        Returns:
            True if newly flagged, False if it already was
        """
        flagged = self.bookings.mark_points_awarded(booking_id)
        if flagged:
            logger.info(f"Loyalty reward recorded for booking {booking_id}")
        return flagged
