"""
SQL for bookings.

The checkout snapshot (customer, cart, charges, breakdown, allocation,
staff, schedule) is stored as JSONB and never rewritten. A few scalar
columns are duplicated out of it for lookups and reporting.
"""

import logging
from uuid import UUID

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from core.models import Booking, BookingStatus, OutboxEntry, PaymentStatus
from core.repositories.ledger_outbox_repository import LedgerOutboxRepository
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


def _snapshot(value) -> Json:
    return Json(value.model_dump(mode="json"))


class BookingRepository:
    """Persistence for Booking."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def next_reference_number(self) -> int:
        """Draw the next number from the central booking reference sequence."""
        return self.postgres.execute_scalar("SELECT nextval('booking_reference_seq')")

    def create(self, booking: Booking, payment_entry: OutboxEntry | None = None) -> Booking:
        """
        Insert a booking, and its outbox entry when it owes a wallet debit.

        Both rows commit together or not at all.

        Returns:
            The booking as stored
        """
        with self.postgres.transaction() as cur:
            row = cur.execute_single(
                """
                INSERT INTO bookings (
                    id, booking_reference, customer_id,
                    customer, line_items, modifiers, breakdown, allocation, staff, schedule,
                    booking_date, time_slot, grand_total_cents, wallet_cents, cash_cents,
                    payment_mode, status, payment_status, notes, points_awarded,
                    created_at, updated_at
                ) VALUES (
                    %s, %s, %s,
                    %s, %s, %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s,
                    %s, %s
                )
                RETURNING *
                """,
                (
                    booking.id, booking.booking_reference, booking.customer_id,
                    _snapshot(booking.customer),
                    Json([item.model_dump(mode="json") for item in booking.line_items]),
                    _snapshot(booking.modifiers),
                    _snapshot(booking.breakdown),
                    _snapshot(booking.allocation),
                    Json([member.model_dump(mode="json") for member in booking.staff]),
                    _snapshot(booking.schedule),
                    booking.schedule.booking_date, booking.schedule.time_slot,
                    booking.breakdown.grand_total_cents,
                    booking.allocation.wallet_cents, booking.allocation.cash_cents,
                    booking.allocation.mode.value, booking.status.value,
                    booking.payment_status.value, booking.notes, booking.points_awarded,
                    booking.created_at, booking.updated_at
                )
            )

            if payment_entry is not None:
                LedgerOutboxRepository.insert(cur, payment_entry)

        return Booking.model_validate(row)

    def get(self, booking_id: UUID) -> Booking | None:
        row = self.postgres.execute_single(
            "SELECT * FROM bookings WHERE id = %s",
            (booking_id,)
        )

        if row is None:
            return None

        return Booking.model_validate(row)

    def get_by_reference(self, booking_reference: str) -> Booking | None:
        row = self.postgres.execute_single(
            "SELECT * FROM bookings WHERE booking_reference = %s",
            (booking_reference,)
        )

        if row is None:
            return None

        return Booking.model_validate(row)

    def list_for_customer(self, customer_id: str, limit: int = 50) -> list[Booking]:
        """Customer's bookings, newest first."""
        rows = self.postgres.execute(
            """
            SELECT * FROM bookings
            WHERE customer_id = %s
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (customer_id, limit)
        )

        return [Booking.model_validate(row) for row in rows]

    def update_status(
        self,
        booking_id: UUID,
        status: BookingStatus,
        expected_status: BookingStatus,
        outbox_entry: OutboxEntry | None = None
    ) -> Booking | None:
        """
        Move a booking to a new status if it is still in the expected one.

        An outbox entry (refund, reward) is inserted in the same transaction,
        so the wallet movement is owed exactly when the status change sticks.

        Returns:
            Updated booking, or None if the status changed underneath us
        """
        with self.postgres.transaction() as cur:
            row = cur.execute_single(
                """
                UPDATE bookings
                SET status = %s, updated_at = %s
                WHERE id = %s AND status = %s
                RETURNING *
                """,
                (status.value, now_utc(), booking_id, expected_status.value)
            )

            if row is None:
                cur.rollback()
                return None

            if outbox_entry is not None:
                LedgerOutboxRepository.insert(cur, outbox_entry)

        return Booking.model_validate(row)

    def update_payment_status(self, booking_id: UUID, payment_status: PaymentStatus) -> Booking | None:
        rows = self.postgres.execute_returning(
            """
            UPDATE bookings
            SET payment_status = %s, updated_at = %s
            WHERE id = %s
            RETURNING *
            """,
            (payment_status.value, now_utc(), booking_id)
        )

        if not rows:
            return None

        return Booking.model_validate(rows[0])

    def update_notes(self, booking_id: UUID, notes: str | None) -> Booking | None:
        rows = self.postgres.execute_returning(
            """
            UPDATE bookings
            SET notes = %s, updated_at = %s
            WHERE id = %s
            RETURNING *
            """,
            (notes, now_utc(), booking_id)
        )

        if not rows:
            return None

        return Booking.model_validate(rows[0])

    def mark_points_awarded(self, booking_id: UUID) -> bool:
        """
        Set the loyalty flag once.

        Returns:
            True if this call set it, False if it was already set
        """
        rows = self.postgres.execute_returning(
            """
            UPDATE bookings
            SET points_awarded = TRUE, updated_at = %s
            WHERE id = %s AND points_awarded = FALSE
            RETURNING id
            """,
            (now_utc(), booking_id)
        )

        return bool(rows)
