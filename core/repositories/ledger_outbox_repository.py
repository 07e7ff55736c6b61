"""
SQL for the ledger outbox (wallet movements owed by bookings).

Rows are inserted inside the booking's transaction via insert(cur, entry);
every later state change is a single guarded UPDATE.
"""

import logging
from datetime import datetime
from uuid import UUID

from clients.postgres_client import PostgresClient, TransactionCursor
from core.models import OutboxEntry, OutboxPurpose, OutboxStatus
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_OPEN_STATUSES = (OutboxStatus.PENDING.value, OutboxStatus.NEEDS_REVIEW.value)


class LedgerOutboxRepository:
    """Persistence for OutboxEntry rows."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    @staticmethod
    def insert(cur: TransactionCursor, entry: OutboxEntry) -> None:
        """Insert an entry using the caller's open transaction."""
        cur.execute(
            """
            INSERT INTO ledger_outbox (
                id, booking_id, purpose, customer_id, amount_cents, reference, description,
                status, attempts, last_error, next_attempt_at, transaction_id,
                resolution_note, created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s, %s, %s, %s,
                %s, %s, %s, %s, %s,
                %s, %s, %s
            )
            """,
            (
                entry.id, entry.booking_id, entry.purpose.value, entry.customer_id, entry.amount_cents,
                entry.reference, entry.description,
                entry.status.value, entry.attempts, entry.last_error, entry.next_attempt_at,
                entry.transaction_id, entry.resolution_note, entry.created_at, entry.updated_at
            )
        )

    def get(self, entry_id: UUID) -> OutboxEntry | None:
        row = self.postgres.execute_single(
            "SELECT * FROM ledger_outbox WHERE id = %s",
            (entry_id,)
        )

        if row is None:
            return None

        return OutboxEntry.model_validate(row)

    def get_for_booking(
        self,
        booking_id: UUID,
        purpose: OutboxPurpose = OutboxPurpose.PAYMENT
    ) -> OutboxEntry | None:
        row = self.postgres.execute_single(
            "SELECT * FROM ledger_outbox WHERE booking_id = %s AND purpose = %s",
            (booking_id, purpose.value)
        )

        if row is None:
            return None

        return OutboxEntry.model_validate(row)

    def list_due(self, now: datetime, limit: int = 100) -> list[OutboxEntry]:
        """Pending entries whose next attempt time has passed, oldest due first."""
        rows = self.postgres.execute(
            """
            SELECT * FROM ledger_outbox
            WHERE status = %s AND next_attempt_at <= %s
            ORDER BY next_attempt_at ASC
            LIMIT %s
            """,
            (OutboxStatus.PENDING.value, now, limit)
        )

        return [OutboxEntry.model_validate(row) for row in rows]

    def list_needing_review(self, limit: int = 100) -> list[OutboxEntry]:
        rows = self.postgres.execute(
            """
            SELECT * FROM ledger_outbox
            WHERE status = %s
            ORDER BY updated_at ASC
            LIMIT %s
            """,
            (OutboxStatus.NEEDS_REVIEW.value, limit)
        )

        return [OutboxEntry.model_validate(row) for row in rows]

    def mark_completed(self, entry_id: UUID, transaction_id: UUID) -> OutboxEntry | None:
        """
        Close an entry whose ledger entry landed.

        Returns:
            Updated entry, or None if it was already closed
        """
        rows = self.postgres.execute_returning(
            """
            UPDATE ledger_outbox
            SET status = %s, transaction_id = %s, last_error = NULL, updated_at = %s
            WHERE id = %s AND status IN %s
            RETURNING *
            """,
            (OutboxStatus.COMPLETED.value, transaction_id, now_utc(), entry_id, _OPEN_STATUSES)
        )

        if not rows:
            return None

        return OutboxEntry.model_validate(rows[0])

    def record_failure(
        self,
        entry_id: UUID,
        error: str,
        next_attempt_at: datetime,
        needs_review: bool = False
    ) -> OutboxEntry | None:
        """
        Count a failed attempt and schedule the next one.

        Args:
            entry_id: Outbox entry UUID
            error: Failure description
            next_attempt_at: When the entry becomes due again
            needs_review: Stop retrying and hand over to a human

        Returns:
            Updated entry, or None if it is no longer pending
        """
        status = OutboxStatus.NEEDS_REVIEW if needs_review else OutboxStatus.PENDING

        rows = self.postgres.execute_returning(
            """
            UPDATE ledger_outbox
            SET status = %s, attempts = attempts + 1, last_error = %s,
                next_attempt_at = %s, updated_at = %s
            WHERE id = %s AND status = %s
            RETURNING *
            """,
            (
                status.value, error[:1000], next_attempt_at, now_utc(),
                entry_id, OutboxStatus.PENDING.value
            )
        )

        if not rows:
            return None

        return OutboxEntry.model_validate(rows[0])

    def requeue(self, entry_id: UUID) -> OutboxEntry | None:
        """Put a needs-review entry back in the retry queue with its attempt count reset."""
        now = now_utc()
        rows = self.postgres.execute_returning(
            """
            UPDATE ledger_outbox
            SET status = %s, attempts = 0, next_attempt_at = %s, updated_at = %s
            WHERE id = %s AND status = %s
            RETURNING *
            """,
            (
                OutboxStatus.PENDING.value, now, now,
                entry_id, OutboxStatus.NEEDS_REVIEW.value
            )
        )

        if not rows:
            return None

        return OutboxEntry.model_validate(rows[0])

    def resolve(self, entry_id: UUID, note: str) -> OutboxEntry | None:
        """Close an open entry without writing its ledger entry."""
        rows = self.postgres.execute_returning(
            """
            UPDATE ledger_outbox
            SET status = %s, resolution_note = %s, updated_at = %s
            WHERE id = %s AND status IN %s
            RETURNING *
            """,
            (OutboxStatus.RESOLVED.value, note, now_utc(), entry_id, _OPEN_STATUSES)
        )

        if not rows:
            return None

        return OutboxEntry.model_validate(rows[0])

    def reopen(self, entry_id: UUID) -> OutboxEntry | None:
        """
        Put a resolved entry back in the retry queue.

        Used when a refund was closed because no payment had landed and
        the payment then landed after all.

        Returns:
            Updated entry, or None if it was not resolved
        """
        now = now_utc()
        rows = self.postgres.execute_returning(
            """
            UPDATE ledger_outbox
            SET status = %s, attempts = 0, next_attempt_at = %s,
                resolution_note = NULL, updated_at = %s
            WHERE id = %s AND status = %s
            RETURNING *
            """,
            (
                OutboxStatus.PENDING.value, now, now,
                entry_id, OutboxStatus.RESOLVED.value
            )
        )

        if not rows:
            return None

        return OutboxEntry.model_validate(rows[0])
