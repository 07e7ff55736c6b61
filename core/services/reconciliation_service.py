"""
Reconciliation of wallet movements that did not land straight away.

Every wallet movement a booking owes has a ledger outbox entry: the
payment debit, the refund on cancellation, the loyalty reward on
completion. apply() is the one place an entry is turned into a ledger
entry; it runs right after the owning booking change commits and again
from the worker for anything still pending, with exponential backoff.
Each movement carries the entry's reference, so a retry of one that
actually committed returns the committed ledger entry instead of moving
money twice. Entries that keep failing, and payments the wallet can no
longer cover, are parked for manual review.
"""

import logging
import threading
from uuid import UUID

from core.audit import AuditLogger, AuditAction
from core.config import CheckoutConfig
from core.exceptions import InsufficientFundsError
from core.models import (
    BookingStatus, OutboxEntry, OutboxPurpose, OutboxStatus, PaymentStatus, WalletTransaction,
)
from core.repositories import BookingRepository, LedgerOutboxRepository
from core.services.wallet_ledger import WalletLedger
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class ReconciliationService:
    """Service that drives ledger outbox entries to completion."""

    def __init__(
        self,
        outbox: LedgerOutboxRepository,
        bookings: BookingRepository,
        ledger: WalletLedger,
        audit: AuditLogger,
        config: CheckoutConfig | None = None
    ):
        self.outbox = outbox
        self.bookings = bookings
        self.ledger = ledger
        self.audit = audit
        self.config = config or CheckoutConfig()

    def process_pending(self, limit: int | None = None) -> dict[str, int]:
        """
        Retry every pending outbox entry that is due.

        Args:
            limit: Maximum entries this pass (defaults to the configured batch size)

        Returns:
            Counts per outcome: completed, failed (will retry), needs_review,
            and resolved (closed without a ledger entry)
        """
        now = now_utc()
        entries = self.outbox.list_due(now, limit or self.config.reconciliation_batch_size)
        counts = {"completed": 0, "failed": 0, "needs_review": 0, "resolved": 0}

        for entry in entries:
            try:
                outcome = self.apply(entry)
            except Exception:
                # Outbox bookkeeping failed; the entry is still pending and due
                logger.exception(f"Could not reconcile outbox entry {entry.id}")
                outcome = "failed"
            counts[outcome] += 1

        if entries:
            logger.info(f"Reconciliation pass over {len(entries)} outbox entries: {counts}")

        return counts

    def apply(self, entry: OutboxEntry) -> str:
        """
        Attempt one pending entry now.

        Ledger failures are recorded on the entry, never raised. Errors
        writing the outbox itself do propagate; the entry then stays
        pending and is picked up again.

        Returns:
            Outcome: "completed", "failed", "needs_review" or "resolved"
        """
        if entry.purpose == OutboxPurpose.PAYMENT:
            return self._apply_payment(entry)
        if entry.purpose == OutboxPurpose.REFUND:
            return self._apply_refund(entry)
        return self._apply_reward(entry)

    # =========================================================================
    # PER-PURPOSE MOVEMENTS
    # =========================================================================

    def _apply_payment(self, entry: OutboxEntry) -> str:
        booking = self.bookings.get(entry.booking_id)
        if booking is None or booking.status == BookingStatus.CANCELLED:
            self.outbox.resolve(entry.id, "Booking cancelled before the wallet debit was applied")
            logger.info(f"Dropped payment {entry.id}: booking {entry.booking_id} is cancelled")
            return "resolved"

        try:
            txn = self.ledger.debit(
                entry.customer_id,
                entry.amount_cents,
                booking_id=entry.booking_id,
                reference=entry.reference,
                description=entry.description,
                allow_overdraw=False,
            )
        except InsufficientFundsError as e:
            return self._park_shortfall(entry, e)
        except Exception as e:
            return self._record_failure(entry, e)

        self._complete(entry, txn)

        # A cancellation may have committed while the debit was in flight
        latest = self.bookings.get(entry.booking_id)
        if latest is not None and latest.status == BookingStatus.CANCELLED:
            self._reopen_refund(entry.booking_id)

        return "completed"

    def _apply_refund(self, entry: OutboxEntry) -> str:
        debit = self.ledger.find_debit_for_booking(entry.booking_id)
        if debit is None:
            return self._close_empty_refund(entry)

        taken_cents = debit.previous_balance_cents - debit.new_balance_cents
        if taken_cents <= 0:
            self.outbox.resolve(entry.id, "The wallet payment took nothing from the balance")
            return "resolved"

        try:
            txn = self.ledger.credit(
                entry.customer_id,
                taken_cents,
                booking_id=entry.booking_id,
                reference=entry.reference,
                description=entry.description,
            )
        except Exception as e:
            return self._record_failure(entry, e)

        self._complete(entry, txn)
        return "completed"

    def _apply_reward(self, entry: OutboxEntry) -> str:
        try:
            txn = self.ledger.credit(
                entry.customer_id,
                entry.amount_cents,
                booking_id=entry.booking_id,
                reference=entry.reference,
                description=entry.description,
            )
        except Exception as e:
            return self._record_failure(entry, e)

        self._complete(entry, txn)

        if self.bookings.mark_points_awarded(entry.booking_id):
            logger.info(f"Loyalty reward recorded for booking {entry.booking_id}")

        return "completed"

    def _close_empty_refund(self, entry: OutboxEntry) -> str:
        self.outbox.resolve(entry.id, "No wallet payment was taken for this booking")

        # The payment can land between the lookup and the close
        if self.ledger.find_debit_for_booking(entry.booking_id) is None:
            logger.info(f"Refund {entry.id} closed: booking {entry.booking_id} never paid from the wallet")
            return "resolved"

        reopened = self.outbox.reopen(entry.id)
        if reopened is None:
            return "resolved"
        return self._apply_refund(reopened)

    def _reopen_refund(self, booking_id: UUID) -> None:
        refund = self.outbox.get_for_booking(booking_id, OutboxPurpose.REFUND)
        if refund is None:
            logger.warning(f"Wallet payment landed on cancelled booking {booking_id} with no refund owed")
            return

        if refund.status == OutboxStatus.RESOLVED and self.outbox.reopen(refund.id) is not None:
            logger.info(f"Reopened refund {refund.id}: payment for cancelled booking {booking_id} landed late")

    # =========================================================================
    # OUTCOMES
    # =========================================================================

    def _complete(self, entry: OutboxEntry, txn: WalletTransaction) -> None:
        try:
            closed = self.outbox.mark_completed(entry.id, txn.id)
        except Exception:
            # The ledger entry is committed; the next pass finds it by reference
            logger.exception(f"Could not close outbox entry {entry.id} after ledger entry {txn.id}")
            return

        if closed is None:
            logger.info(f"Outbox entry {entry.id} was closed concurrently; ledger entry {txn.id} stands")
            return

        if entry.attempts:
            logger.info(
                f"Outbox {entry.purpose.value} {entry.id} for booking {entry.booking_id} "
                f"applied as {txn.id} after {entry.attempts} failed attempts"
            )

    def _park_shortfall(self, entry: OutboxEntry, error: InsufficientFundsError) -> str:
        """Payment the wallet no longer covers: stop retrying and leave it to staff."""
        self.outbox.record_failure(
            entry.id,
            f"Wallet short by {error.shortfall_cents} cents "
            f"(balance {error.balance_cents}, owed {error.total_cents})",
            now_utc(),
            needs_review=True,
        )
        self.bookings.update_payment_status(entry.booking_id, PaymentStatus.PENDING)
        logger.warning(
            f"Payment {entry.id} for booking {entry.booking_id} parked for review: "
            f"wallet {entry.customer_id} short by {error.shortfall_cents} cents"
        )
        return "needs_review"

    def _record_failure(self, entry: OutboxEntry, error: Exception) -> str:
        attempts = entry.attempts + 1
        now = now_utc()

        if attempts >= self.config.reconciliation_max_attempts:
            self.outbox.record_failure(entry.id, str(error), now, needs_review=True)
            logger.error(
                f"Outbox {entry.purpose.value} {entry.id} for booking {entry.booking_id} "
                f"({entry.amount_cents} cents, {entry.customer_id}) needs manual review "
                f"after {attempts} attempts: {error}"
            )
            return "needs_review"

        next_attempt_at = now + self.config.backoff_delay(attempts)
        self.outbox.record_failure(entry.id, str(error), next_attempt_at)
        logger.warning(
            f"Outbox {entry.purpose.value} {entry.id} failed (attempt {attempts}), "
            f"retrying at {next_attempt_at.isoformat()}: {error}"
        )
        return "failed"

    # =========================================================================
    # MANUAL REVIEW
    # =========================================================================

    def list_needing_review(self, limit: int = 100) -> list[OutboxEntry]:
        """Entries whose retries ran out, oldest first."""
        return self.outbox.list_needing_review(limit)

    def retry(self, entry_id: UUID) -> OutboxEntry:
        """
        Return a needs-review entry to the retry queue.

        Raises:
            ValueError: If entry not found or not awaiting review
        """
        current = self.outbox.get(entry_id)
        if current is None:
            raise ValueError(f"Outbox entry {entry_id} not found")

        updated = self.outbox.requeue(entry_id)
        if updated is None:
            raise ValueError(f"Outbox entry {entry_id} is {current.status.value}, not awaiting review")

        self.audit.log_change(
            entity_type="ledger_outbox",
            entity_id=entry_id,
            action=AuditAction.UPDATE,
            changes={"status": {"old": current.status.value, "new": updated.status.value}}
        )

        return updated

    def resolve(self, entry_id: UUID, note: str) -> OutboxEntry:
        """
        Close an entry by hand without touching the wallet.

        Used once staff have settled the amount some other way (cash at
        the desk, written off).

        Args:
            entry_id: Outbox entry UUID
            note: What was done about it

        Returns:
            Resolved entry

        Raises:
            ValueError: If entry not found or already closed
        """
        current = self.outbox.get(entry_id)
        if current is None:
            raise ValueError(f"Outbox entry {entry_id} not found")

        if current.status in (OutboxStatus.COMPLETED, OutboxStatus.RESOLVED):
            raise ValueError(f"Outbox entry {entry_id} is already {current.status.value}")

        resolved = self.outbox.resolve(entry_id, note)
        if resolved is None:
            raise ValueError(f"Outbox entry {entry_id} was closed concurrently")

        self.audit.log_change(
            entity_type="ledger_outbox",
            entity_id=entry_id,
            action=AuditAction.RESOLVE,
            changes={
                "status": {"old": current.status.value, "new": resolved.status.value},
                "resolution_note": note,
                "purpose": current.purpose.value,
                "amount_cents": current.amount_cents,
                "booking_id": str(current.booking_id),
            }
        )

        logger.info(f"Outbox entry {entry_id} resolved manually: {note}")
        return resolved


class ReconciliationWorker:
    """
    Background thread that runs ReconciliationService.process_pending on a timer.

    Usage:
        worker = ReconciliationWorker(reconciliation_service, interval_seconds=60)
        worker.start()
        ...
        worker.stop()
    """

    def __init__(self, service: ReconciliationService, interval_seconds: float | None = None):
        self.service = service
        self.interval_seconds = interval_seconds or service.config.reconciliation_interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> dict[str, int]:
        """One reconciliation pass in the caller's thread."""
        return self.service.process_pending()

    def start(self) -> None:
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="ledger-reconciliation", daemon=True
        )
        self._thread.start()
        logger.info(f"Reconciliation worker started (every {self.interval_seconds}s)")

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to exit and wait for the current pass to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Reconciliation worker stopped")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Reconciliation pass failed")

            self._stop_event.wait(self.interval_seconds)
