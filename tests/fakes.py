"""
In-memory repository doubles for service tests.

Method names and return conventions match core/repositories so services
run unchanged against them. FakeWalletRepository enforces the same
version guard as the SQL UPDATE, under a lock, so thread tests exercise
real lost races.
"""

import threading
from datetime import datetime
from uuid import UUID

from core.audit import AuditAction
from core.models import (
    Booking, BookingStatus, OutboxEntry, OutboxPurpose, OutboxStatus,
    PaymentStatus, TransactionKind, WalletAccount, WalletTransaction,
)
from utils.timezone import now_utc
from utils.user_context import get_current_actor_id


class FakeWalletRepository:

    def __init__(self):
        self._lock = threading.Lock()
        self.accounts: dict[str, WalletAccount] = {}
        self.transactions: list[WalletTransaction] = []
        self.apply_calls = 0
        # Number of upcoming apply_mutation calls that lose their race
        self.lose_next = 0
        # Raised from apply_mutation when set
        self.error: Exception | None = None

    def seed(self, customer_id: str, balance_cents: int, loyalty_points: int | None = None) -> WalletAccount:
        """Open an account with a starting balance (points default to 1 per cent)."""
        now = now_utc()
        account = WalletAccount(
            customer_id=customer_id,
            balance_cents=balance_cents,
            loyalty_points=balance_cents if loyalty_points is None else loyalty_points,
            version=0,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self.accounts[customer_id] = account
        return account

    def get(self, customer_id: str) -> WalletAccount | None:
        with self._lock:
            return self.accounts.get(customer_id)

    def create_if_missing(self, customer_id: str) -> WalletAccount:
        with self._lock:
            if customer_id not in self.accounts:
                now = now_utc()
                self.accounts[customer_id] = WalletAccount(
                    customer_id=customer_id, balance_cents=0, loyalty_points=0,
                    version=0, created_at=now, updated_at=now,
                )
            return self.accounts[customer_id]

    def apply_mutation(self, txn: WalletTransaction) -> bool:
        with self._lock:
            self.apply_calls += 1

            if self.error is not None:
                raise self.error

            if self.lose_next > 0:
                self.lose_next -= 1
                return False

            account = self.accounts.get(txn.customer_id)
            if account is None or account.version != txn.sequence - 1:
                return False

            if txn.reference is not None and any(
                t.customer_id == txn.customer_id and t.reference == txn.reference
                for t in self.transactions
            ):
                return False

            self.accounts[txn.customer_id] = account.model_copy(update={
                "balance_cents": txn.new_balance_cents,
                "loyalty_points": txn.new_points,
                "version": txn.sequence,
                "updated_at": txn.created_at,
            })
            self.transactions.append(txn)
            return True

    def find_transaction_by_reference(self, customer_id: str, reference: str) -> WalletTransaction | None:
        with self._lock:
            for txn in self.transactions:
                if txn.customer_id == customer_id and txn.reference == reference:
                    return txn
        return None

    def find_debit_for_booking(self, booking_id: UUID) -> WalletTransaction | None:
        with self._lock:
            for txn in sorted(self.transactions, key=lambda t: t.sequence):
                if txn.booking_id == booking_id and txn.kind == TransactionKind.DEBIT:
                    return txn
        return None

    def list_transactions(self, customer_id: str, limit: int = 100) -> list[WalletTransaction]:
        with self._lock:
            mine = [t for t in self.transactions if t.customer_id == customer_id]
        return sorted(mine, key=lambda t: t.sequence)[-limit:]


class FakeLedgerOutboxRepository:

    def __init__(self):
        self.entries: dict[UUID, OutboxEntry] = {}

    def get(self, entry_id: UUID) -> OutboxEntry | None:
        return self.entries.get(entry_id)

    def get_for_booking(
        self, booking_id: UUID, purpose: OutboxPurpose = OutboxPurpose.PAYMENT
    ) -> OutboxEntry | None:
        for entry in list(self.entries.values()):
            if entry.booking_id == booking_id and entry.purpose == purpose:
                return entry
        return None

    def list_due(self, now: datetime, limit: int = 100) -> list[OutboxEntry]:
        due = [
            e for e in self.entries.values()
            if e.status == OutboxStatus.PENDING and e.next_attempt_at <= now
        ]
        return sorted(due, key=lambda e: e.next_attempt_at)[:limit]

    def list_needing_review(self, limit: int = 100) -> list[OutboxEntry]:
        review = [e for e in self.entries.values() if e.status == OutboxStatus.NEEDS_REVIEW]
        return sorted(review, key=lambda e: e.updated_at)[:limit]

    def _update(self, entry_id: UUID, allowed: tuple, **changes) -> OutboxEntry | None:
        entry = self.entries.get(entry_id)
        if entry is None or entry.status not in allowed:
            return None
        changes["updated_at"] = now_utc()
        updated = entry.model_copy(update=changes)
        self.entries[entry_id] = updated
        return updated

    def mark_completed(self, entry_id: UUID, transaction_id: UUID) -> OutboxEntry | None:
        return self._update(
            entry_id, (OutboxStatus.PENDING, OutboxStatus.NEEDS_REVIEW),
            status=OutboxStatus.COMPLETED, transaction_id=transaction_id, last_error=None,
        )

    def record_failure(
        self, entry_id: UUID, error: str, next_attempt_at: datetime, needs_review: bool = False
    ) -> OutboxEntry | None:
        entry = self.entries.get(entry_id)
        if entry is None:
            return None
        return self._update(
            entry_id, (OutboxStatus.PENDING,),
            status=OutboxStatus.NEEDS_REVIEW if needs_review else OutboxStatus.PENDING,
            attempts=entry.attempts + 1, last_error=error, next_attempt_at=next_attempt_at,
        )

    def requeue(self, entry_id: UUID) -> OutboxEntry | None:
        return self._update(
            entry_id, (OutboxStatus.NEEDS_REVIEW,),
            status=OutboxStatus.PENDING, attempts=0, next_attempt_at=now_utc(),
        )

    def resolve(self, entry_id: UUID, note: str) -> OutboxEntry | None:
        return self._update(
            entry_id, (OutboxStatus.PENDING, OutboxStatus.NEEDS_REVIEW),
            status=OutboxStatus.RESOLVED, resolution_note=note,
        )

    def reopen(self, entry_id: UUID) -> OutboxEntry | None:
        return self._update(
            entry_id, (OutboxStatus.RESOLVED,),
            status=OutboxStatus.PENDING, attempts=0, next_attempt_at=now_utc(), resolution_note=None,
        )


class FakeBookingRepository:

    def __init__(self, outbox: FakeLedgerOutboxRepository | None = None):
        self.bookings: dict[UUID, Booking] = {}
        self.outbox = outbox or FakeLedgerOutboxRepository()
        self._sequence = 0
        self._lock = threading.Lock()
        # Raised from create() when set; nothing is stored
        self.create_error: Exception | None = None

    def next_reference_number(self) -> int:
        with self._lock:
            self._sequence += 1
            return self._sequence

    def create(self, booking: Booking, payment_entry: OutboxEntry | None = None) -> Booking:
        if self.create_error is not None:
            raise self.create_error
        self.bookings[booking.id] = booking
        if payment_entry is not None:
            self.outbox.entries[payment_entry.id] = payment_entry
        return booking

    def get(self, booking_id: UUID) -> Booking | None:
        return self.bookings.get(booking_id)

    def get_by_reference(self, booking_reference: str) -> Booking | None:
        for booking in self.bookings.values():
            if booking.booking_reference == booking_reference:
                return booking
        return None

    def list_for_customer(self, customer_id: str, limit: int = 50) -> list[Booking]:
        mine = [b for b in self.bookings.values() if b.customer_id == customer_id]
        return sorted(mine, key=lambda b: b.created_at, reverse=True)[:limit]

    def update_status(
        self,
        booking_id: UUID,
        status: BookingStatus,
        expected_status: BookingStatus,
        outbox_entry: OutboxEntry | None = None
    ) -> Booking | None:
        booking = self.bookings.get(booking_id)
        if booking is None or booking.status != expected_status:
            return None
        updated = booking.model_copy(update={"status": status, "updated_at": now_utc()})
        self.bookings[booking_id] = updated
        if outbox_entry is not None:
            self.outbox.entries[outbox_entry.id] = outbox_entry
        return updated

    def update_payment_status(self, booking_id: UUID, payment_status: PaymentStatus) -> Booking | None:
        booking = self.bookings.get(booking_id)
        if booking is None:
            return None
        updated = booking.model_copy(update={"payment_status": payment_status, "updated_at": now_utc()})
        self.bookings[booking_id] = updated
        return updated

    def update_notes(self, booking_id: UUID, notes: str | None) -> Booking | None:
        booking = self.bookings.get(booking_id)
        if booking is None:
            return None
        updated = booking.model_copy(update={"notes": notes, "updated_at": now_utc()})
        self.bookings[booking_id] = updated
        return updated

    def mark_points_awarded(self, booking_id: UUID) -> bool:
        booking = self.bookings.get(booking_id)
        if booking is None or booking.points_awarded:
            return False
        self.bookings[booking_id] = booking.model_copy(update={"points_awarded": True})
        return True


class FakeAuditLogger:
    """Collects audit entries instead of writing them."""

    def __init__(self):
        self.entries: list[dict] = []

    def log_change(self, entity_type, entity_id, action: AuditAction, changes, actor_id=None) -> None:
        self.entries.append({
            "entity_type": entity_type,
            "entity_id": entity_id,
            "action": action,
            "changes": changes,
            "actor_id": actor_id or get_current_actor_id(),
        })

    def for_entity(self, entity_id) -> list[dict]:
        return [e for e in self.entries if e["entity_id"] == entity_id]
