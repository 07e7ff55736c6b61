"""Ledger outbox models.

Every wallet movement a booking owes is written as an OutboxEntry in the
same database transaction as the booking change that causes it: the
payment debit with the booking itself, the refund with its cancellation,
the loyalty reward with its completion. The movement is applied right
after that transaction commits; if that fails the entry stays pending and
the reconciliation worker retries it.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel

from core.models.wallet import TransactionKind


class OutboxStatus(str, Enum):
    """Outbox entry lifecycle."""

    PENDING = "pending"
    COMPLETED = "completed"
    NEEDS_REVIEW = "needs_review"  # Retries exhausted or wallet short; a human must decide
    RESOLVED = "resolved"          # Closed without a ledger entry


class OutboxPurpose(str, Enum):
    """Why a booking owes a wallet movement. One entry per purpose per booking."""

    PAYMENT = "payment"
    REFUND = "refund"
    REWARD = "reward"

    @property
    def kind(self) -> TransactionKind:
        if self == OutboxPurpose.PAYMENT:
            return TransactionKind.DEBIT
        return TransactionKind.CREDIT


class OutboxEntry(BaseModel):
    """Wallet movement owed by a persisted booking."""

    id: UUID
    booking_id: UUID
    purpose: OutboxPurpose = OutboxPurpose.PAYMENT
    customer_id: str
    amount_cents: int
    reference: str
    description: str | None = None
    status: OutboxStatus = OutboxStatus.PENDING
    attempts: int = 0
    last_error: str | None = None
    next_attempt_at: datetime
    transaction_id: UUID | None = None
    resolution_note: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def kind(self) -> TransactionKind:
        return self.purpose.kind
