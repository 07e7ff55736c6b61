"""Customer wallet and ledger models.

Balance is stored in cents. Loyalty points track the same quantity at a
fixed rate of 100 points per currency unit (1 point per cent); the two
fields always move together and neither is authoritative on its own.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from utils.money import CENTS_PER_UNIT

POINTS_PER_CURRENCY_UNIT = 100


def points_for_cents(amount_cents: int) -> int:
    """Loyalty points equivalent to an amount of cents."""
    return amount_cents * POINTS_PER_CURRENCY_UNIT // CENTS_PER_UNIT


class TransactionKind(str, Enum):
    """Direction of a ledger entry."""

    DEBIT = "debit"
    CREDIT = "credit"


class WalletAccount(BaseModel):
    """Wallet as stored. version increments on every mutation."""

    customer_id: str
    balance_cents: int = Field(..., ge=0)
    loyalty_points: int = Field(..., ge=0)
    version: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class WalletTransaction(BaseModel):
    """
    Immutable ledger entry.

    sequence is the account version this entry produced, so entries for
    one account are totally ordered and chain: previous_balance_cents of
    entry n equals new_balance_cents of entry n-1.
    """

    id: UUID
    customer_id: str
    kind: TransactionKind
    amount_cents: int
    points_delta: int
    booking_id: UUID | None = None
    reference: str | None = None
    description: str | None = None
    sequence: int
    previous_balance_cents: int
    new_balance_cents: int
    previous_points: int
    new_points: int
    created_at: datetime

    model_config = {"from_attributes": True, "frozen": True}


class WalletCreditRequest(BaseModel):
    """Data required to top up a wallet."""

    amount_cents: int = Field(..., gt=0)
    reference: str | None = Field(None, max_length=200)
    description: str | None = Field(None, max_length=500)
