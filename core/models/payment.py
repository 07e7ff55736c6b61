"""Payment allocation models.

A booking is paid with cash, with the customer's wallet, or with a mix of
both. Amounts are cents.
"""

from enum import Enum

from pydantic import BaseModel


class PaymentMode(str, Enum):
    """Payment instrument chosen at checkout."""

    CASH = "cash"
    WALLET = "wallet"
    MIXED = "mixed"

    @property
    def uses_wallet(self) -> bool:
        return self in (PaymentMode.WALLET, PaymentMode.MIXED)


class PaymentAllocation(BaseModel):
    """How a grand total is split across instruments."""

    mode: PaymentMode
    wallet_cents: int = 0
    cash_cents: int = 0

    model_config = {"frozen": True}

    @property
    def total_cents(self) -> int:
        return self.wallet_cents + self.cash_cents


class AllocationState(BaseModel):
    """
    Working (wallet, cash) pair for an interactive mixed payment.

    Build with core.allocation.enter_mixed and move it forward with
    on_wallet_edited / on_cash_edited; every state sums to the grand total.
    """

    grand_total_cents: int
    wallet_balance_cents: int
    wallet_cents: int
    cash_cents: int

    model_config = {"frozen": True}

    def to_allocation(self) -> PaymentAllocation:
        return PaymentAllocation(
            mode=PaymentMode.MIXED,
            wallet_cents=self.wallet_cents,
            cash_cents=self.cash_cents,
        )


class PaymentChoice(BaseModel):
    """
    Payment as submitted with a booking.

    For mixed mode the caller may send the amounts the customer settled on;
    when omitted the default split (wallet first) is used.
    """

    mode: PaymentMode
    wallet_cents: int | None = None
    cash_cents: int | None = None
