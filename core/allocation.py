"""
Payment allocation across cash and wallet.

Pure functions over integers; nothing here reads or writes a wallet.

Mixed payments are edited one field at a time. Wallet capacity is always
the hard ceiling and cash absorbs whatever the wallet cannot cover, so
wallet_cents + cash_cents == grand_total_cents after every edit, not
just at submission.
"""

from core.exceptions import (
    ExceedsWalletBalanceError,
    InsufficientFundsError,
    InvalidInputError,
    MismatchedTotalError,
)
from core.models import AllocationState, PaymentAllocation, PaymentMode

# Largest tolerated gap between wallet + cash and the grand total
MISMATCH_TOLERANCE_CENTS = 1


def enter_mixed(grand_total_cents: int, wallet_balance_cents: int) -> AllocationState:
    """Default mixed split: spend the wallet first, cash covers the rest."""
    if grand_total_cents < 0:
        raise InvalidInputError("Grand total cannot be negative")

    balance = max(0, wallet_balance_cents)
    wallet = min(balance, grand_total_cents)
    return AllocationState(
        grand_total_cents=grand_total_cents,
        wallet_balance_cents=balance,
        wallet_cents=wallet,
        cash_cents=grand_total_cents - wallet,
    )


def on_wallet_edited(state: AllocationState, wallet_cents: int) -> AllocationState:
    """Customer typed a wallet amount; clamp it and recompute cash."""
    wallet = min(max(wallet_cents, 0), state.wallet_balance_cents, state.grand_total_cents)
    return state.model_copy(update={
        "wallet_cents": wallet,
        "cash_cents": state.grand_total_cents - wallet,
    })


def on_cash_edited(state: AllocationState, cash_cents: int) -> AllocationState:
    """
    Customer typed a cash amount; recompute the wallet portion.

    If the wallet cannot cover the remainder, cash is raised back up so
    the pair still sums to the grand total.
    """
    total = state.grand_total_cents
    cash = min(max(cash_cents, 0), total)
    wallet = min(total - cash, state.wallet_balance_cents)
    return state.model_copy(update={
        "wallet_cents": wallet,
        "cash_cents": total - wallet,
    })


def allocate(
    grand_total_cents: int,
    mode: PaymentMode,
    wallet_balance_cents: int = 0,
) -> PaymentAllocation:
    """
    Allocate a grand total to one instrument, or the default mixed split.

    Raises:
        InsufficientFundsError: Wallet mode and balance < grand total
    """
    if mode == PaymentMode.CASH:
        return PaymentAllocation(mode=mode, wallet_cents=0, cash_cents=grand_total_cents)

    if mode == PaymentMode.WALLET:
        if wallet_balance_cents < grand_total_cents:
            raise InsufficientFundsError(wallet_balance_cents, grand_total_cents)
        return PaymentAllocation(mode=mode, wallet_cents=grand_total_cents, cash_cents=0)

    return enter_mixed(grand_total_cents, wallet_balance_cents).to_allocation()


def validate_allocation(
    allocation: PaymentAllocation,
    grand_total_cents: int,
    wallet_balance_cents: int,
) -> None:
    """
    Re-check a submitted allocation against the authoritative total and balance.

    Client-side state can drift from what was priced, so this runs once more
    at submission even when the allocation came from AllocationState.

    Raises:
        InvalidInputError: A negative portion
        MismatchedTotalError: Portions do not sum to the grand total
        ExceedsWalletBalanceError: Wallet portion above the balance
    """
    if allocation.wallet_cents < 0 or allocation.cash_cents < 0:
        raise InvalidInputError("Payment amounts cannot be negative")

    if abs(allocation.total_cents - grand_total_cents) > MISMATCH_TOLERANCE_CENTS:
        raise MismatchedTotalError(allocation.wallet_cents, allocation.cash_cents, grand_total_cents)

    if allocation.wallet_cents > wallet_balance_cents:
        if allocation.mode == PaymentMode.WALLET:
            raise InsufficientFundsError(wallet_balance_cents, grand_total_cents)
        raise ExceedsWalletBalanceError(allocation.wallet_cents, wallet_balance_cents)
