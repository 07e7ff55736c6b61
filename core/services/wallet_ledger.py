"""
Wallet ledger: the only code path that changes a wallet.

Every debit or credit appends an immutable WalletTransaction and moves the
account's balance and loyalty points together, at the fixed rate of 100
points per currency unit. Writers use optimistic concurrency on the
account version and retry on a lost race, so two checkouts for the same
customer can never both spend the same balance.
"""

import logging
from uuid import UUID, uuid4

from core.config import CheckoutConfig
from core.event_bus import EventBus
from core.events import WalletCredited, WalletDebited
from core.exceptions import (
    AccountNotFoundError,
    ConcurrentModificationError,
    InsufficientFundsError,
    InvalidInputError,
)
from core.models import TransactionKind, WalletAccount, WalletTransaction, points_for_cents
from core.repositories import WalletRepository
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class WalletLedger:
    """Service for wallet reads and ledger mutations."""

    def __init__(
        self,
        wallets: WalletRepository,
        event_bus: EventBus | None = None,
        config: CheckoutConfig | None = None
    ):
        self.wallets = wallets
        self.event_bus = event_bus
        self.config = config or CheckoutConfig()

    def get_account(self, customer_id: str) -> WalletAccount:
        """
        Get a customer's wallet, opening an empty one on first access.

        Args:
            customer_id: Identity provider's customer id

        Returns:
            Current account state
        """
        account = self.wallets.get(customer_id)
        if account is not None:
            return account

        account = self.wallets.create_if_missing(customer_id)
        logger.info(f"Opened wallet for customer {customer_id}")
        return account

    def debit(
        self,
        customer_id: str,
        amount_cents: int,
        booking_id: UUID | None = None,
        reference: str | None = None,
        description: str | None = None,
        require_existing: bool = False,
        allow_overdraw: bool = True
    ) -> WalletTransaction:
        """
        Take money and the matching points out of a wallet.

        Balance and points floor at zero. With allow_overdraw=False the
        balance is checked against the amount on every write attempt, under
        the same version guard as the write, so two concurrent payments can
        never both spend one balance.

        Args:
            customer_id: Wallet owner
            amount_cents: Amount to debit, > 0
            booking_id: Booking this debit pays for
            reference: Idempotency key; a repeat returns the earlier entry
            description: Free text for statements
            require_existing: Raise instead of opening a missing account
            allow_overdraw: False to refuse a debit the balance does not cover

        Returns:
            The committed ledger entry (or the earlier one with this reference)

        Raises:
            InvalidInputError: amount_cents <= 0
            InsufficientFundsError: Balance short and allow_overdraw is False
            AccountNotFoundError: No account and require_existing is set
            ConcurrentModificationError: Retries exhausted
        """
        return self._mutate(
            TransactionKind.DEBIT, customer_id, amount_cents,
            booking_id, reference, description, require_existing, allow_overdraw
        )

    def credit(
        self,
        customer_id: str,
        amount_cents: int,
        booking_id: UUID | None = None,
        reference: str | None = None,
        description: str | None = None,
        require_existing: bool = False
    ) -> WalletTransaction:
        """
        Add money and the matching points to a wallet.

        Same arguments and errors as debit().
        """
        return self._mutate(
            TransactionKind.CREDIT, customer_id, amount_cents,
            booking_id, reference, description, require_existing
        )

    def list_transactions(self, customer_id: str, limit: int = 100) -> list[WalletTransaction]:
        """A customer's most recent ledger entries, oldest first."""
        return self.wallets.list_transactions(customer_id, limit)

    def find_debit_for_booking(self, booking_id: UUID) -> WalletTransaction | None:
        return self.wallets.find_debit_for_booking(booking_id)

    def _load(self, customer_id: str, require_existing: bool) -> WalletAccount:
        account = self.wallets.get(customer_id)
        if account is not None:
            return account

        if require_existing:
            raise AccountNotFoundError(customer_id)

        return self.get_account(customer_id)

    def _mutate(
        self,
        kind: TransactionKind,
        customer_id: str,
        amount_cents: int,
        booking_id: UUID | None,
        reference: str | None,
        description: str | None,
        require_existing: bool,
        allow_overdraw: bool = True
    ) -> WalletTransaction:
        if amount_cents <= 0:
            raise InvalidInputError(f"Wallet {kind.value} amount must be positive, got {amount_cents}")

        max_attempts = self.config.ledger_max_retries

        for attempt in range(1, max_attempts + 1):
            if reference is not None:
                existing = self.wallets.find_transaction_by_reference(customer_id, reference)
                if existing is not None:
                    logger.info(
                        f"Wallet {kind.value} '{reference}' for {customer_id} already applied "
                        f"as {existing.id}"
                    )
                    return existing

            account = self._load(customer_id, require_existing)
            if not allow_overdraw and account.balance_cents < amount_cents:
                logger.info(
                    f"Wallet {customer_id} holds {account.balance_cents} cents, "
                    f"refusing {kind.value} of {amount_cents}"
                )
                raise InsufficientFundsError(account.balance_cents, amount_cents)

            txn = _next_entry(account, kind, amount_cents, booking_id, reference, description)

            if self.wallets.apply_mutation(txn):
                logger.info(
                    f"Wallet {kind.value} {amount_cents} cents for {customer_id}: "
                    f"balance {txn.previous_balance_cents} -> {txn.new_balance_cents}, "
                    f"points {txn.previous_points} -> {txn.new_points} (seq {txn.sequence})"
                )
                self._publish(txn)
                return txn

            logger.info(
                f"Wallet {customer_id} changed concurrently, retrying {kind.value} "
                f"(attempt {attempt}/{max_attempts})"
            )

        raise ConcurrentModificationError(
            f"Wallet {customer_id} {kind.value} abandoned after {max_attempts} concurrent modifications"
        )

    def _publish(self, txn: WalletTransaction) -> None:
        if self.event_bus is None:
            return

        if txn.kind == TransactionKind.DEBIT:
            self.event_bus.publish(WalletDebited.create(txn))
        else:
            self.event_bus.publish(WalletCredited.create(txn))


def _next_entry(
    account: WalletAccount,
    kind: TransactionKind,
    amount_cents: int,
    booking_id: UUID | None,
    reference: str | None,
    description: str | None
) -> WalletTransaction:
    """Ledger entry that moves `account` by `amount_cents`, chained on its current version."""
    points = points_for_cents(amount_cents)

    if kind == TransactionKind.DEBIT:
        new_balance = max(0, account.balance_cents - amount_cents)
        new_points = max(0, account.loyalty_points - points)
    else:
        new_balance = account.balance_cents + amount_cents
        new_points = account.loyalty_points + points

    return WalletTransaction(
        id=uuid4(),
        customer_id=account.customer_id,
        kind=kind,
        amount_cents=amount_cents,
        points_delta=new_points - account.loyalty_points,
        booking_id=booking_id,
        reference=reference,
        description=description,
        sequence=account.version + 1,
        previous_balance_cents=account.balance_cents,
        new_balance_cents=new_balance,
        previous_points=account.loyalty_points,
        new_points=new_points,
        created_at=now_utc(),
    )
