"""
SQL for wallet accounts and their ledger.

wallet_accounts.version is the optimistic-concurrency token. A mutation
updates the account only if the version it read is still current, and the
matching wallet_transactions row is inserted in the same database
transaction, so balance and ledger never diverge.
"""

import logging
from uuid import UUID

import psycopg2.errors

from clients.postgres_client import PostgresClient
from core.models import TransactionKind, WalletAccount, WalletTransaction
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class WalletRepository:
    """Persistence for WalletAccount and WalletTransaction."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get(self, customer_id: str) -> WalletAccount | None:
        row = self.postgres.execute_single(
            "SELECT * FROM wallet_accounts WHERE customer_id = %s",
            (customer_id,)
        )

        if row is None:
            return None

        return WalletAccount.model_validate(row)

    def create_if_missing(self, customer_id: str) -> WalletAccount:
        """
        Create a zero-balance account unless one exists.

        Concurrent first reads for the same customer both land on the single
        row guarded by the primary key.

        Returns:
            The account as stored after the insert attempt
        """
        now = now_utc()
        self.postgres.execute(
            """
            INSERT INTO wallet_accounts (customer_id, balance_cents, loyalty_points, version, created_at, updated_at)
            VALUES (%s, 0, 0, 0, %s, %s)
            ON CONFLICT (customer_id) DO NOTHING
            """,
            (customer_id, now, now)
        )

        return self.get(customer_id)

    def apply_mutation(self, txn: WalletTransaction) -> bool:
        """
        Write a ledger entry and the account state it produces.

        The entry's sequence is the new account version; the update only
        applies while the stored version is still sequence - 1.

        Args:
            txn: Fully computed ledger entry

        Returns:
            True if committed, False if another writer got there first
            (version moved or the reference was taken).
        """
        try:
            with self.postgres.transaction() as cur:
                cur.execute(
                    """
                    UPDATE wallet_accounts
                    SET balance_cents = %s, loyalty_points = %s, version = %s, updated_at = %s
                    WHERE customer_id = %s AND version = %s
                    """,
                    (
                        txn.new_balance_cents, txn.new_points, txn.sequence, txn.created_at,
                        txn.customer_id, txn.sequence - 1
                    )
                )

                if cur.rowcount == 0:
                    cur.rollback()
                    return False

                cur.execute(
                    """
                    INSERT INTO wallet_transactions (
                        id, customer_id, kind, amount_cents, points_delta,
                        booking_id, reference, description, sequence,
                        previous_balance_cents, new_balance_cents,
                        previous_points, new_points, created_at
                    ) VALUES (
                        %s, %s, %s, %s, %s,
                        %s, %s, %s, %s,
                        %s, %s,
                        %s, %s, %s
                    )
                    """,
                    (
                        txn.id, txn.customer_id, txn.kind.value, txn.amount_cents, txn.points_delta,
                        txn.booking_id, txn.reference, txn.description, txn.sequence,
                        txn.previous_balance_cents, txn.new_balance_cents,
                        txn.previous_points, txn.new_points, txn.created_at
                    )
                )
        except psycopg2.errors.UniqueViolation:
            logger.info(
                f"Ledger entry for {txn.customer_id} lost a uniqueness race "
                f"(sequence={txn.sequence}, reference={txn.reference})"
            )
            return False

        return True

    def find_transaction_by_reference(self, customer_id: str, reference: str) -> WalletTransaction | None:
        row = self.postgres.execute_single(
            "SELECT * FROM wallet_transactions WHERE customer_id = %s AND reference = %s",
            (customer_id, reference)
        )

        if row is None:
            return None

        return WalletTransaction.model_validate(row)

    def find_debit_for_booking(self, booking_id: UUID) -> WalletTransaction | None:
        """The payment debit recorded against a booking, if it landed."""
        row = self.postgres.execute_single(
            """
            SELECT * FROM wallet_transactions
            WHERE booking_id = %s AND kind = %s
            ORDER BY sequence ASC
            LIMIT 1
            """,
            (booking_id, TransactionKind.DEBIT.value)
        )

        if row is None:
            return None

        return WalletTransaction.model_validate(row)

    def list_transactions(self, customer_id: str, limit: int = 100) -> list[WalletTransaction]:
        """
        The most recent `limit` ledger entries for an account, oldest first.

        Returns:
            Entries ordered by sequence so each one's previous balance is
            the prior entry's new balance
        """
        rows = self.postgres.execute(
            """
            SELECT * FROM (
                SELECT * FROM wallet_transactions
                WHERE customer_id = %s
                ORDER BY sequence DESC
                LIMIT %s
            ) recent
            ORDER BY sequence ASC
            """,
            (customer_id, limit)
        )

        return [WalletTransaction.model_validate(row) for row in rows]
