"""Postgres repositories for wallets, bookings and the ledger outbox."""

from core.repositories.wallet_repository import WalletRepository
from core.repositories.booking_repository import BookingRepository
from core.repositories.ledger_outbox_repository import LedgerOutboxRepository

__all__ = ["WalletRepository", "BookingRepository", "LedgerOutboxRepository"]
