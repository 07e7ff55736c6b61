"""
Application wiring.

build_services() assembles repositories, services and event subscriptions
around one PostgresClient; create_app() mounts the routers on a FastAPI app.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.bookings import create_bookings_router
from api.checkout import create_checkout_router
from api.errors import register_error_handlers
from api.middleware import ActorContextMiddleware, RequestIDMiddleware
from api.reconciliation import create_reconciliation_router
from api.wallets import create_wallets_router
from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url
from core.audit import AuditLogger
from core.config import CheckoutConfig
from core.event_bus import EventBus
from core.handlers.booking_cancellation_handler import handle_booking_cancelled
from core.handlers.booking_completion_handler import handle_booking_completed
from core.repositories import BookingRepository, LedgerOutboxRepository, WalletRepository
from core.services.booking_service import BookingService
from core.services.reconciliation_service import ReconciliationService, ReconciliationWorker
from core.services.wallet_ledger import WalletLedger

logger = logging.getLogger(__name__)


def build_services(postgres: PostgresClient, config: CheckoutConfig | None = None) -> dict:
    """
    Wire the checkout engine onto a database.

    Returns:
        Dict with "ledger", "booking", "reconciliation", "outbox" and "event_bus"
    """
    config = config or CheckoutConfig()
    event_bus = EventBus()
    audit = AuditLogger(postgres)

    bookings = BookingRepository(postgres)
    outbox = LedgerOutboxRepository(postgres)
    ledger = WalletLedger(WalletRepository(postgres), event_bus, config)

    reconciliation_service = ReconciliationService(outbox, bookings, ledger, audit, config)
    booking_service = BookingService(
        bookings, outbox, ledger, audit, event_bus, config, reconciliation=reconciliation_service
    )

    event_bus.subscribe(
        "BookingCompleted", handle_booking_completed(reconciliation_service, outbox)
    )
    event_bus.subscribe(
        "BookingCancelled", handle_booking_cancelled(reconciliation_service, outbox)
    )

    return {
        "ledger": ledger,
        "booking": booking_service,
        "reconciliation": reconciliation_service,
        "outbox": outbox,
        "event_bus": event_bus,
    }


def create_app(services: dict, worker: ReconciliationWorker | None = None) -> FastAPI:
    """
    FastAPI app with middleware, error handlers and all routes under /api.

    Args:
        services: Output of build_services() (or test doubles with the same keys)
        worker: Started on startup and stopped on shutdown when given
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if worker is not None:
            worker.start()
        try:
            yield
        finally:
            if worker is not None:
                worker.stop(timeout=10)

    app = FastAPI(title="Salon Checkout", lifespan=lifespan)
    app.add_middleware(ActorContextMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_checkout_router(services), prefix="/api")
    app.include_router(create_bookings_router(services), prefix="/api")
    app.include_router(create_wallets_router(services), prefix="/api")
    app.include_router(create_reconciliation_router(services), prefix="/api")

    return app


def create_production_app() -> FastAPI:
    """App backed by the Vault-configured database, with the reconciliation worker running."""
    config = CheckoutConfig()
    postgres = PostgresClient(get_database_url())
    services = build_services(postgres, config)
    worker = ReconciliationWorker(services["reconciliation"], config.reconciliation_interval_seconds)
    logger.info("Checkout API configured")
    return create_app(services, worker)
