"""API test fixtures: TestClient over services backed by in-memory repositories."""

import pytest
from starlette.testclient import TestClient

from api.app import create_app
from core.handlers.booking_cancellation_handler import handle_booking_cancelled
from core.handlers.booking_completion_handler import handle_booking_completed
from core.services.booking_service import BookingService
from core.services.reconciliation_service import ReconciliationService
from core.services.wallet_ledger import WalletLedger


# =============================================================================
# SERVICES DICT
# =============================================================================


@pytest.fixture
def services(wallet_repo, booking_repo, outbox_repo, audit, event_bus, config):
    """Same shape as api.app.build_services(), wired onto the fakes."""
    ledger = WalletLedger(wallet_repo, event_bus, config)
    reconciliation_service = ReconciliationService(outbox_repo, booking_repo, ledger, audit, config)
    booking_service = BookingService(
        booking_repo, outbox_repo, ledger, audit, event_bus, config, reconciliation=reconciliation_service
    )

    event_bus.subscribe("BookingCompleted", handle_booking_completed(reconciliation_service, outbox_repo))
    event_bus.subscribe("BookingCancelled", handle_booking_cancelled(reconciliation_service, outbox_repo))

    return {
        "ledger": ledger,
        "booking": booking_service,
        "reconciliation": reconciliation_service,
        "outbox": outbox_repo,
        "event_bus": event_bus,
    }


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services):
    return create_app(services)


@pytest.fixture
def client(app):
    """Client for the customer-facing checkout (no staff header)."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def staff_client(app, test_staff_id):
    """Client whose requests carry the front-desk staff header."""
    c = TestClient(app, raise_server_exceptions=False)
    c.headers["X-Staff-Id"] = str(test_staff_id)
    return c
