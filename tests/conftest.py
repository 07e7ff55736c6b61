"""Shared test fixtures for the checkout test suite."""

import pytest
from uuid import UUID
from pathlib import Path

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
# override=True ensures .env takes precedence over shell env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from core.config import CheckoutConfig
from core.event_bus import EventBus
from utils.user_context import actor_context, clear_current_actor_id

from tests.fakes import (
    FakeAuditLogger,
    FakeBookingRepository,
    FakeLedgerOutboxRepository,
    FakeWalletRepository,
)

SCHEMA_PATH = Path(__file__).parent.parent / "db" / "schema.sql"


# =============================================================================
# TEST ACTOR CONSTANTS
# =============================================================================

# Front-desk staff member - use for attributed changes
TEST_STAFF_ID = UUID("00000000-0000-0000-0000-0000000000a1")

# Authenticated customer with a wallet
TEST_CUSTOMER_ID = "cust-0001"


# =============================================================================
# ACTOR CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_actor_context():
    """Ensure clean actor context before and after each test."""
    clear_current_actor_id()
    yield
    clear_current_actor_id()


@pytest.fixture
def test_staff_id() -> UUID:
    return TEST_STAFF_ID


@pytest.fixture
def as_staff(test_staff_id):
    """Attribute changes made inside the test to the test staff member."""
    with actor_context(test_staff_id):
        yield test_staff_id


# =============================================================================
# IN-MEMORY FIXTURES
# =============================================================================


@pytest.fixture
def config() -> CheckoutConfig:
    return CheckoutConfig()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def wallet_repo() -> FakeWalletRepository:
    return FakeWalletRepository()


@pytest.fixture
def booking_repo() -> FakeBookingRepository:
    return FakeBookingRepository()


@pytest.fixture
def outbox_repo(booking_repo) -> FakeLedgerOutboxRepository:
    return booking_repo.outbox


@pytest.fixture
def audit() -> FakeAuditLogger:
    return FakeAuditLogger()


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def db():
    """Session-scoped PostgresClient. Skips when Vault is not configured."""
    from clients.postgres_client import PostgresClient
    from clients.vault_client import get_database_url, vault_configured

    if not vault_configured():
        pytest.skip("Vault not configured; database tests skipped")

    client = PostgresClient(get_database_url())
    yield client
    client.close()


@pytest.fixture(scope="session")
def db_admin():
    """Session-scoped schema-owner PostgresClient for setup and teardown."""
    from clients.postgres_client import PostgresClient
    from clients.vault_client import get_admin_database_url, vault_configured

    if not vault_configured():
        pytest.skip("Vault not configured; database tests skipped")

    client = PostgresClient(get_admin_database_url())
    client.execute(SCHEMA_PATH.read_text())
    yield client
    client.close()


@pytest.fixture
def clean_db(db_admin, db):
    """Empty checkout tables before a database test."""
    db_admin.execute("""
        TRUNCATE
            ledger_outbox, bookings, wallet_transactions, wallet_accounts, audit_log
        CASCADE
    """)
    yield db
