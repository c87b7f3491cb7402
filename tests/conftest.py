"""Shared pytest fixtures for phoneledger tests."""

import tempfile
import os
from decimal import Decimal
import pytest

# Keep test runs from writing into the user's log directory
os.environ.setdefault("PHONELEDGER_LOG_DIR", tempfile.mkdtemp(prefix="phoneledger-logs-"))

from phoneledger.database.factories import create_sqlite_database
from phoneledger.domain.entities import (
    EntityKind,
    LineItem,
    MYSELF_BANK_ID,
    MYSELF_CASH_ID,
)
from phoneledger.domain.entity import EntityService
from phoneledger.domain.inventory import InventoryService
from phoneledger.domain.posting import PostingService
from phoneledger.domain.reversal import ReversalService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def entity_service(temp_db):
    return EntityService(temp_db)


@pytest.fixture
def inventory_service(temp_db):
    return InventoryService(temp_db)


@pytest.fixture
def posting_service(temp_db):
    return PostingService(temp_db)


@pytest.fixture
def reversal_service(temp_db):
    return ReversalService(temp_db)


@pytest.fixture
def supplier(entity_service):
    """Create a supplier with a known ID."""
    return entity_service.create_entity(EntityKind.SUPPLIER, "Wholesale Phones", entity_id="sup-1")


@pytest.fixture
def customer(entity_service):
    """Create a customer with a known ID."""
    return entity_service.create_entity(EntityKind.CUSTOMER, "Jane Doe", entity_id="cust-1")


@pytest.fixture
def middleman(entity_service):
    """Create a middleman with a known ID."""
    return entity_service.create_entity(EntityKind.MIDDLEMAN, "Broker Bob", entity_id="mid-1")


@pytest.fixture
def make_item():
    """Factory for purchase line items."""

    def _make(imei, cost="250", brand="Apple", model="iPhone 13", **overrides):
        fields = dict(
            brand=brand,
            model=model,
            imei=imei,
            capacity="128",
            capacity_unit="GB",
            actual_cost=Decimal(cost),
            color="Black",
            carrier="Unlocked",
            storage_location="Shelf A",
        )
        fields.update(overrides)
        return LineItem(**fields)

    return _make


@pytest.fixture
def ledger_state(temp_db):
    """Capture every balance and the set of IMEIs in stock."""

    def _capture():
        return {
            "accounts": {account.kind: account.amount for account in temp_db.list_accounts()},
            "entities": {ent.id: ent.balance for ent in temp_db.list_entities()},
            "currencies": {
                owner: {currency: amount for currency, amount in temp_db.get_currency_balances(owner).items() if amount}
                for owner in [MYSELF_CASH_ID, MYSELF_BANK_ID] + [ent.id for ent in temp_db.list_entities()]
            },
            "imeis": {unit.imei for unit in temp_db.list_inventory()},
        }

    return _capture


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
