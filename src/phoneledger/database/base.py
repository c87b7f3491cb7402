"""Abstract database interface."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable, Optional, TypeVar

# Import entities directly to avoid circular import through domain/__init__.py
from phoneledger.domain.entities import (
    Account,
    Brand,
    Entity,
    EntityKind,
    InventoryUnit,
    Model,
    Transaction,
    TransactionType,
)
from phoneledger.domain.unit_of_work import BatchPlan, ReadPlan, Snapshot, WritePlan

PlanT = TypeVar("PlanT", bound=WritePlan)


class Database(ABC):
    """Abstract document store interface for phoneledger.

    Point gets and field-equality lookups are non-transactional. All writes
    go through ``run_atomically`` (snapshot read, conditional write) or
    ``commit_batch`` (unconditional, no pre-read).
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema and the account singletons."""
        pass

    # Units of work
    @abstractmethod
    def run_atomically(self, read_plan: ReadPlan, build: Callable[[Snapshot], PlanT]) -> PlanT:
        """Read everything in ``read_plan``, build writes from it, commit.

        The whole sequence is retried when a concurrent writer changed
        something that was read. Returns the committed plan.

        Raises:
            ConflictRetryExhaustedError: If every attempt conflicted
        """
        pass

    @abstractmethod
    def commit_batch(self, plan: BatchPlan) -> None:
        """Apply unconditional writes atomically."""
        pass

    # Entity operations
    @abstractmethod
    def create_entity(self, entity_id: str, kind: EntityKind, name: str) -> str:
        """Create a customer, middleman or supplier. Returns its ID."""
        pass

    @abstractmethod
    def get_entity(self, entity_id: str) -> Optional[Entity]:
        """Get an entity by ID, whatever its kind."""
        pass

    @abstractmethod
    def list_entities(self, kind: Optional[EntityKind] = None) -> list[Entity]:
        """List entities, optionally filtered by kind."""
        pass

    # Account and currency operations
    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List the account singletons."""
        pass

    @abstractmethod
    def get_currency_balances(self, owner_id: str) -> dict[str, Decimal]:
        """Get the currency map of an owner (empty if never written)."""
        pass

    # Inventory operations
    @abstractmethod
    def ensure_brand_model(self, brand_name: str, model_name: str) -> Model:
        """Get or create a brand and a model under it."""
        pass

    @abstractmethod
    def find_brand(self, name: str) -> Optional[Brand]:
        """Find a brand by name."""
        pass

    @abstractmethod
    def find_model(self, brand_id: str, name: str) -> Optional[Model]:
        """Find a model by brand and name."""
        pass

    @abstractmethod
    def find_phone_by_imei(self, imei: str, model_id: Optional[str] = None) -> Optional[InventoryUnit]:
        """Find the live phone with an IMEI, optionally within one model."""
        pass

    @abstractmethod
    def list_inventory(self, brand: Optional[str] = None) -> list[InventoryUnit]:
        """List phones in stock, optionally filtered by brand name."""
        pass

    # Record operations
    @abstractmethod
    def get_record(self, transaction_type: TransactionType, transaction_id: str) -> Optional[Transaction]:
        """Get a stored record by type and ID."""
        pass

    @abstractmethod
    def list_records(self, transaction_type: Optional[TransactionType] = None) -> list[Transaction]:
        """List stored records, newest first."""
        pass

    @abstractmethod
    def next_order_number(self) -> int:
        """Return the next free order number."""
        pass
