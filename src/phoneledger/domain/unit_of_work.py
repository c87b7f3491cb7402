"""Read and write plans for atomic units of work.

The store only guarantees isolation when every read happens before any
write. Algorithms therefore declare what they need up front (``ReadPlan``),
receive an immutable ``Snapshot`` of it, and describe their effect as a
``WritePlan`` of unconditional mutations. ``Database.run_atomically`` owns
the sequencing and the conflict retries.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from decimal import Decimal
from typing import Mapping, Optional

from phoneledger.domain.balances import BalanceSheet
from phoneledger.domain.entities import (
    Account,
    AccountKind,
    Brand,
    Entity,
    HistoryEntry,
    InventoryUnit,
    Model,
    Transaction,
    TransactionType,
)
from phoneledger.domain.errors import NotFoundError, record_not_found


@dataclass
class ReadPlan:
    """Documents a unit of work reads before it writes anything."""

    record: Optional[tuple[TransactionType, str]] = None
    entity_ids: set[str] = field(default_factory=set)
    accounts: set[AccountKind] = field(default_factory=lambda: set(AccountKind))
    currency_owners: set[str] = field(default_factory=set)
    phone_ids: set[str] = field(default_factory=set)
    imeis: set[str] = field(default_factory=set)
    brand_ids: set[str] = field(default_factory=set)
    model_ids: set[str] = field(default_factory=set)
    order_number: bool = False


@dataclass(frozen=True)
class Snapshot:
    """Result of the read phase.

    Missing documents are simply absent from the mappings; accounts that do
    not exist yet read as zero. ``imeis`` maps every live IMEI that was
    asked for to its phone id.
    """

    record: Optional[Transaction] = None
    entities: Mapping[str, Entity] = field(default_factory=dict)
    accounts: Mapping[AccountKind, Account] = field(default_factory=dict)
    currency_balances: Mapping[str, Mapping[str, Decimal]] = field(default_factory=dict)
    phones: Mapping[str, InventoryUnit] = field(default_factory=dict)
    imeis: Mapping[str, str] = field(default_factory=dict)
    brands: Mapping[str, Brand] = field(default_factory=dict)
    models: Mapping[str, Model] = field(default_factory=dict)
    next_order_number: Optional[int] = None

    def require_record(self, transaction_type: TransactionType, transaction_id: str) -> Transaction:
        if self.record is None:
            raise NotFoundError(record_not_found(transaction_type.value, transaction_id))
        return self.record


# Write operations. Balance writes are absolute values computed from the
# snapshot; the store rejects them if the row changed since it was read.


@dataclass(frozen=True)
class SetEntityBalance:
    entity_id: str
    balance: Decimal


@dataclass(frozen=True)
class AddHistoryEntry:
    entity_id: str
    entry: HistoryEntry


@dataclass(frozen=True)
class RemoveHistoryEntries:
    entity_id: str
    transaction_id: str


@dataclass(frozen=True)
class SetAccountAmount:
    kind: AccountKind
    amount: Decimal


@dataclass(frozen=True)
class IncrementAccount:
    kind: AccountKind
    delta: Decimal


@dataclass(frozen=True)
class SetCurrencyAmount:
    owner_id: str
    currency: str
    amount: Decimal


@dataclass(frozen=True)
class CreatePhone:
    unit: InventoryUnit
    model_id: str


@dataclass(frozen=True)
class DeletePhone:
    phone_id: str
    imei: str


@dataclass(frozen=True)
class SaveRecord:
    record: Transaction


@dataclass(frozen=True)
class DeleteRecord:
    transaction_type: TransactionType
    transaction_id: str


@dataclass(frozen=True)
class ReserveOrderNumber:
    number: int
    transaction_type: TransactionType
    transaction_id: str


@dataclass(frozen=True)
class ReleaseOrderNumber:
    number: int


WriteOp = (
    SetEntityBalance
    | AddHistoryEntry
    | RemoveHistoryEntries
    | SetAccountAmount
    | IncrementAccount
    | SetCurrencyAmount
    | CreatePhone
    | DeletePhone
    | SaveRecord
    | DeleteRecord
    | ReserveOrderNumber
    | ReleaseOrderNumber
)


class WritePlan:
    """Mutations computed from a snapshot, applied as one commit."""

    def __init__(self, snapshot: Snapshot):
        self.snapshot = snapshot
        self.balances = BalanceSheet(snapshot)
        self.saved_record: Optional[Transaction] = None
        self._ops: list[WriteOp] = []

    def add_history(self, entity_id: str, role: str, transaction_type: TransactionType, transaction_id: str) -> None:
        entry = HistoryEntry(
            role=role,
            transaction_type=transaction_type,
            transaction_id=transaction_id,
            timestamp=datetime.now(UTC),
        )
        self._ops.append(AddHistoryEntry(entity_id=entity_id, entry=entry))

    def remove_history(self, entity_id: str, transaction_id: str) -> None:
        self._ops.append(RemoveHistoryEntries(entity_id=entity_id, transaction_id=transaction_id))

    def create_phone(self, unit: InventoryUnit, model_id: str) -> None:
        self._ops.append(CreatePhone(unit=unit, model_id=model_id))

    def delete_phone(self, phone_id: str, imei: str) -> None:
        self._ops.append(DeletePhone(phone_id=phone_id, imei=imei))

    def save_record(self, record: Transaction) -> None:
        self.saved_record = record
        self._ops.append(SaveRecord(record=record))

    def delete_record(self, transaction_type: TransactionType, transaction_id: str) -> None:
        self._ops.append(DeleteRecord(transaction_type=transaction_type, transaction_id=transaction_id))

    def reserve_order_number(self, number: int, transaction_type: TransactionType, transaction_id: str) -> None:
        self._ops.append(
            ReserveOrderNumber(number=number, transaction_type=transaction_type, transaction_id=transaction_id)
        )

    def release_order_number(self, number: int) -> None:
        self._ops.append(ReleaseOrderNumber(number=number))

    def operations(self) -> list[WriteOp]:
        """Return every write, balances last."""
        ops: list[WriteOp] = list(self._ops)
        for entity_id, balance in self.balances.changed_entities().items():
            ops.append(SetEntityBalance(entity_id=entity_id, balance=balance))
        for kind, amount in self.balances.changed_accounts().items():
            ops.append(SetAccountAmount(kind=kind, amount=amount))
        for (owner_id, currency), amount in self.balances.changed_currencies().items():
            ops.append(SetCurrencyAmount(owner_id=owner_id, currency=currency, amount=amount))
        return ops


class BatchPlan:
    """Unconditional writes committed together without a read phase.

    Account changes are expressed as increments so the store can apply them
    against the current value instead of a value read earlier.
    """

    def __init__(self) -> None:
        self._ops: list[WriteOp] = []

    def increment_account(self, kind: AccountKind, delta: Decimal) -> None:
        self._ops.append(IncrementAccount(kind=kind, delta=delta))

    def delete_record(self, transaction_type: TransactionType, transaction_id: str) -> None:
        self._ops.append(DeleteRecord(transaction_type=transaction_type, transaction_id=transaction_id))

    def save_record(self, record: Transaction) -> None:
        self._ops.append(SaveRecord(record=record))

    def operations(self) -> list[WriteOp]:
        return list(self._ops)
