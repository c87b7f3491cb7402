"""Domain model entities for phoneledger.

These are pure data classes representing business concepts, independent of
database schema. Stored transactions form a tagged union: each record type
carries only its own fields and everything needed to reverse it without
consulting any other record.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

MYSELF_CASH_ID = "myself_special_id"
MYSELF_BANK_ID = "myself_bank_special_id"
BASE_CURRENCY = "CAD"

ZERO = Decimal("0")


class EntityKind(str, Enum):
    """Counterparty kinds, in the order ids are resolved."""

    CUSTOMER = "customer"
    MIDDLEMAN = "middleman"
    SUPPLIER = "supplier"


class AccountKind(str, Enum):
    """The three internal account singletons."""

    CASH = "cash"
    BANK = "bank"
    CREDIT_CARD = "credit_card"


class TransactionType(str, Enum):
    """Stored record types the reversal engine understands."""

    PURCHASE = "purchase"
    SALE = "sale"
    CURRENCY_TRANSFER = "currency_transfer"
    EXPENSE = "expense"
    BALANCE_ADJUSTMENT = "balance_adjustment"


class MiddlemanUnit(str, Enum):
    """Direction of the middleman's share: we give it or we receive it."""

    GIVE = "give"
    RECEIVE = "receive"


class PhoneStatus(str, Enum):
    """Lifecycle status of an inventory unit."""

    ACTIVE = "Active"
    SOLD = "Sold"
    RETURNED = "Returned"


@dataclass(frozen=True)
class HistoryEntry:
    """Entry in an entity's transaction history."""

    role: str
    transaction_type: TransactionType
    transaction_id: str
    timestamp: datetime


@dataclass(frozen=True)
class Entity:
    """Customer, supplier or middleman with a signed CAD balance.

    A positive balance means the entity owes us.
    """

    id: str
    kind: EntityKind
    name: str
    balance: Decimal
    history: tuple[HistoryEntry, ...] = ()


@dataclass(frozen=True)
class Account:
    """Internal account singleton holding CAD."""

    kind: AccountKind
    amount: Decimal
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Brand:
    id: str
    name: str


@dataclass(frozen=True)
class Model:
    id: str
    brand_id: str
    name: str


@dataclass(frozen=True)
class InventoryUnit:
    """A physical phone in stock, keyed by IMEI."""

    id: str
    imei: str
    brand: str
    model: str
    capacity: str
    capacity_unit: str
    unit_cost: Decimal
    status: PhoneStatus = PhoneStatus.ACTIVE
    color: Optional[str] = None
    carrier: Optional[str] = None
    storage_location: Optional[str] = None


@dataclass(frozen=True)
class PaymentMethods:
    cash: Decimal = ZERO
    bank: Decimal = ZERO
    credit_card: Decimal = ZERO
    total_paid: Decimal = ZERO
    remaining_credit: Decimal = ZERO


@dataclass(frozen=True)
class PaymentSplit:
    cash: Decimal = ZERO
    bank: Decimal = ZERO
    credit_card: Decimal = ZERO
    credit: Decimal = ZERO


@dataclass(frozen=True)
class MiddlemanPayment:
    """Middleman's share of a purchase or sale and which way it flows."""

    unit: MiddlemanUnit
    split: PaymentSplit = field(default_factory=PaymentSplit)


@dataclass(frozen=True)
class LineItem:
    """Archived phone line on a purchase or sale.

    ``actual_cost`` is the purchase cost of the unit; ``unit_cost`` is the
    older field name for the same value and is only read as a fallback.
    """

    brand: str
    model: str
    imei: str
    capacity: str
    capacity_unit: str
    actual_cost: Optional[Decimal] = None
    unit_cost: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None
    color: Optional[str] = None
    carrier: Optional[str] = None
    storage_location: Optional[str] = None
    status: PhoneStatus = PhoneStatus.ACTIVE

    @property
    def cost(self) -> Decimal:
        if self.actual_cost is not None:
            return self.actual_cost
        if self.unit_cost is not None:
            return self.unit_cost
        return ZERO


@dataclass(frozen=True)
class ServiceLine:
    """Non-inventory charge on a purchase or sale, such as a repair or unlock."""

    name: str
    price: Decimal


@dataclass(frozen=True)
class Purchase:
    id: str
    date: date
    grand_total: Decimal
    payment: PaymentMethods
    items: tuple[LineItem, ...]
    supplier_id: str
    order_number: int
    gst_amount: Decimal = ZERO
    pst_amount: Decimal = ZERO
    middleman_id: Optional[str] = None
    middleman_payment: Optional[MiddlemanPayment] = None
    notes: Optional[str] = None
    services: tuple[ServiceLine, ...] = ()

    @property
    def amount(self) -> Decimal:
        return self.grand_total


@dataclass(frozen=True)
class Sale:
    id: str
    date: date
    grand_total: Decimal
    payment: PaymentMethods
    items: tuple[LineItem, ...]
    customer_id: str
    order_number: int
    gst_amount: Decimal = ZERO
    pst_amount: Decimal = ZERO
    middleman_id: Optional[str] = None
    middleman_payment: Optional[MiddlemanPayment] = None
    notes: Optional[str] = None
    services: tuple[ServiceLine, ...] = ()

    @property
    def amount(self) -> Decimal:
        return self.grand_total


@dataclass(frozen=True)
class CurrencyTransfer:
    """Regular transfer or exchange between two balance holders.

    ``giver`` and ``taker`` are entity ids or one of the two "myself" ids.
    """

    id: str
    date: date
    giver: str
    taker: str
    currency: str
    amount: Decimal
    is_exchange: bool = False
    receiving_currency: Optional[str] = None
    received_amount: Optional[Decimal] = None
    custom_exchange_rate: Optional[Decimal] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class Expense:
    id: str
    date: date
    amount: Decimal
    cash_paid: Decimal = ZERO
    bank_paid: Decimal = ZERO
    credit_card_paid: Decimal = ZERO
    category: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class BalanceAdjustment:
    """Direct edit of an entity balance, kept so it can be undone."""

    id: str
    date: date
    entity_id: str
    entity_type: Optional[EntityKind]
    currency: str
    initial_balance: Decimal
    final_balance: Decimal

    @property
    def adjustment_amount(self) -> Decimal:
        return self.final_balance - self.initial_balance

    @property
    def amount(self) -> Decimal:
        return self.adjustment_amount


Transaction = Union[Purchase, Sale, CurrencyTransfer, Expense, BalanceAdjustment]

TRANSACTION_CLASSES: dict[TransactionType, type] = {
    TransactionType.PURCHASE: Purchase,
    TransactionType.SALE: Sale,
    TransactionType.CURRENCY_TRANSFER: CurrencyTransfer,
    TransactionType.EXPENSE: Expense,
    TransactionType.BALANCE_ADJUSTMENT: BalanceAdjustment,
}


def transaction_type_of(transaction: Transaction) -> TransactionType:
    """Return the type tag for a transaction variant."""
    for txn_type, cls in TRANSACTION_CLASSES.items():
        if isinstance(transaction, cls):
            return txn_type
    raise TypeError(f"Unknown transaction variant: {type(transaction).__name__}")


def is_myself(holder_id: str) -> bool:
    return holder_id in (MYSELF_CASH_ID, MYSELF_BANK_ID)


@dataclass(frozen=True)
class ReversalResult:
    """Outcome of a committed reversal.

    ``skipped_imeis`` lists line items whose inventory could not be resolved
    and were left untouched.
    """

    transaction_id: str
    transaction_type: TransactionType
    skipped_imeis: tuple[str, ...] = ()
