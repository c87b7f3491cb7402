"""Mapper functions to convert between domain models and SQLAlchemy models.

Stored records keep their variant-specific fields in a JSON payload, the way
a document store would hold them. Amounts are serialized as strings so they
round-trip as exact decimals.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from phoneledger.domain import entities as domain
from phoneledger.database.models import (
    Account as ORMAccount,
    Brand as ORMBrand,
    Entity as ORMEntity,
    HistoryEntry as ORMHistoryEntry,
    LedgerRecord as ORMLedgerRecord,
    Model as ORMModel,
    Phone as ORMPhone,
)


def _dec(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


def _dec_or_zero(value: Any) -> Decimal:
    result = _dec(value)
    return domain.ZERO if result is None else result


def _str(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


def history_entry_to_domain(orm_entry: ORMHistoryEntry) -> domain.HistoryEntry:
    """Convert SQLAlchemy HistoryEntry model to domain HistoryEntry entity."""
    return domain.HistoryEntry(
        role=orm_entry.role,
        transaction_type=domain.TransactionType(orm_entry.transaction_type),
        transaction_id=orm_entry.transaction_id,
        timestamp=orm_entry.timestamp,
    )


def entity_to_domain(orm_entity: ORMEntity) -> domain.Entity:
    """Convert SQLAlchemy Entity model to domain Entity."""
    return domain.Entity(
        id=orm_entity.id,
        kind=domain.EntityKind(orm_entity.kind),
        name=orm_entity.name,
        balance=_dec_or_zero(orm_entity.balance),
        history=tuple(history_entry_to_domain(entry) for entry in orm_entity.history),
    )


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        kind=domain.AccountKind(orm_account.kind),
        amount=_dec_or_zero(orm_account.amount),
        updated_at=orm_account.updated_at,
    )


def brand_to_domain(orm_brand: ORMBrand) -> domain.Brand:
    return domain.Brand(id=orm_brand.id, name=orm_brand.name)


def model_to_domain(orm_model: ORMModel) -> domain.Model:
    return domain.Model(id=orm_model.id, brand_id=orm_model.brand_id, name=orm_model.name)


def phone_to_domain(orm_phone: ORMPhone) -> domain.InventoryUnit:
    """Convert SQLAlchemy Phone model (with its model and brand) to an InventoryUnit."""
    return domain.InventoryUnit(
        id=orm_phone.id,
        imei=orm_phone.imei,
        brand=orm_phone.model.brand.name,
        model=orm_phone.model.name,
        capacity=orm_phone.capacity,
        capacity_unit=orm_phone.capacity_unit,
        unit_cost=_dec_or_zero(orm_phone.unit_cost),
        status=domain.PhoneStatus(orm_phone.status),
        color=orm_phone.color,
        carrier=orm_phone.carrier,
        storage_location=orm_phone.storage_location,
    )


# Record payloads


def _line_item_to_payload(item: domain.LineItem) -> dict[str, Any]:
    return {
        "brand": item.brand,
        "model": item.model,
        "imei": item.imei,
        "capacity": item.capacity,
        "capacityUnit": item.capacity_unit,
        "actualCost": _str(item.actual_cost),
        "unitCost": _str(item.unit_cost),
        "sellingPrice": _str(item.selling_price),
        "color": item.color,
        "carrier": item.carrier,
        "storageLocation": item.storage_location,
        "status": item.status.value,
    }


def _line_item_from_payload(data: dict[str, Any]) -> domain.LineItem:
    return domain.LineItem(
        brand=data["brand"],
        model=data["model"],
        imei=data["imei"],
        capacity=data.get("capacity", ""),
        capacity_unit=data.get("capacityUnit", ""),
        actual_cost=_dec(data.get("actualCost")),
        unit_cost=_dec(data.get("unitCost")),
        selling_price=_dec(data.get("sellingPrice")),
        color=data.get("color"),
        carrier=data.get("carrier"),
        storage_location=data.get("storageLocation"),
        status=domain.PhoneStatus(data.get("status", domain.PhoneStatus.ACTIVE.value)),
    )


def _payment_to_payload(payment: domain.PaymentMethods) -> dict[str, str]:
    return {
        "cash": str(payment.cash),
        "bank": str(payment.bank),
        "creditCard": str(payment.credit_card),
        "totalPaid": str(payment.total_paid),
        "remainingCredit": str(payment.remaining_credit),
    }


def _payment_from_payload(data: dict[str, Any]) -> domain.PaymentMethods:
    return domain.PaymentMethods(
        cash=_dec_or_zero(data.get("cash")),
        bank=_dec_or_zero(data.get("bank")),
        credit_card=_dec_or_zero(data.get("creditCard")),
        total_paid=_dec_or_zero(data.get("totalPaid")),
        remaining_credit=_dec_or_zero(data.get("remainingCredit")),
    )


def _middleman_to_payload(payment: Optional[domain.MiddlemanPayment]) -> Optional[dict[str, Any]]:
    if payment is None:
        return None
    return {
        "unit": payment.unit.value,
        "paymentSplit": {
            "cash": str(payment.split.cash),
            "bank": str(payment.split.bank),
            "creditCard": str(payment.split.credit_card),
            "credit": str(payment.split.credit),
        },
    }


def _middleman_from_payload(data: Optional[dict[str, Any]]) -> Optional[domain.MiddlemanPayment]:
    if not data:
        return None
    split = data.get("paymentSplit") or {}
    return domain.MiddlemanPayment(
        unit=domain.MiddlemanUnit(data["unit"]),
        split=domain.PaymentSplit(
            cash=_dec_or_zero(split.get("cash")),
            bank=_dec_or_zero(split.get("bank")),
            credit_card=_dec_or_zero(split.get("creditCard")),
            credit=_dec_or_zero(split.get("credit")),
        ),
    )


def record_to_payload(record: domain.Transaction) -> dict[str, Any]:
    """Serialize the variant-specific fields of a record."""
    if isinstance(record, (domain.Purchase, domain.Sale)):
        counterparty_key = "supplierId" if isinstance(record, domain.Purchase) else "customerId"
        counterparty = record.supplier_id if isinstance(record, domain.Purchase) else record.customer_id
        return {
            "grandTotal": str(record.grand_total),
            "paymentMethods": _payment_to_payload(record.payment),
            "gstAmount": str(record.gst_amount),
            "pstAmount": str(record.pst_amount),
            "items": [_line_item_to_payload(item) for item in record.items],
            "services": [{"name": service.name, "price": str(service.price)} for service in record.services],
            counterparty_key: counterparty,
            "middlemanId": record.middleman_id,
            "middlemanPayment": _middleman_to_payload(record.middleman_payment),
            "orderNumber": record.order_number,
            "notes": record.notes,
        }
    if isinstance(record, domain.CurrencyTransfer):
        return {
            "giver": record.giver,
            "taker": record.taker,
            "currencyName": record.currency,
            "amount": str(record.amount),
            "isExchange": record.is_exchange,
            "receivingCurrencyName": record.receiving_currency,
            "receivedAmount": _str(record.received_amount),
            "customExchangeRate": _str(record.custom_exchange_rate),
            "notes": record.notes,
        }
    if isinstance(record, domain.Expense):
        return {
            "amount": str(record.amount),
            "cashPaid": str(record.cash_paid),
            "bankPaid": str(record.bank_paid),
            "creditCardPaid": str(record.credit_card_paid),
            "category": record.category,
            "notes": record.notes,
        }
    if isinstance(record, domain.BalanceAdjustment):
        return {
            "entityId": record.entity_id,
            "entityType": record.entity_type.value if record.entity_type else None,
            "currency": record.currency,
            "initialBalance": str(record.initial_balance),
            "finalBalance": str(record.final_balance),
            "adjustmentAmount": str(record.adjustment_amount),
        }
    raise TypeError(f"Unknown record variant: {type(record).__name__}")


def record_from_payload(
    transaction_type: domain.TransactionType, record_id: str, record_date: date, data: dict[str, Any]
) -> domain.Transaction:
    """Rebuild a domain record from its stored payload."""
    if transaction_type in (domain.TransactionType.PURCHASE, domain.TransactionType.SALE):
        common = dict(
            id=record_id,
            date=record_date,
            grand_total=_dec_or_zero(data.get("grandTotal")),
            payment=_payment_from_payload(data.get("paymentMethods") or {}),
            items=tuple(_line_item_from_payload(item) for item in data.get("items") or []),
            services=tuple(
                domain.ServiceLine(name=service.get("name", ""), price=_dec_or_zero(service.get("price")))
                for service in data.get("services") or []
            ),
            order_number=data.get("orderNumber"),
            gst_amount=_dec_or_zero(data.get("gstAmount")),
            pst_amount=_dec_or_zero(data.get("pstAmount")),
            middleman_id=data.get("middlemanId"),
            middleman_payment=_middleman_from_payload(data.get("middlemanPayment")),
            notes=data.get("notes"),
        )
        if transaction_type == domain.TransactionType.PURCHASE:
            return domain.Purchase(supplier_id=data.get("supplierId", ""), **common)
        return domain.Sale(customer_id=data.get("customerId", ""), **common)
    if transaction_type == domain.TransactionType.CURRENCY_TRANSFER:
        return domain.CurrencyTransfer(
            id=record_id,
            date=record_date,
            giver=data.get("giver") or "",
            taker=data.get("taker") or "",
            currency=data.get("currencyName") or "",
            amount=_dec_or_zero(data.get("amount")),
            is_exchange=bool(data.get("isExchange", False)),
            receiving_currency=data.get("receivingCurrencyName"),
            received_amount=_dec(data.get("receivedAmount")),
            custom_exchange_rate=_dec(data.get("customExchangeRate")),
            notes=data.get("notes"),
        )
    if transaction_type == domain.TransactionType.EXPENSE:
        return domain.Expense(
            id=record_id,
            date=record_date,
            amount=_dec_or_zero(data.get("amount")),
            cash_paid=_dec_or_zero(data.get("cashPaid")),
            bank_paid=_dec_or_zero(data.get("bankPaid")),
            credit_card_paid=_dec_or_zero(data.get("creditCardPaid")),
            category=data.get("category"),
            notes=data.get("notes"),
        )
    if transaction_type == domain.TransactionType.BALANCE_ADJUSTMENT:
        entity_type = data.get("entityType")
        return domain.BalanceAdjustment(
            id=record_id,
            date=record_date,
            entity_id=data.get("entityId") or "",
            entity_type=domain.EntityKind(entity_type) if entity_type else None,
            currency=data.get("currency") or domain.BASE_CURRENCY,
            initial_balance=_dec_or_zero(data.get("initialBalance")),
            final_balance=_dec_or_zero(data.get("finalBalance")),
        )
    raise ValueError(f"Unknown transaction type: {transaction_type}")


def record_to_domain(orm_record: ORMLedgerRecord) -> domain.Transaction:
    """Convert SQLAlchemy LedgerRecord model to its domain variant."""
    return record_from_payload(
        domain.TransactionType(orm_record.transaction_type),
        orm_record.id,
        orm_record.date,
        orm_record.payload,
    )
