"""Posting service: records transactions and applies their effects.

Every posting is the algebraic inverse of the matching reversal in
``phoneledger.domain.reversal``; the two share the payment-flow helpers in
``phoneledger.domain.balances`` so the signs cannot drift apart.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import date as date_type
from decimal import Decimal
from typing import Iterable, Optional

from phoneledger.database.base import Database
from phoneledger.domain.balances import (
    middleman_credit_delta,
    purchase_outflows,
    sale_inflows,
    to_cents,
)
from phoneledger.domain.entities import (
    AccountKind,
    BASE_CURRENCY,
    BalanceAdjustment,
    CurrencyTransfer,
    EntityKind,
    Expense,
    InventoryUnit,
    LineItem,
    MiddlemanPayment,
    PaymentMethods,
    PhoneStatus,
    Purchase,
    Sale,
    ServiceLine,
    TransactionType,
    ZERO,
    is_myself,
)
from phoneledger.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    entity_not_found,
    imei_in_stock,
    imei_not_found,
)
from phoneledger.domain.unit_of_work import BatchPlan, ReadPlan, Snapshot, WritePlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleLine:
    """Phone to sell, by IMEI, and the price it sells for."""

    imei: str
    selling_price: Decimal


def _non_negative(name: str, value: Decimal) -> Decimal:
    if value < 0:
        raise ValidationError(f"{name} must not be negative")
    return to_cents(value)


def _payment(grand_total: Decimal, cash: Decimal, bank: Decimal, credit_card: Decimal) -> PaymentMethods:
    """Validate a payment split and derive what is left on credit."""
    if grand_total <= 0:
        raise ValidationError("Grand total must be positive")
    cash = _non_negative("Cash", cash)
    bank = _non_negative("Bank", bank)
    credit_card = _non_negative("Credit card", credit_card)
    total_paid = cash + bank + credit_card
    grand_total = to_cents(grand_total)
    if total_paid > grand_total:
        raise ValidationError(f"Payments ({total_paid}) exceed the grand total ({grand_total})")
    return PaymentMethods(
        cash=cash,
        bank=bank,
        credit_card=credit_card,
        total_paid=total_paid,
        remaining_credit=grand_total - total_paid,
    )


def _check_middleman(middleman_id: Optional[str], middleman_payment: Optional[MiddlemanPayment]) -> None:
    if middleman_payment is not None and not middleman_id:
        raise ValidationError("A middleman payment needs a middleman")
    if middleman_payment is None:
        return
    split = middleman_payment.split
    for name, value in (
        ("cash", split.cash),
        ("bank", split.bank),
        ("credit card", split.credit_card),
        ("credit", split.credit),
    ):
        if value < 0:
            raise ValidationError(f"Middleman {name} share must not be negative")


def _services(services: Optional[Iterable[ServiceLine]]) -> tuple[ServiceLine, ...]:
    result = []
    for service in services or ():
        name = (service.name or "").strip()
        if not name:
            raise ValidationError("Every service needs a name")
        if service.price <= 0:
            raise ValidationError(f"Price of service '{name}' must be positive")
        result.append(ServiceLine(name=name, price=to_cents(service.price)))
    return tuple(result)


def _check_unique_imeis(imeis: Iterable[str]) -> None:
    seen = set()
    for imei in imeis:
        if not imei:
            raise ValidationError("Every line item needs an IMEI")
        if imei in seen:
            raise ValidationError(f"IMEI {imei} appears more than once")
        seen.add(imei)


def _require_entity(snapshot: Snapshot, entity_id: str, kind: EntityKind) -> None:
    entity = snapshot.entities.get(entity_id)
    if entity is None:
        raise NotFoundError(entity_not_found(entity_id))
    if entity.kind != kind:
        raise ValidationError(f"Entity {entity_id} is a {entity.kind.value}, not a {kind.value}")


class PostingService:
    """Service for recording purchases, sales, transfers, expenses and adjustments."""

    def __init__(self, db: Database):
        """Initialize posting service.

        Args:
            db: Database instance
        """
        self.db = db

    def record_purchase(
        self,
        supplier_id: str,
        items: list[LineItem],
        grand_total: Decimal,
        cash: Decimal = ZERO,
        bank: Decimal = ZERO,
        credit_card: Decimal = ZERO,
        date: Optional[date_type] = None,
        middleman_id: Optional[str] = None,
        middleman_payment: Optional[MiddlemanPayment] = None,
        gst_amount: Decimal = ZERO,
        pst_amount: Decimal = ZERO,
        notes: Optional[str] = None,
        services: Optional[list[ServiceLine]] = None,
    ) -> Purchase:
        """Record a purchase from a supplier and put its phones in stock.

        Args:
            supplier_id: Supplier entity ID
            items: Phones bought (brand, model, IMEI, capacity, cost...)
            grand_total: Total owed to the supplier
            cash: Paid from the cash account
            bank: Paid from the bank account
            credit_card: Paid by credit card
            date: Purchase date (defaults to today)
            middleman_id: Optional middleman entity ID
            middleman_payment: Middleman share and its direction
            gst_amount: GST included in the total
            pst_amount: PST included in the total
            notes: Optional notes
            services: Non-inventory charges included in the total

        Returns:
            The stored Purchase

        Raises:
            ValidationError: If the input is inconsistent
            NotFoundError: If the supplier or middleman does not exist
            ConflictError: If an IMEI is already in stock
        """
        if not supplier_id:
            raise ValidationError("A purchase needs a supplier")
        services = _services(services)
        if not items and not services:
            raise ValidationError("A purchase needs at least one phone or service")
        _check_unique_imeis(item.imei for item in items)
        _check_middleman(middleman_id, middleman_payment)
        payment = _payment(grand_total, cash, bank, credit_card)

        items = [
            replace(item, actual_cost=to_cents(item.cost), unit_cost=to_cents(item.cost), status=PhoneStatus.ACTIVE)
            for item in items
        ]
        # Brand and model documents are shared and created outside the unit
        model_ids = [self.db.ensure_brand_model(item.brand, item.model).id for item in items]

        entity_ids = {supplier_id}
        if middleman_id:
            entity_ids.add(middleman_id)
        read_plan = ReadPlan(
            entity_ids=entity_ids,
            imeis={item.imei for item in items},
            model_ids=set(model_ids),
            order_number=True,
        )
        purchase_id = uuid.uuid4().hex

        def build(snapshot: Snapshot) -> WritePlan:
            _require_entity(snapshot, supplier_id, EntityKind.SUPPLIER)
            if middleman_id:
                _require_entity(snapshot, middleman_id, EntityKind.MIDDLEMAN)
            plan = WritePlan(snapshot)

            for item, model_id in zip(items, model_ids):
                if item.imei in snapshot.imeis:
                    raise ConflictError(imei_in_stock(item.imei))
                plan.create_phone(
                    InventoryUnit(
                        id=uuid.uuid4().hex,
                        imei=item.imei,
                        brand=item.brand,
                        model=item.model,
                        capacity=item.capacity,
                        capacity_unit=item.capacity_unit,
                        unit_cost=item.cost,
                        color=item.color,
                        carrier=item.carrier,
                        storage_location=item.storage_location,
                    ),
                    model_id,
                )

            purchase = Purchase(
                id=purchase_id,
                date=date or date_type.today(),
                grand_total=to_cents(grand_total),
                payment=payment,
                items=tuple(items),
                supplier_id=supplier_id,
                order_number=snapshot.next_order_number,
                gst_amount=to_cents(gst_amount),
                pst_amount=to_cents(pst_amount),
                middleman_id=middleman_id,
                middleman_payment=middleman_payment,
                notes=notes,
                services=services,
            )

            plan.add_history(supplier_id, "supplier", TransactionType.PURCHASE, purchase.id)
            plan.balances.adjust_entity(supplier_id, -abs(payment.remaining_credit))
            if middleman_id:
                plan.add_history(middleman_id, "middleman", TransactionType.PURCHASE, purchase.id)
                plan.balances.adjust_entity(middleman_id, middleman_credit_delta(middleman_payment))
            for kind, amount in purchase_outflows(purchase).items():
                plan.balances.adjust_account(kind, -amount)

            plan.reserve_order_number(purchase.order_number, TransactionType.PURCHASE, purchase.id)
            plan.save_record(purchase)
            return plan

        purchase = self.db.run_atomically(read_plan, build).saved_record
        logger.info("Recorded purchase %s (order %s, %d phones)", purchase.id, purchase.order_number, len(items))
        return purchase

    def record_sale(
        self,
        customer_id: str,
        lines: list[SaleLine],
        grand_total: Decimal,
        cash: Decimal = ZERO,
        bank: Decimal = ZERO,
        credit_card: Decimal = ZERO,
        date: Optional[date_type] = None,
        middleman_id: Optional[str] = None,
        middleman_payment: Optional[MiddlemanPayment] = None,
        gst_amount: Decimal = ZERO,
        pst_amount: Decimal = ZERO,
        notes: Optional[str] = None,
        services: Optional[list[ServiceLine]] = None,
    ) -> Sale:
        """Record a sale to a customer and take its phones out of stock.

        Each sold phone is archived into the sale's line items with its
        brand, model, colour, carrier and cost so the sale can be reversed
        after the phone document is gone.

        Raises:
            ValidationError: If the input is inconsistent
            NotFoundError: If the customer, middleman or an IMEI is unknown
        """
        if not customer_id:
            raise ValidationError("A sale needs a customer")
        services = _services(services)
        if not lines and not services:
            raise ValidationError("A sale needs at least one phone or service")
        _check_unique_imeis(line.imei for line in lines)
        _check_middleman(middleman_id, middleman_payment)
        payment = _payment(grand_total, cash, bank, credit_card)
        for line in lines:
            _non_negative(f"Selling price of {line.imei}", line.selling_price)

        phone_ids = {}
        for line in lines:
            phone = self.db.find_phone_by_imei(line.imei)
            if phone is None:
                raise NotFoundError(imei_not_found(line.imei))
            phone_ids[line.imei] = phone.id

        entity_ids = {customer_id}
        if middleman_id:
            entity_ids.add(middleman_id)
        read_plan = ReadPlan(
            entity_ids=entity_ids,
            phone_ids=set(phone_ids.values()),
            imeis=set(phone_ids),
            order_number=True,
        )
        sale_id = uuid.uuid4().hex

        def build(snapshot: Snapshot) -> WritePlan:
            _require_entity(snapshot, customer_id, EntityKind.CUSTOMER)
            if middleman_id:
                _require_entity(snapshot, middleman_id, EntityKind.MIDDLEMAN)
            plan = WritePlan(snapshot)

            items = []
            for line in lines:
                phone_id = phone_ids[line.imei]
                phone = snapshot.phones.get(phone_id)
                if phone is None or snapshot.imeis.get(line.imei) != phone_id:
                    raise NotFoundError(imei_not_found(line.imei))
                items.append(
                    LineItem(
                        brand=phone.brand,
                        model=phone.model,
                        imei=phone.imei,
                        capacity=phone.capacity,
                        capacity_unit=phone.capacity_unit,
                        actual_cost=phone.unit_cost,
                        unit_cost=phone.unit_cost,
                        selling_price=to_cents(line.selling_price),
                        color=phone.color,
                        carrier=phone.carrier,
                        storage_location=phone.storage_location,
                        status=phone.status,
                    )
                )
                plan.delete_phone(phone_id, line.imei)

            sale = Sale(
                id=sale_id,
                date=date or date_type.today(),
                grand_total=to_cents(grand_total),
                payment=payment,
                items=tuple(items),
                customer_id=customer_id,
                order_number=snapshot.next_order_number,
                gst_amount=to_cents(gst_amount),
                pst_amount=to_cents(pst_amount),
                middleman_id=middleman_id,
                middleman_payment=middleman_payment,
                notes=notes,
                services=services,
            )

            plan.add_history(customer_id, "customer", TransactionType.SALE, sale.id)
            plan.balances.adjust_entity(customer_id, abs(payment.remaining_credit))
            if middleman_id:
                plan.add_history(middleman_id, "middleman", TransactionType.SALE, sale.id)
                plan.balances.adjust_entity(middleman_id, middleman_credit_delta(middleman_payment))
            for kind, amount in sale_inflows(sale).items():
                plan.balances.adjust_account(kind, amount)

            plan.reserve_order_number(sale.order_number, TransactionType.SALE, sale.id)
            plan.save_record(sale)
            return plan

        sale = self.db.run_atomically(read_plan, build).saved_record
        logger.info("Recorded sale %s (order %s, %d phones)", sale.id, sale.order_number, len(lines))
        return sale

    def record_transfer(
        self,
        giver: str,
        taker: str,
        currency: str,
        amount: Decimal,
        date: Optional[date_type] = None,
        is_exchange: bool = False,
        receiving_currency: Optional[str] = None,
        received_amount: Optional[Decimal] = None,
        exchange_rate: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> CurrencyTransfer:
        """Move money between two holders, optionally exchanging it.

        Holders are entity IDs or one of the two "myself" IDs. For an
        exchange the taker receives ``received_amount`` in
        ``receiving_currency``; when only a rate is given the received
        amount is ``amount * exchange_rate``.

        Raises:
            ValidationError: If the input is inconsistent
            NotFoundError: If a holder is not a known entity
        """
        if not giver or not taker:
            raise ValidationError("A transfer needs a giver and a taker")
        if not currency:
            raise ValidationError("A transfer needs a currency")
        currency = currency.upper()
        if amount <= 0:
            raise ValidationError("Transfer amount must be positive")
        amount = to_cents(amount)

        if is_exchange:
            if not receiving_currency:
                raise ValidationError("An exchange needs a receiving currency")
            receiving_currency = receiving_currency.upper()
            if receiving_currency == currency:
                raise ValidationError("An exchange needs two different currencies")
            if received_amount is None:
                if exchange_rate is None:
                    raise ValidationError("An exchange needs a received amount or an exchange rate")
                if exchange_rate <= 0:
                    raise ValidationError("Exchange rate must be positive")
                received_amount = amount * exchange_rate
            if received_amount <= 0:
                raise ValidationError("Received amount must be positive")
            received_amount = to_cents(received_amount)
        else:
            if giver == taker:
                raise ValidationError("Giver and taker must differ")
            receiving_currency = None
            received_amount = None
            exchange_rate = None

        parties = {giver, taker}
        read_plan = ReadPlan(
            entity_ids={party for party in parties if not is_myself(party)},
            accounts={AccountKind.CASH, AccountKind.BANK},
            currency_owners=parties,
        )
        transfer = CurrencyTransfer(
            id=uuid.uuid4().hex,
            date=date or date_type.today(),
            giver=giver,
            taker=taker,
            currency=currency,
            amount=amount,
            is_exchange=is_exchange,
            receiving_currency=receiving_currency,
            received_amount=received_amount,
            custom_exchange_rate=exchange_rate,
            notes=notes,
        )

        def build(snapshot: Snapshot) -> WritePlan:
            for party in parties:
                if not is_myself(party) and party not in snapshot.entities:
                    raise NotFoundError(entity_not_found(party))
            plan = WritePlan(snapshot)
            plan.balances.adjust_holder(giver, currency, -amount)
            if is_exchange:
                plan.balances.adjust_holder(taker, receiving_currency, received_amount)
            else:
                plan.balances.adjust_holder(taker, currency, amount)
            plan.save_record(transfer)
            return plan

        self.db.run_atomically(read_plan, build)
        logger.info("Recorded transfer %s: %s %s from %s to %s", transfer.id, amount, currency, giver, taker)
        return transfer

    def record_expense(
        self,
        amount: Decimal,
        cash_paid: Decimal = ZERO,
        bank_paid: Decimal = ZERO,
        credit_card_paid: Decimal = ZERO,
        date: Optional[date_type] = None,
        category: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Expense:
        """Record an expense paid from the internal accounts.

        Raises:
            ValidationError: If the amount is not positive or the split does
                not add up to it
        """
        if amount <= 0:
            raise ValidationError("Expense amount must be positive")
        amount = to_cents(amount)
        paid = {
            AccountKind.CASH: _non_negative("Cash paid", cash_paid),
            AccountKind.BANK: _non_negative("Bank paid", bank_paid),
            AccountKind.CREDIT_CARD: _non_negative("Credit card paid", credit_card_paid),
        }
        if sum(paid.values()) != amount:
            raise ValidationError(f"Cash, bank and credit card must add up to {amount}")

        expense = Expense(
            id=uuid.uuid4().hex,
            date=date or date_type.today(),
            amount=amount,
            cash_paid=paid[AccountKind.CASH],
            bank_paid=paid[AccountKind.BANK],
            credit_card_paid=paid[AccountKind.CREDIT_CARD],
            category=category,
            notes=notes,
        )
        batch = BatchPlan()
        for kind, value in paid.items():
            if value > 0:
                batch.increment_account(kind, -value)
        batch.save_record(expense)
        self.db.commit_batch(batch)
        logger.info("Recorded expense %s: %s", expense.id, amount)
        return expense

    def adjust_balance(
        self,
        entity_id: str,
        new_balance: Decimal,
        currency: str = BASE_CURRENCY,
        date: Optional[date_type] = None,
    ) -> BalanceAdjustment:
        """Set an entity's balance in one currency, keeping a record of the edit.

        Raises:
            ValidationError: If the ID is reserved or the balance is unchanged
            NotFoundError: If the entity does not exist
        """
        if not entity_id:
            raise ValidationError("An adjustment needs an entity")
        if is_myself(entity_id):
            raise ValidationError("Own cash and bank are adjusted through transfers, not adjustments")
        if not currency:
            raise ValidationError("An adjustment needs a currency")
        currency = currency.upper()
        new_balance = to_cents(new_balance)

        read_plan = ReadPlan(entity_ids={entity_id}, accounts=set(), currency_owners={entity_id})
        adjustment_id = uuid.uuid4().hex

        def build(snapshot: Snapshot) -> WritePlan:
            entity = snapshot.entities.get(entity_id)
            if entity is None:
                raise NotFoundError(entity_not_found(entity_id))
            plan = WritePlan(snapshot)
            if currency == BASE_CURRENCY:
                initial = plan.balances.entity_balance(entity_id)
                plan.balances.set_entity_balance(entity_id, new_balance)
            else:
                initial = plan.balances.currency_amount(entity_id, currency)
                plan.balances.set_currency_amount(entity_id, currency, new_balance)
            if initial == new_balance:
                raise ValidationError(f"Balance is already {new_balance} {currency}")
            plan.save_record(
                BalanceAdjustment(
                    id=adjustment_id,
                    date=date or date_type.today(),
                    entity_id=entity_id,
                    entity_type=entity.kind,
                    currency=currency,
                    initial_balance=initial,
                    final_balance=new_balance,
                )
            )
            return plan

        adjustment = self.db.run_atomically(read_plan, build).saved_record
        logger.info(
            "Adjusted %s %s balance from %s to %s",
            entity_id,
            currency,
            adjustment.initial_balance,
            adjustment.final_balance,
        )
        return adjustment
