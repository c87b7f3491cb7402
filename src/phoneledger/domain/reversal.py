"""Ledger reversal engine.

Undoes a committed transaction by applying the exact inverse of its effects
on counterparty balances, internal accounts, currency balances and
inventory, then deleting the record, all in one commit. Each algorithm
declares its reads up front and builds its writes from the snapshot; the
database runs the two phases and retries them on conflicting writes.
"""

import logging
import uuid
from typing import Callable

from phoneledger.database.base import Database
from phoneledger.domain.balances import middleman_credit_delta, purchase_outflows, sale_inflows
from phoneledger.domain.entities import (
    AccountKind,
    BalanceAdjustment,
    CurrencyTransfer,
    Expense,
    InventoryUnit,
    Purchase,
    ReversalResult,
    Sale,
    Transaction,
    TransactionType,
    is_myself,
)
from phoneledger.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    brand_not_found,
    entity_not_found,
    imei_in_stock,
    imei_not_found,
    model_not_found,
    record_not_found,
)
from phoneledger.domain.inventory import InventoryService
from phoneledger.domain.unit_of_work import BatchPlan, ReadPlan, Snapshot, WritePlan

logger = logging.getLogger(__name__)


class ReversalPlan(WritePlan):
    """Write plan that also remembers which line items were left untouched."""

    def __init__(self, snapshot: Snapshot):
        super().__init__(snapshot)
        self.skipped_imeis: list[str] = []


class ReversalService:
    """Service that reverses stored transactions."""

    def __init__(self, db: Database, strict_inventory: bool = False):
        """Initialize reversal service.

        Args:
            db: Database instance
            strict_inventory: Abort when a line item's inventory cannot be
                resolved instead of skipping it
        """
        self.db = db
        self.inventory = InventoryService(db, strict=strict_inventory)

    def reverse_transaction(self, transaction_id: str, transaction_type: TransactionType | str) -> ReversalResult:
        """Reverse a stored transaction and delete it.

        Args:
            transaction_id: Record ID
            transaction_type: Record type tag

        Returns:
            ReversalResult listing any inventory line items that were skipped

        Raises:
            NotFoundError: If the record does not exist (including when it
                was already reversed) or a referenced entity is missing
            ValidationError: If the record lacks a field the reversal needs
            ConflictRetryExhaustedError: If concurrent writers kept winning
        """
        transaction_type = TransactionType(transaction_type)
        record = self.db.get_record(transaction_type, transaction_id)
        if record is None:
            raise NotFoundError(record_not_found(transaction_type.value, transaction_id))

        handlers: dict[TransactionType, Callable[[Transaction], ReversalResult]] = {
            TransactionType.PURCHASE: self.reverse_purchase,
            TransactionType.SALE: self.reverse_sale,
            TransactionType.CURRENCY_TRANSFER: self.reverse_currency_transfer,
            TransactionType.EXPENSE: self.reverse_expense,
            TransactionType.BALANCE_ADJUSTMENT: self.reverse_balance_adjustment,
        }
        logger.info("Reversing %s %s", transaction_type.value, transaction_id)
        result = handlers[transaction_type](record)
        if result.skipped_imeis:
            logger.warning(
                "Reversed %s %s without restoring inventory for %s",
                transaction_type.value,
                transaction_id,
                ", ".join(result.skipped_imeis),
            )
        else:
            logger.info("Reversed %s %s", transaction_type.value, transaction_id)
        return result

    # Currency transfers
    def reverse_currency_transfer(self, transfer: CurrencyTransfer) -> ReversalResult:
        """Give the giver its money back and take it back from the taker."""
        if not transfer.giver or not transfer.taker:
            raise ValidationError(f"Transfer {transfer.id} is missing its giver or taker")
        if not transfer.currency:
            raise ValidationError(f"Transfer {transfer.id} is missing its currency")

        taker_currency = transfer.currency
        taker_amount = transfer.amount
        if transfer.is_exchange:
            if not transfer.receiving_currency or transfer.received_amount is None:
                raise ValidationError(f"Exchange {transfer.id} is missing its receiving currency or amount")
            taker_currency = transfer.receiving_currency
            taker_amount = transfer.received_amount

        parties = {transfer.giver, transfer.taker}
        read_plan = ReadPlan(
            record=(TransactionType.CURRENCY_TRANSFER, transfer.id),
            entity_ids={party for party in parties if not is_myself(party)},
            accounts={AccountKind.CASH, AccountKind.BANK},
            currency_owners=parties,
        )

        def build(snapshot: Snapshot) -> ReversalPlan:
            stored = snapshot.require_record(TransactionType.CURRENCY_TRANSFER, transfer.id)
            plan = ReversalPlan(snapshot)
            plan.balances.adjust_holder(stored.giver, stored.currency, stored.amount)
            plan.balances.adjust_holder(stored.taker, taker_currency, -taker_amount)
            plan.delete_record(TransactionType.CURRENCY_TRANSFER, stored.id)
            return plan

        self.db.run_atomically(read_plan, build)
        return ReversalResult(transaction_id=transfer.id, transaction_type=TransactionType.CURRENCY_TRANSFER)

    # Purchases
    def reverse_purchase(self, purchase: Purchase) -> ReversalResult:
        """Remove the purchased phones, restore supplier, middleman and accounts."""
        if not purchase.supplier_id:
            raise ValidationError(f"Purchase {purchase.id} is missing its supplier")
        prefetch = self.inventory.prefetch_phones(purchase.items)
        resolved = prefetch.resolved

        entity_ids = {purchase.supplier_id}
        if purchase.middleman_id:
            entity_ids.add(purchase.middleman_id)
        read_plan = ReadPlan(
            record=(TransactionType.PURCHASE, purchase.id),
            entity_ids=entity_ids,
            phone_ids={match.phone_id for match in resolved},
            imeis={match.item.imei for match in resolved},
        )

        def build(snapshot: Snapshot) -> ReversalPlan:
            stored = snapshot.require_record(TransactionType.PURCHASE, purchase.id)
            plan = ReversalPlan(snapshot)
            plan.skipped_imeis.extend(prefetch.skipped)
            _require_entities(snapshot, entity_ids)

            for match in resolved:
                if match.phone_id not in snapshot.phones:
                    self.inventory.skip_or_raise(match.item, imei_not_found(match.item.imei))
                    plan.skipped_imeis.append(match.item.imei)
                    continue
                plan.delete_phone(match.phone_id, match.item.imei)

            plan.remove_history(stored.supplier_id, stored.id)
            plan.balances.adjust_entity(stored.supplier_id, abs(stored.payment.remaining_credit))

            if stored.middleman_id:
                plan.remove_history(stored.middleman_id, stored.id)
                plan.balances.adjust_entity(stored.middleman_id, -middleman_credit_delta(stored.middleman_payment))

            for kind, amount in purchase_outflows(stored).items():
                plan.balances.adjust_account(kind, amount)

            if stored.order_number is not None:
                plan.release_order_number(stored.order_number)
            plan.delete_record(TransactionType.PURCHASE, stored.id)
            return plan

        plan = self.db.run_atomically(read_plan, build)
        return ReversalResult(
            transaction_id=purchase.id,
            transaction_type=TransactionType.PURCHASE,
            skipped_imeis=tuple(plan.skipped_imeis),
        )

    # Sales
    def reverse_sale(self, sale: Sale) -> ReversalResult:
        """Put the sold phones back in stock, restore customer, middleman and accounts."""
        if not sale.customer_id:
            raise ValidationError(f"Sale {sale.id} is missing its customer")
        prefetch = self.inventory.prefetch_models(sale.items)
        resolved = prefetch.resolved

        entity_ids = {sale.customer_id}
        if sale.middleman_id:
            entity_ids.add(sale.middleman_id)
        read_plan = ReadPlan(
            record=(TransactionType.SALE, sale.id),
            entity_ids=entity_ids,
            brand_ids={match.brand_id for match in resolved},
            model_ids={match.model_id for match in resolved},
            imeis={match.item.imei for match in resolved},
        )

        def build(snapshot: Snapshot) -> ReversalPlan:
            stored = snapshot.require_record(TransactionType.SALE, sale.id)
            plan = ReversalPlan(snapshot)
            plan.skipped_imeis.extend(prefetch.skipped)
            _require_entities(snapshot, entity_ids)

            for match in resolved:
                item = match.item
                brand = snapshot.brands.get(match.brand_id)
                model = snapshot.models.get(match.model_id)
                if brand is None or model is None:
                    message = brand_not_found(item.brand) if brand is None else model_not_found(item.brand, item.model)
                    self.inventory.skip_or_raise(item, message)
                    plan.skipped_imeis.append(item.imei)
                    continue
                if item.imei in snapshot.imeis:
                    raise ConflictError(imei_in_stock(item.imei))
                unit = InventoryUnit(
                    id=uuid.uuid4().hex,
                    imei=item.imei,
                    brand=brand.name,
                    model=model.name,
                    capacity=item.capacity,
                    capacity_unit=item.capacity_unit,
                    unit_cost=item.cost,
                    status=item.status,
                    color=item.color,
                    carrier=item.carrier,
                    storage_location=item.storage_location,
                )
                plan.create_phone(unit, model.id)

            plan.remove_history(stored.customer_id, stored.id)
            plan.balances.adjust_entity(stored.customer_id, -abs(stored.payment.remaining_credit))

            if stored.middleman_id:
                plan.remove_history(stored.middleman_id, stored.id)
                plan.balances.adjust_entity(stored.middleman_id, -middleman_credit_delta(stored.middleman_payment))

            for kind, amount in sale_inflows(stored).items():
                plan.balances.adjust_account(kind, -amount)

            if stored.order_number is not None:
                plan.release_order_number(stored.order_number)
            plan.delete_record(TransactionType.SALE, stored.id)
            return plan

        plan = self.db.run_atomically(read_plan, build)
        return ReversalResult(
            transaction_id=sale.id,
            transaction_type=TransactionType.SALE,
            skipped_imeis=tuple(plan.skipped_imeis),
        )

    # Expenses
    def reverse_expense(self, expense: Expense) -> ReversalResult:
        """Add what the expense took out back to each account.

        Runs as a batch of server-side increments with no pre-read.
        """
        batch = BatchPlan()
        paid = {
            AccountKind.CASH: expense.cash_paid,
            AccountKind.BANK: expense.bank_paid,
            AccountKind.CREDIT_CARD: expense.credit_card_paid,
        }
        for kind, amount in paid.items():
            if amount > 0:
                batch.increment_account(kind, amount)
        batch.delete_record(TransactionType.EXPENSE, expense.id)
        self.db.commit_batch(batch)
        return ReversalResult(transaction_id=expense.id, transaction_type=TransactionType.EXPENSE)

    # Balance adjustments
    def reverse_balance_adjustment(self, adjustment: BalanceAdjustment) -> ReversalResult:
        """Apply the negated adjustment to the entity's current balance.

        This is a delta, not a restore: if the balance moved after the
        adjustment, those later changes are kept.
        """
        entity_id = adjustment.entity_id
        if not entity_id:
            stored = self.db.get_record(TransactionType.BALANCE_ADJUSTMENT, adjustment.id)
            if stored is None:
                raise NotFoundError(record_not_found(TransactionType.BALANCE_ADJUSTMENT.value, adjustment.id))
            entity_id = stored.entity_id
        if not entity_id:
            raise ValidationError(f"Balance adjustment {adjustment.id} has no entity")

        read_plan = ReadPlan(
            record=(TransactionType.BALANCE_ADJUSTMENT, adjustment.id),
            entity_ids={entity_id},
            accounts=set(),
            currency_owners={entity_id},
        )

        def build(snapshot: Snapshot) -> ReversalPlan:
            stored = snapshot.require_record(TransactionType.BALANCE_ADJUSTMENT, adjustment.id)
            _require_entities(snapshot, {entity_id})
            plan = ReversalPlan(snapshot)
            reverse_adjustment = -stored.adjustment_amount
            plan.balances.adjust_holder(entity_id, stored.currency, reverse_adjustment)
            plan.delete_record(TransactionType.BALANCE_ADJUSTMENT, stored.id)
            return plan

        self.db.run_atomically(read_plan, build)
        return ReversalResult(transaction_id=adjustment.id, transaction_type=TransactionType.BALANCE_ADJUSTMENT)


def _require_entities(snapshot: Snapshot, entity_ids: set[str]) -> None:
    for entity_id in entity_ids:
        if entity_id not in snapshot.entities:
            raise NotFoundError(entity_not_found(entity_id))
