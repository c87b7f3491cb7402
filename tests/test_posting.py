"""Tests for the posting service."""

from datetime import date
from decimal import Decimal

import pytest

from phoneledger.domain.entities import (
    AccountKind,
    EntityKind,
    MYSELF_BANK_ID,
    MYSELF_CASH_ID,
    MiddlemanPayment,
    MiddlemanUnit,
    PaymentSplit,
    ServiceLine,
    TransactionType,
)
from phoneledger.domain.errors import ConflictError, NotFoundError, ValidationError
from phoneledger.domain.posting import SaleLine


def accounts(db):
    return {account.kind: account.amount for account in db.list_accounts()}


class TestRecordPurchase:
    """Tests for recording purchases."""

    def test_puts_phones_in_stock(self, supplier, make_item, posting_service, temp_db):
        purchase = posting_service.record_purchase(
            supplier,
            [make_item("100"), make_item("101", brand="Samsung", model="Galaxy S22", cost="300")],
            Decimal("550"),
            cash=Decimal("550"),
            date=date(2024, 3, 1),
        )

        assert purchase.order_number == 1
        assert purchase.date == date(2024, 3, 1)
        assert purchase.payment.total_paid == Decimal("550")
        assert purchase.payment.remaining_credit == Decimal("0")
        phone = temp_db.find_phone_by_imei("101")
        assert phone.brand == "Samsung"
        assert phone.unit_cost == Decimal("300")
        assert temp_db.get_record(TransactionType.PURCHASE, purchase.id) == purchase

    def test_unpaid_part_is_owed_to_supplier(self, supplier, make_item, posting_service, temp_db):
        posting_service.record_purchase(
            supplier, [make_item("110", cost="800")], Decimal("800"), cash=Decimal("200"), bank=Decimal("100")
        )

        assert temp_db.get_entity(supplier).balance == Decimal("-500")
        assert accounts(temp_db)[AccountKind.CASH] == Decimal("-200")
        assert accounts(temp_db)[AccountKind.BANK] == Decimal("-100")

    def test_adds_history_entries(self, supplier, middleman, make_item, posting_service, temp_db):
        purchase = posting_service.record_purchase(
            supplier,
            [make_item("120")],
            Decimal("250"),
            cash=Decimal("250"),
            middleman_id=middleman,
            middleman_payment=MiddlemanPayment(unit=MiddlemanUnit.RECEIVE, split=PaymentSplit(credit=Decimal("12"))),
        )

        supplier_history = temp_db.get_entity(supplier).history
        assert [(entry.role, entry.transaction_id) for entry in supplier_history] == [("supplier", purchase.id)]
        assert temp_db.get_entity(middleman).history[0].role == "middleman"
        assert temp_db.get_entity(middleman).balance == Decimal("12")

    def test_order_numbers_increase(self, supplier, make_item, posting_service):
        first = posting_service.record_purchase(supplier, [make_item("130")], Decimal("250"), cash=Decimal("250"))
        second = posting_service.record_purchase(supplier, [make_item("131")], Decimal("250"), cash=Decimal("250"))

        assert second.order_number == first.order_number + 1

    def test_imei_already_in_stock(self, supplier, make_item, posting_service, temp_db):
        posting_service.record_purchase(supplier, [make_item("140")], Decimal("250"), cash=Decimal("250"))

        with pytest.raises(ConflictError, match="140"):
            posting_service.record_purchase(supplier, [make_item("140")], Decimal("250"), cash=Decimal("250"))
        assert len(temp_db.list_records(TransactionType.PURCHASE)) == 1

    def test_duplicate_imei_in_document(self, supplier, make_item, posting_service):
        with pytest.raises(ValidationError, match="more than once"):
            posting_service.record_purchase(
                supplier, [make_item("150"), make_item("150")], Decimal("500"), cash=Decimal("500")
            )

    def test_payments_exceeding_total(self, supplier, make_item, posting_service):
        with pytest.raises(ValidationError, match="exceed"):
            posting_service.record_purchase(supplier, [make_item("160")], Decimal("100"), cash=Decimal("150"))

    def test_negative_payment(self, supplier, make_item, posting_service):
        with pytest.raises(ValidationError, match="negative"):
            posting_service.record_purchase(supplier, [make_item("161")], Decimal("100"), bank=Decimal("-1"))

    def test_no_items(self, supplier, posting_service):
        with pytest.raises(ValidationError, match="at least one phone"):
            posting_service.record_purchase(supplier, [], Decimal("100"))

    def test_middleman_payment_without_middleman(self, supplier, make_item, posting_service):
        with pytest.raises(ValidationError, match="needs a middleman"):
            posting_service.record_purchase(
                supplier,
                [make_item("170")],
                Decimal("100"),
                middleman_payment=MiddlemanPayment(unit=MiddlemanUnit.GIVE),
            )

    def test_unknown_supplier(self, make_item, posting_service):
        with pytest.raises(NotFoundError, match="nobody"):
            posting_service.record_purchase("nobody", [make_item("180")], Decimal("100"))

    def test_customer_cannot_be_supplier(self, customer, make_item, posting_service):
        with pytest.raises(ValidationError, match="not a supplier"):
            posting_service.record_purchase(customer, [make_item("190")], Decimal("100"))

    def test_services_are_stored_with_the_purchase(self, supplier, make_item, posting_service, temp_db):
        purchase = posting_service.record_purchase(
            supplier,
            [make_item("195")],
            Decimal("275"),
            cash=Decimal("275"),
            services=[ServiceLine(" Screen protector ", Decimal("25"))],
        )

        assert purchase.services == (ServiceLine("Screen protector", Decimal("25.00")),)
        assert temp_db.get_record(TransactionType.PURCHASE, purchase.id).services == purchase.services

    def test_service_price_must_be_positive(self, supplier, make_item, posting_service):
        with pytest.raises(ValidationError, match="must be positive"):
            posting_service.record_purchase(
                supplier, [make_item("196")], Decimal("250"), services=[ServiceLine("Unlock", Decimal("0"))]
            )

    def test_service_needs_a_name(self, supplier, make_item, posting_service):
        with pytest.raises(ValidationError, match="needs a name"):
            posting_service.record_purchase(
                supplier, [make_item("197")], Decimal("250"), services=[ServiceLine("  ", Decimal("5"))]
            )


class TestRecordSale:
    """Tests for recording sales."""

    def test_archives_phone_and_removes_it(self, supplier, customer, make_item, posting_service, temp_db):
        posting_service.record_purchase(
            supplier, [make_item("200", cost="275", color="Red")], Decimal("275"), cash=Decimal("275")
        )

        sale = posting_service.record_sale(
            customer, [SaleLine("200", Decimal("420"))], Decimal("420"), cash=Decimal("400")
        )

        assert temp_db.find_phone_by_imei("200") is None
        item = sale.items[0]
        assert (item.brand, item.model, item.color) == ("Apple", "iPhone 13", "Red")
        assert item.actual_cost == Decimal("275")
        assert item.selling_price == Decimal("420")
        assert temp_db.get_entity(customer).balance == Decimal("20")
        assert accounts(temp_db)[AccountKind.CASH] == Decimal("125")

    def test_unknown_imei(self, customer, posting_service):
        with pytest.raises(NotFoundError, match="999"):
            posting_service.record_sale(customer, [SaleLine("999", Decimal("100"))], Decimal("100"))

    def test_supplier_cannot_buy(self, supplier, make_item, posting_service):
        posting_service.record_purchase(supplier, [make_item("210")], Decimal("250"), cash=Decimal("250"))

        with pytest.raises(ValidationError, match="not a customer"):
            posting_service.record_sale(supplier, [SaleLine("210", Decimal("300"))], Decimal("300"))

    def test_order_numbers_shared_with_purchases(self, supplier, customer, make_item, posting_service):
        purchase = posting_service.record_purchase(supplier, [make_item("220")], Decimal("250"), cash=Decimal("250"))
        sale = posting_service.record_sale(customer, [SaleLine("220", Decimal("300"))], Decimal("300"))

        assert sale.order_number == purchase.order_number + 1

    def test_services_only_sale(self, customer, posting_service, temp_db):
        sale = posting_service.record_sale(
            customer, [], Decimal("60"), cash=Decimal("60"), services=[ServiceLine("Battery swap", Decimal("60"))]
        )

        assert sale.items == ()
        assert sale.services[0].name == "Battery swap"
        assert accounts(temp_db)[AccountKind.CASH] == Decimal("60")

    def test_nothing_to_sell(self, customer, posting_service):
        with pytest.raises(ValidationError, match="at least one phone or service"):
            posting_service.record_sale(customer, [], Decimal("60"))


class TestRecordTransfer:
    """Tests for transfers and exchanges."""

    def test_cash_to_bank(self, posting_service, temp_db):
        posting_service.record_transfer(MYSELF_CASH_ID, MYSELF_BANK_ID, "cad", Decimal("60"))

        balances = accounts(temp_db)
        assert balances[AccountKind.CASH] == Decimal("-60")
        assert balances[AccountKind.BANK] == Decimal("60")

    def test_entity_foreign_currency(self, supplier, posting_service, temp_db):
        transfer = posting_service.record_transfer(supplier, MYSELF_BANK_ID, "usd", Decimal("40"))

        assert transfer.currency == "USD"
        assert temp_db.get_currency_balances(supplier) == {"USD": Decimal("-40")}
        assert temp_db.get_currency_balances(MYSELF_BANK_ID) == {"USD": Decimal("40")}
        assert temp_db.get_entity(supplier).balance == Decimal("0")

    def test_exchange_with_explicit_received_amount(self, posting_service, temp_db):
        transfer = posting_service.record_transfer(
            MYSELF_BANK_ID,
            MYSELF_BANK_ID,
            "CAD",
            Decimal("200"),
            is_exchange=True,
            receiving_currency="EUR",
            received_amount=Decimal("136.40"),
        )

        assert transfer.received_amount == Decimal("136.40")
        assert accounts(temp_db)[AccountKind.BANK] == Decimal("-200")
        assert temp_db.get_currency_balances(MYSELF_BANK_ID) == {"EUR": Decimal("136.40")}

    def test_same_party_without_exchange(self, posting_service):
        with pytest.raises(ValidationError, match="must differ"):
            posting_service.record_transfer(MYSELF_CASH_ID, MYSELF_CASH_ID, "CAD", Decimal("5"))

    def test_exchange_needs_amount_or_rate(self, posting_service):
        with pytest.raises(ValidationError, match="received amount or an exchange rate"):
            posting_service.record_transfer(
                MYSELF_CASH_ID, MYSELF_CASH_ID, "USD", Decimal("5"), is_exchange=True, receiving_currency="CAD"
            )

    def test_non_positive_amount(self, posting_service):
        with pytest.raises(ValidationError, match="positive"):
            posting_service.record_transfer(MYSELF_CASH_ID, MYSELF_BANK_ID, "CAD", Decimal("0"))

    def test_unknown_entity(self, posting_service, temp_db):
        with pytest.raises(NotFoundError, match="ghost"):
            posting_service.record_transfer(MYSELF_CASH_ID, "ghost", "USD", Decimal("5"))
        assert temp_db.list_records() == []


class TestRecordExpense:
    """Tests for expenses."""

    def test_split_across_accounts(self, posting_service, temp_db):
        expense = posting_service.record_expense(
            Decimal("100"), cash_paid=Decimal("80"), credit_card_paid=Decimal("20"), category="Shipping"
        )

        balances = accounts(temp_db)
        assert balances[AccountKind.CASH] == Decimal("-80")
        assert balances[AccountKind.CREDIT_CARD] == Decimal("-20")
        assert balances[AccountKind.BANK] == Decimal("0")
        assert temp_db.get_record(TransactionType.EXPENSE, expense.id).category == "Shipping"

    def test_split_must_add_up(self, posting_service):
        with pytest.raises(ValidationError, match="add up"):
            posting_service.record_expense(Decimal("100"), cash_paid=Decimal("50"))


class TestAdjustBalance:
    """Tests for balance adjustments."""

    def test_records_initial_and_final(self, customer, posting_service, temp_db):
        adjustment = posting_service.adjust_balance(customer, Decimal("120.555"))

        assert adjustment.initial_balance == Decimal("0")
        assert adjustment.final_balance == Decimal("120.56")
        assert adjustment.entity_type == EntityKind.CUSTOMER
        assert temp_db.get_entity(customer).balance == Decimal("120.56")

    def test_unchanged_balance(self, customer, posting_service):
        with pytest.raises(ValidationError, match="already"):
            posting_service.adjust_balance(customer, Decimal("0"))

    def test_myself_is_rejected(self, posting_service):
        with pytest.raises(ValidationError):
            posting_service.adjust_balance(MYSELF_CASH_ID, Decimal("10"))

    def test_unknown_entity(self, posting_service):
        with pytest.raises(NotFoundError):
            posting_service.adjust_balance("ghost", Decimal("10"))
