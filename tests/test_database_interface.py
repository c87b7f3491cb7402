"""Tests for Database interface returning domain models."""

from datetime import date
from decimal import Decimal

from phoneledger.domain import entities
from phoneledger.domain.entities import AccountKind, EntityKind, TransactionType


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_initialize_schema_creates_accounts(self, temp_db):
        accounts = temp_db.list_accounts()

        assert [account.kind for account in accounts] == list(AccountKind)
        assert all(isinstance(account, entities.Account) for account in accounts)
        assert all(account.amount == Decimal("0") for account in accounts)

    def test_initialize_schema_is_idempotent(self, temp_db):
        temp_db.initialize_schema()

        assert len(temp_db.list_accounts()) == 3

    def test_get_entity_returns_domain_model(self, temp_db):
        temp_db.create_entity("c1", EntityKind.CUSTOMER, "Carol")

        ent = temp_db.get_entity("c1")

        assert isinstance(ent, entities.Entity)
        assert ent.name == "Carol"
        assert temp_db.get_entity("c2") is None

    def test_currency_balances_empty_until_written(self, temp_db):
        assert temp_db.get_currency_balances("anyone") == {}

    def test_ensure_brand_model_is_idempotent(self, temp_db):
        first = temp_db.ensure_brand_model("Apple", "iPhone 15")
        second = temp_db.ensure_brand_model("Apple", "iPhone 15")
        other = temp_db.ensure_brand_model("Apple", "iPhone 15 Pro")

        assert first == second
        assert other.brand_id == first.brand_id
        assert temp_db.find_brand("Apple").id == first.brand_id
        assert temp_db.find_model(first.brand_id, "iPhone 15 Pro") == other
        assert temp_db.find_model(first.brand_id, "iPhone 99") is None

    def test_get_record_checks_type(self, temp_db, posting_service):
        expense = posting_service.record_expense(Decimal("9"), cash_paid=Decimal("9"))

        assert isinstance(temp_db.get_record(TransactionType.EXPENSE, expense.id), entities.Expense)
        assert temp_db.get_record(TransactionType.SALE, expense.id) is None

    def test_list_records_newest_first(self, temp_db, posting_service):
        older = posting_service.record_expense(Decimal("1"), cash_paid=Decimal("1"), date=date(2024, 1, 1))
        newer = posting_service.record_expense(Decimal("2"), cash_paid=Decimal("2"), date=date(2024, 6, 1))
        transfer = posting_service.record_transfer(
            entities.MYSELF_CASH_ID, entities.MYSELF_BANK_ID, "CAD", Decimal("3"), date=date(2024, 3, 1)
        )

        assert [record.id for record in temp_db.list_records()] == [newer.id, transfer.id, older.id]
        assert [record.id for record in temp_db.list_records(TransactionType.EXPENSE)] == [newer.id, older.id]

    def test_next_order_number_follows_highest(self, temp_db, posting_service, supplier, make_item):
        assert temp_db.next_order_number() == 1

        purchase = posting_service.record_purchase(supplier, [make_item("1")], Decimal("250"), cash=Decimal("250"))

        assert purchase.order_number == 1
        assert temp_db.next_order_number() == 2
