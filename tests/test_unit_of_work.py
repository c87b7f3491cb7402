"""Tests for the atomic unit of work and its conflict retries."""

from datetime import date
from decimal import Decimal

import pytest

from phoneledger.database.sqlalchemy_db import SQLAlchemyDatabase
from phoneledger.domain.entities import (
    Account,
    AccountKind,
    Entity,
    EntityKind,
    Expense,
    InventoryUnit,
    TransactionType,
)
from phoneledger.domain.errors import ConflictError, ConflictRetryExhaustedError, NotFoundError
from phoneledger.domain.posting import PostingService
from phoneledger.domain.unit_of_work import (
    BatchPlan,
    DeleteRecord,
    ReadPlan,
    SetAccountAmount,
    SetEntityBalance,
    Snapshot,
    WritePlan,
)


@pytest.fixture
def other_db(temp_db):
    """Second connection pool on the same file, standing in for another writer."""
    db = SQLAlchemyDatabase(f"sqlite:///{temp_db.database_path}")
    yield db
    db.disconnect()


class TestWritePlan:
    """Tests for write plan construction."""

    def test_balance_writes_come_last(self):
        snapshot = Snapshot(
            entities={"sup-1": Entity(id="sup-1", kind=EntityKind.SUPPLIER, name="S", balance=Decimal("0"))},
            accounts={AccountKind.CASH: Account(kind=AccountKind.CASH, amount=Decimal("100"))},
        )
        plan = WritePlan(snapshot)
        plan.balances.adjust_entity("sup-1", Decimal("5"))
        plan.balances.adjust_account(AccountKind.CASH, Decimal("-5"))
        plan.delete_record(TransactionType.EXPENSE, "x")

        ops = plan.operations()

        assert ops == [
            DeleteRecord(transaction_type=TransactionType.EXPENSE, transaction_id="x"),
            SetEntityBalance(entity_id="sup-1", balance=Decimal("5")),
            SetAccountAmount(kind=AccountKind.CASH, amount=Decimal("95")),
        ]

    def test_saved_record_is_remembered(self):
        plan = WritePlan(Snapshot())
        expense = Expense(id="e1", date=date(2024, 1, 1), amount=Decimal("5"), cash_paid=Decimal("5"))

        plan.save_record(expense)

        assert plan.saved_record is expense

    def test_repeated_adjustments_accumulate(self, temp_db, supplier):
        def build(snapshot):
            plan = WritePlan(snapshot)
            plan.balances.adjust_entity(supplier, Decimal("10"))
            plan.balances.adjust_entity(supplier, Decimal("-3"))
            plan.balances.adjust_account(AccountKind.BANK, Decimal("1"))
            plan.balances.adjust_account(AccountKind.BANK, Decimal("1"))
            return plan

        temp_db.run_atomically(ReadPlan(entity_ids={supplier}), build)

        assert temp_db.get_entity(supplier).balance == Decimal("7")
        bank = next(account for account in temp_db.list_accounts() if account.kind == AccountKind.BANK)
        assert bank.amount == Decimal("2")

    def test_failed_build_writes_nothing(self, temp_db, supplier):
        def build(snapshot):
            plan = WritePlan(snapshot)
            plan.balances.adjust_entity(supplier, Decimal("10"))
            plan.balances.adjust_entity("ghost", Decimal("1"))
            return plan

        with pytest.raises(NotFoundError):
            temp_db.run_atomically(ReadPlan(entity_ids={supplier}), build)

        assert temp_db.get_entity(supplier).balance == Decimal("0")


class TestConflictRetry:
    """Tests for optimistic concurrency."""

    def test_stale_balance_is_retried(self, temp_db, other_db, supplier):
        seen = []

        def build(snapshot):
            seen.append(snapshot.entities[supplier].balance)
            if len(seen) == 1:
                PostingService(other_db).adjust_balance(supplier, Decimal("40"))
            plan = WritePlan(snapshot)
            plan.balances.adjust_entity(supplier, Decimal("10"))
            return plan

        temp_db.run_atomically(ReadPlan(entity_ids={supplier}, accounts=set()), build)

        assert seen == [Decimal("0"), Decimal("40")]
        assert temp_db.get_entity(supplier).balance == Decimal("50")

    def test_retries_exhausted(self, temp_db, other_db, supplier):
        db = SQLAlchemyDatabase(f"sqlite:///{temp_db.database_path}", max_attempts=3)
        attempts = []

        def build(snapshot):
            attempts.append(1)
            PostingService(other_db).adjust_balance(supplier, Decimal(len(attempts)))
            plan = WritePlan(snapshot)
            plan.balances.adjust_entity(supplier, Decimal("10"))
            return plan

        try:
            with pytest.raises(ConflictRetryExhaustedError, match="3 conflicting attempts"):
                db.run_atomically(ReadPlan(entity_ids={supplier}, accounts=set()), build)
        finally:
            db.disconnect()

        assert len(attempts) == 3
        # Only the competing writer's last adjustment landed
        assert temp_db.get_entity(supplier).balance == Decimal("3")

    def test_concurrent_imei_insert_becomes_domain_conflict(
        self, temp_db, other_db, supplier, make_item
    ):
        model = temp_db.ensure_brand_model("Apple", "iPhone 13")
        calls = []

        def build(snapshot):
            calls.append(1)
            if len(calls) == 1:
                PostingService(other_db).record_purchase(
                    supplier, [make_item("700")], Decimal("250"), cash=Decimal("250")
                )
            if "700" in snapshot.imeis:
                raise ConflictError("IMEI 700 already in stock")
            plan = WritePlan(snapshot)
            plan.create_phone(
                InventoryUnit(
                    id="phone-700",
                    imei="700",
                    brand="Apple",
                    model="iPhone 13",
                    capacity="128",
                    capacity_unit="GB",
                    unit_cost=Decimal("250"),
                ),
                model.id,
            )
            return plan

        with pytest.raises(ConflictError):
            temp_db.run_atomically(ReadPlan(imeis={"700"}, accounts=set()), build)

        assert len(calls) == 2
        assert temp_db.find_phone_by_imei("700").id != "phone-700"


class TestCommitBatch:
    """Tests for unconditional batches."""

    def test_increments_apply_to_current_value(self, temp_db, other_db):
        PostingService(other_db).record_expense(Decimal("25"), cash_paid=Decimal("25"))

        batch = BatchPlan()
        batch.increment_account(AccountKind.CASH, Decimal("10"))
        temp_db.commit_batch(batch)

        cash = next(account for account in temp_db.list_accounts() if account.kind == AccountKind.CASH)
        assert cash.amount == Decimal("-15")

    def test_missing_record_aborts_batch(self, temp_db):
        batch = BatchPlan()
        batch.increment_account(AccountKind.BANK, Decimal("10"))
        batch.delete_record(TransactionType.EXPENSE, "missing")

        with pytest.raises(NotFoundError):
            temp_db.commit_batch(batch)

        bank = next(account for account in temp_db.list_accounts() if account.kind == AccountKind.BANK)
        assert bank.amount == Decimal("0")
