"""Balance-mutation primitives shared by posting and reversal.

A ``BalanceSheet`` is a working copy of every balance a unit of work read.
Algorithms express their effect as signed deltas against it; repeated
adjustments of the same balance accumulate, and only the balances that were
touched are written back.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, TYPE_CHECKING

from phoneledger.domain.entities import (
    AccountKind,
    BASE_CURRENCY,
    MYSELF_BANK_ID,
    MYSELF_CASH_ID,
    MiddlemanPayment,
    MiddlemanUnit,
    PaymentMethods,
    ZERO,
)
from phoneledger.domain.errors import NotFoundError, ValidationError, entity_not_found

if TYPE_CHECKING:
    from phoneledger.domain.entities import Purchase, Sale
    from phoneledger.domain.unit_of_work import Snapshot

CENT = Decimal("0.01")


def to_cents(value: Decimal) -> Decimal:
    """Quantize an amount to cent precision."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class BalanceSheet:
    """Mutable view over the balances captured in a snapshot."""

    def __init__(self, snapshot: "Snapshot"):
        self._snapshot = snapshot
        self._entities: dict[str, Decimal] = {}
        self._accounts: dict[AccountKind, Decimal] = {}
        self._currencies: dict[tuple[str, str], Decimal] = {}

    # Reads against the working copy
    def entity_balance(self, entity_id: str) -> Decimal:
        if entity_id in self._entities:
            return self._entities[entity_id]
        entity = self._snapshot.entities.get(entity_id)
        if entity is None:
            raise NotFoundError(entity_not_found(entity_id))
        return entity.balance

    def account_amount(self, kind: AccountKind) -> Decimal:
        if kind in self._accounts:
            return self._accounts[kind]
        account = self._snapshot.accounts.get(kind)
        if account is None:
            raise RuntimeError(f"Account {kind.value} was not part of the read plan")
        return account.amount

    def currency_amount(self, owner_id: str, currency: str) -> Decimal:
        key = (owner_id, currency)
        if key in self._currencies:
            return self._currencies[key]
        if owner_id not in self._snapshot.currency_balances:
            raise RuntimeError(f"Currency balances of {owner_id} were not part of the read plan")
        return self._snapshot.currency_balances[owner_id].get(currency, ZERO)

    # Mutations
    def adjust_entity(self, entity_id: str, delta: Decimal) -> Decimal:
        new_balance = to_cents(self.entity_balance(entity_id) + delta)
        self._entities[entity_id] = new_balance
        return new_balance

    def adjust_account(self, kind: AccountKind, delta: Decimal) -> Decimal:
        new_amount = to_cents(self.account_amount(kind) + delta)
        self._accounts[kind] = new_amount
        return new_amount

    def adjust_currency(self, owner_id: str, currency: str, delta: Decimal) -> Decimal:
        new_amount = to_cents(self.currency_amount(owner_id, currency) + delta)
        self._currencies[(owner_id, currency)] = new_amount
        return new_amount

    def adjust_holder(self, holder_id: Optional[str], currency: Optional[str], delta: Decimal) -> Decimal:
        """Apply a delta to whatever balance a transfer party represents.

        CAD held by "myself" is the Cash or Bank account, CAD held by an
        entity is its balance field; any other currency lives in the
        per-owner currency map.
        """
        if not holder_id:
            raise ValidationError("Transfer party is missing")
        if not currency:
            raise ValidationError("Currency is missing")

        if currency == BASE_CURRENCY:
            if holder_id == MYSELF_CASH_ID:
                return self.adjust_account(AccountKind.CASH, delta)
            if holder_id == MYSELF_BANK_ID:
                return self.adjust_account(AccountKind.BANK, delta)
            return self.adjust_entity(holder_id, delta)

        if holder_id not in (MYSELF_CASH_ID, MYSELF_BANK_ID) and holder_id not in self._snapshot.entities:
            raise NotFoundError(entity_not_found(holder_id))
        return self.adjust_currency(holder_id, currency, delta)

    def set_entity_balance(self, entity_id: str, balance: Decimal) -> Decimal:
        return self.adjust_entity(entity_id, to_cents(balance) - self.entity_balance(entity_id))

    def set_currency_amount(self, owner_id: str, currency: str, amount: Decimal) -> Decimal:
        return self.adjust_currency(owner_id, currency, to_cents(amount) - self.currency_amount(owner_id, currency))

    # Touched balances, for the write phase
    def changed_entities(self) -> dict[str, Decimal]:
        return dict(self._entities)

    def changed_accounts(self) -> dict[AccountKind, Decimal]:
        return dict(self._accounts)

    def changed_currencies(self) -> dict[tuple[str, str], Decimal]:
        return dict(self._currencies)


def _account_flows(
    payment: PaymentMethods, middleman: Optional[MiddlemanPayment], share_sign: int
) -> dict[AccountKind, Decimal]:
    flows = {
        AccountKind.CASH: payment.cash,
        AccountKind.BANK: payment.bank,
        AccountKind.CREDIT_CARD: payment.credit_card,
    }
    if middleman is None:
        return flows
    split = {
        AccountKind.CASH: middleman.split.cash,
        AccountKind.BANK: middleman.split.bank,
        AccountKind.CREDIT_CARD: middleman.split.credit_card,
    }
    sign = share_sign if middleman.unit == MiddlemanUnit.GIVE else -share_sign
    return {kind: paid + sign * split[kind] for kind, paid in flows.items()}


def purchase_outflows(purchase: "Purchase") -> dict[AccountKind, Decimal]:
    """Amount each account loses when a purchase is applied.

    A middleman share we give out leaves the account along with our own
    payment; a share we receive comes back into it.
    """
    return _account_flows(purchase.payment, purchase.middleman_payment, 1)


def sale_inflows(sale: "Sale") -> dict[AccountKind, Decimal]:
    """Amount each account gains when a sale is applied.

    A middleman share we give out is subtracted from what the customer paid
    in; a share we receive adds to it.
    """
    return _account_flows(sale.payment, sale.middleman_payment, -1)


def middleman_credit_delta(middleman: Optional[MiddlemanPayment]) -> Decimal:
    """Change applying a purchase or sale makes to the middleman's balance.

    Credit given to a middleman is owed to them (balance goes down); credit
    received from a middleman is owed by them (balance goes up).
    """
    if middleman is None:
        return ZERO
    credit = middleman.split.credit
    return -credit if middleman.unit == MiddlemanUnit.GIVE else credit
