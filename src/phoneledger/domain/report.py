"""Balance report domain service."""

from dataclasses import dataclass, field
from decimal import Decimal

from phoneledger.database.base import Database
from phoneledger.domain.entities import AccountKind, BASE_CURRENCY, MYSELF_CASH_ID, ZERO

# Balances smaller than a cent are treated as settled
SETTLED = Decimal("0.01")


@dataclass(frozen=True)
class BalanceReport:
    """Totals across every entity, own cash and stock on hand.

    ``owed_to_us`` and ``we_owe`` map currency to a sum of entity balances;
    ``we_owe`` amounts stay negative.
    """

    owed_to_us: dict[str, Decimal] = field(default_factory=dict)
    we_owe: dict[str, Decimal] = field(default_factory=dict)
    own_cash: dict[str, Decimal] = field(default_factory=dict)
    inventory_value: Decimal = ZERO
    inventory_count: int = 0


def _add(totals: dict[str, Decimal], currency: str, amount: Decimal) -> None:
    totals[currency] = totals.get(currency, ZERO) + amount


class ReportService:
    """Service for building balance reports."""

    def __init__(self, db: Database):
        """Initialize report service.

        Args:
            db: Database instance
        """
        self.db = db

    def balance_report(self) -> BalanceReport:
        """Sum receivables, payables, own cash and inventory value.

        Entity balances are split by sign in every currency: positive
        balances are owed to us, negative ones are owed by us.

        Returns:
            BalanceReport with per-currency totals
        """
        owed_to_us: dict[str, Decimal] = {}
        we_owe: dict[str, Decimal] = {}
        for ent in self.db.list_entities():
            balances = {BASE_CURRENCY: ent.balance, **self.db.get_currency_balances(ent.id)}
            for currency, amount in balances.items():
                if abs(amount) < SETTLED:
                    continue
                _add(owed_to_us if amount > 0 else we_owe, currency, amount)

        own_cash = {}
        cash = next((account for account in self.db.list_accounts() if account.kind == AccountKind.CASH), None)
        if cash is not None and abs(cash.amount) >= SETTLED:
            own_cash[BASE_CURRENCY] = cash.amount
        for currency, amount in self.db.get_currency_balances(MYSELF_CASH_ID).items():
            if abs(amount) >= SETTLED:
                own_cash[currency] = amount

        units = self.db.list_inventory()
        return BalanceReport(
            owed_to_us=owed_to_us,
            we_owe=we_owe,
            own_cash=own_cash,
            inventory_value=sum((unit.unit_cost for unit in units), ZERO),
            inventory_count=len(units),
        )
