"""Commands that record transactions."""

import json

import click
from phoneledger.cli.documents import parse_purchase_document, parse_sale_document
from phoneledger.cli.error_handling import handle_domain_error
from phoneledger.domain.entities import BASE_CURRENCY, MYSELF_BANK_ID, MYSELF_CASH_ID
from phoneledger.domain.errors import DomainError
from phoneledger.domain.posting import PostingService
from phoneledger.utils.amount_parser import parse_amount
from phoneledger.utils.date_parser import parse_date

# Short names accepted for the two "myself" holders
_HOLDER_ALIASES = {"cash": MYSELF_CASH_ID, "bank": MYSELF_BANK_ID}


def _load_document(ctx, document) -> dict:
    try:
        return json.load(document)
    except json.JSONDecodeError as e:
        click.echo(f"Error: Invalid JSON document: {e}", err=True)
        ctx.exit(1)


def _parse_amount_or_exit(ctx, value: str, label: str):
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def _parse_date_or_exit(ctx, value: str | None):
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)


@click.command("purchase")
@click.argument("document", type=click.File("r"))
@click.pass_context
def record_purchase(ctx, document):
    """Record a purchase from a JSON document ('-' reads stdin).

    Examples:
        phoneledger purchase purchase.json
        cat purchase.json | phoneledger purchase -
    """
    service = PostingService(ctx.obj["db"])
    data = _load_document(ctx, document)
    try:
        purchase = service.record_purchase(**parse_purchase_document(data))
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Recorded purchase {purchase.id} (order #{purchase.order_number})")
    click.echo(f"  {len(purchase.items)} phone(s), total {purchase.grand_total}, "
               f"on credit {purchase.payment.remaining_credit}")


@click.command("sale")
@click.argument("document", type=click.File("r"))
@click.pass_context
def record_sale(ctx, document):
    """Record a sale from a JSON document ('-' reads stdin).

    Examples:
        phoneledger sale sale.json
    """
    service = PostingService(ctx.obj["db"])
    data = _load_document(ctx, document)
    try:
        sale = service.record_sale(**parse_sale_document(data))
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Recorded sale {sale.id} (order #{sale.order_number})")
    click.echo(f"  {len(sale.items)} phone(s), total {sale.grand_total}, "
               f"on credit {sale.payment.remaining_credit}")


@click.command("transfer")
@click.option("--from", "giver", required=True, help="Giver: entity ID, 'cash' or 'bank'")
@click.option("--to", "taker", required=True, help="Taker: entity ID, 'cash' or 'bank'")
@click.option("--amount", required=True, help="Amount given")
@click.option("--currency", default=BASE_CURRENCY, show_default=True, help="Currency given")
@click.option("--receive-currency", help="Currency received (makes this an exchange)")
@click.option("--received", help="Amount received in the receiving currency")
@click.option("--rate", help="Exchange rate, used when --received is omitted")
@click.option("--date", help="Transfer date (YYYY-MM-DD or 'today', 'yesterday')")
@click.option("--notes", help="Notes")
@click.pass_context
def record_transfer(
    ctx,
    giver: str,
    taker: str,
    amount: str,
    currency: str,
    receive_currency: str | None,
    received: str | None,
    rate: str | None,
    date: str | None,
    notes: str | None,
):
    """Move money between holders, optionally exchanging currencies.

    Examples:
        phoneledger transfer --from cash --to bank --amount 500
        phoneledger transfer --from supplier1 --to cash --amount 200 --currency USD
        phoneledger transfer --from cash --to cash --amount 100 --currency USD \\
            --receive-currency CAD --rate 1.35
    """
    service = PostingService(ctx.obj["db"])
    txn_amount = _parse_amount_or_exit(ctx, amount, "amount")
    received_amount = _parse_amount_or_exit(ctx, received, "received amount") if received else None
    exchange_rate = _parse_amount_or_exit(ctx, rate, "rate") if rate else None
    txn_date = _parse_date_or_exit(ctx, date)

    try:
        transfer = service.record_transfer(
            giver=_HOLDER_ALIASES.get(giver, giver),
            taker=_HOLDER_ALIASES.get(taker, taker),
            currency=currency,
            amount=txn_amount,
            date=txn_date,
            is_exchange=receive_currency is not None,
            receiving_currency=receive_currency,
            received_amount=received_amount,
            exchange_rate=exchange_rate,
            notes=notes,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Recorded transfer {transfer.id}")
    if transfer.is_exchange:
        click.echo(f"  {transfer.amount} {transfer.currency} -> "
                   f"{transfer.received_amount} {transfer.receiving_currency}")


@click.command("expense")
@click.option("--amount", required=True, help="Expense amount")
@click.option("--cash", default="0", help="Paid from cash")
@click.option("--bank", default="0", help="Paid from bank")
@click.option("--credit-card", default="0", help="Paid by credit card")
@click.option("--category", help="Expense category")
@click.option("--date", help="Expense date (YYYY-MM-DD or 'today', 'yesterday')")
@click.option("--notes", help="Notes")
@click.pass_context
def record_expense(
    ctx,
    amount: str,
    cash: str,
    bank: str,
    credit_card: str,
    category: str | None,
    date: str | None,
    notes: str | None,
):
    """Record an expense.

    When no split is given the whole amount is paid in cash.

    Examples:
        phoneledger expense --amount 40 --category Shipping
        phoneledger expense --amount 100 --cash 60 --bank 40
    """
    service = PostingService(ctx.obj["db"])
    txn_amount = _parse_amount_or_exit(ctx, amount, "amount")
    cash_paid = _parse_amount_or_exit(ctx, cash, "cash amount")
    bank_paid = _parse_amount_or_exit(ctx, bank, "bank amount")
    card_paid = _parse_amount_or_exit(ctx, credit_card, "credit card amount")
    if not (cash_paid or bank_paid or card_paid):
        cash_paid = txn_amount
    txn_date = _parse_date_or_exit(ctx, date)

    try:
        expense = service.record_expense(
            amount=txn_amount,
            cash_paid=cash_paid,
            bank_paid=bank_paid,
            credit_card_paid=card_paid,
            date=txn_date,
            category=category,
            notes=notes,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Recorded expense {expense.id} ({expense.amount})")


@click.command("adjust")
@click.argument("entity_id", metavar="ENTITY_ID")
@click.argument("new_balance", metavar="NEW_BALANCE")
@click.option("--currency", default=BASE_CURRENCY, show_default=True, help="Balance currency")
@click.option("--date", help="Adjustment date (YYYY-MM-DD or 'today', 'yesterday')")
@click.pass_context
def adjust_balance(ctx, entity_id: str, new_balance: str, currency: str, date: str | None):
    """Set an entity's balance, keeping a reversible record of the change.

    Examples:
        phoneledger adjust supplier1 150
        phoneledger adjust customer7 -- -20 --currency USD
    """
    service = PostingService(ctx.obj["db"])
    target = _parse_amount_or_exit(ctx, new_balance, "balance")
    txn_date = _parse_date_or_exit(ctx, date)

    try:
        adjustment = service.adjust_balance(entity_id=entity_id, new_balance=target, currency=currency, date=txn_date)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(
        f"Adjusted {entity_id} from {adjustment.initial_balance} to {adjustment.final_balance} "
        f"{adjustment.currency} (adjustment {adjustment.id})"
    )


def register_commands(cli):
    """Register posting commands with the CLI."""
    cli.add_command(record_purchase)
    cli.add_command(record_sale)
    cli.add_command(record_transfer)
    cli.add_command(record_expense)
    cli.add_command(adjust_balance)
