"""Transaction history command."""

import click
from phoneledger.domain.entities import (
    BalanceAdjustment,
    CurrencyTransfer,
    Expense,
    Purchase,
    Sale,
    TransactionType,
    transaction_type_of,
)
from phoneledger.utils.date_parser import parse_date

TYPE_CHOICE = click.Choice([txn_type.value for txn_type in TransactionType])


def _lines(record) -> str:
    text = f"{len(record.items)} phone(s)"
    if record.services:
        text += ", " + ", ".join(f"{service.name} {service.price}" for service in record.services)
    return text


def describe(record) -> str:
    """One-line summary of a stored record."""
    if isinstance(record, Purchase):
        return f"order #{record.order_number} from {record.supplier_id}, {_lines(record)}"
    if isinstance(record, Sale):
        return f"order #{record.order_number} to {record.customer_id}, {_lines(record)}"
    if isinstance(record, CurrencyTransfer):
        text = f"{record.giver} -> {record.taker} {record.currency}"
        if record.is_exchange:
            text += f" (received {record.received_amount} {record.receiving_currency})"
        return text
    if isinstance(record, Expense):
        return record.category or "expense"
    if isinstance(record, BalanceAdjustment):
        return f"{record.entity_id} {record.currency} {record.initial_balance} -> {record.final_balance}"
    return ""


@click.command("history")
@click.option("--type", "txn_type", type=TYPE_CHOICE, help="Only show one transaction type")
@click.option("--since", help="Only show records on or after this date")
@click.pass_context
def show_history(ctx, txn_type: str | None, since: str | None):
    """List stored transactions, newest first.

    Examples:
        phoneledger history
        phoneledger history --type sale --since "30 days ago"
    """
    db = ctx.obj["db"]
    since_date = None
    if since is not None:
        try:
            since_date = parse_date(since)
        except ValueError as e:
            click.echo(f"Error: Invalid date format: {e}", err=True)
            ctx.exit(1)

    records = db.list_records(TransactionType(txn_type) if txn_type else None)
    if since_date is not None:
        records = [record for record in records if record.date >= since_date]
    if not records:
        click.echo("No transactions found.")
        return

    for record in records:
        click.echo(
            f"{record.date} | {transaction_type_of(record).value:18s} | {record.id} | "
            f"{record.amount:>10} | {describe(record)}"
        )


def register_commands(cli):
    """Register the history command with the CLI."""
    cli.add_command(show_history)
