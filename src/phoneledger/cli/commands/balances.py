"""Balance overview command."""

import click
from phoneledger.domain.entities import MYSELF_BANK_ID, MYSELF_CASH_ID
from phoneledger.domain.report import ReportService

_OWN_HOLDERS = (("Own cash", MYSELF_CASH_ID), ("Own bank", MYSELF_BANK_ID))


def _echo_totals(title: str, totals: dict) -> None:
    click.echo(f"  {title}:")
    if not totals:
        click.echo("    none")
    for currency, amount in sorted(totals.items()):
        click.echo(f"    {currency:4s} {amount:>12}")


@click.command("balances")
@click.pass_context
def show_balances(ctx):
    """Show internal accounts, own foreign-currency holdings, entity balances and totals."""
    db = ctx.obj["db"]

    click.echo("Accounts (CAD):")
    for account in db.list_accounts():
        click.echo(f"  {account.kind.value:12s} {account.amount:>12}")

    foreign = [(label, db.get_currency_balances(holder_id)) for label, holder_id in _OWN_HOLDERS]
    if any(balances for _, balances in foreign):
        click.echo("\nOwn currency holdings:")
        for label, balances in foreign:
            for currency, amount in balances.items():
                click.echo(f"  {label:12s} {currency:4s} {amount:>12}")

    entities = db.list_entities()
    if entities:
        click.echo("\nEntities (CAD, positive = owes us):")
        for ent in entities:
            click.echo(f"  {ent.name:20s} {ent.kind.value:9s} {ent.balance:>12}")

    report = ReportService(db).balance_report()
    click.echo("\nTotals:")
    _echo_totals("Owed to us", report.owed_to_us)
    _echo_totals("We owe", report.we_owe)
    _echo_totals("Own cash", report.own_cash)
    click.echo(f"  Inventory value: {report.inventory_value} ({report.inventory_count} phones at cost)")


def register_commands(cli):
    """Register the balances command with the CLI."""
    cli.add_command(show_balances)
