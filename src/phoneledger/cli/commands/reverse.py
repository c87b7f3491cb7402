"""Reverse command."""

import click
from phoneledger.cli.error_handling import handle_domain_error
from phoneledger.cli.commands.history import TYPE_CHOICE
from phoneledger.domain.entities import TransactionType
from phoneledger.domain.errors import DomainError
from phoneledger.domain.reversal import ReversalService


@click.command("reverse")
@click.argument("txn_type", metavar="TYPE", type=TYPE_CHOICE)
@click.argument("transaction_id", metavar="ID")
@click.option("--yes", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def reverse_transaction(ctx, txn_type: str, transaction_id: str, yes: bool):
    """Undo a transaction and delete its record.

    Every balance and inventory change the transaction made is reverted in a
    single commit.

    Examples:
        phoneledger reverse sale 3f2a...
        phoneledger reverse expense 91bc... --yes
    """
    settings = ctx.obj["settings"]
    service = ReversalService(ctx.obj["db"], strict_inventory=settings.strict_inventory)

    if not yes:
        click.confirm(f"Reverse {txn_type} {transaction_id}?", abort=True)

    try:
        result = service.reverse_transaction(transaction_id, TransactionType(txn_type))
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Reversed {txn_type} {transaction_id}")
    if result.skipped_imeis:
        click.echo(
            f"Warning: inventory not restored for IMEI(s): {', '.join(result.skipped_imeis)}",
            err=True,
        )


def register_commands(cli):
    """Register the reverse command with the CLI."""
    cli.add_command(reverse_transaction)
