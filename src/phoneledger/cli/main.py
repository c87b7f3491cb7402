"""Main CLI entry point."""

import click
from phoneledger.config import load_settings
from phoneledger.database.factories import create_sqlite_database

# Import and register all commands at module level
from phoneledger.cli.commands import (
    balances,
    entity,
    history,
    inventory,
    posting,
    reverse,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides PHONELEDGER_DB_PATH environment variable)",
    envvar="PHONELEDGER_DB_PATH",
)
@click.option(
    "--strict-inventory/--lenient-inventory",
    default=None,
    help="Abort a reversal when a phone cannot be resolved instead of skipping it "
    "(overrides PHONELEDGER_STRICT_INVENTORY)",
)
@click.pass_context
def cli(ctx, db_path: str | None, strict_inventory: bool | None):
    """Phoneledger - Operations ledger for a phone-resale business.

    Record purchases, sales, currency transfers, expenses and balance
    adjustments, and reverse any of them exactly.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = load_settings(database_path=db_path, strict_inventory=strict_inventory)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        db = create_sqlite_database(settings=settings)
        db.connect()
        db.initialize_schema()
        ctx.obj["settings"] = settings
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
entity.register_commands(cli)
balances.register_commands(cli)
inventory.register_commands(cli)
posting.register_commands(cli)
history.register_commands(cli)
reverse.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
