"""Entity management commands."""

import click
from phoneledger.cli.error_handling import handle_domain_error
from phoneledger.domain.entities import EntityKind
from phoneledger.domain.entity import EntityService
from phoneledger.domain.errors import DomainError

KIND_CHOICE = click.Choice([kind.value for kind in EntityKind])


@click.group()
def entity_group():
    """Manage customers, middlemen and suppliers."""
    pass


@entity_group.command("create")
@click.argument("kind", type=KIND_CHOICE)
@click.argument("name", metavar="NAME")
@click.option("--id", "entity_id", help="Explicit entity ID (generated if not provided)")
@click.pass_context
def create_entity(ctx, kind: str, name: str, entity_id: str | None):
    """Create a customer, middleman or supplier.

    Examples:
        phoneledger entity create supplier "Wholesale Phones"
        phoneledger entity create customer "Jane Doe" --id jane
    """
    service = EntityService(ctx.obj["db"])
    try:
        new_id = service.create_entity(kind=EntityKind(kind), name=name, entity_id=entity_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created {kind} '{name.strip()}' (ID: {new_id})")


@entity_group.command("list")
@click.option("--kind", type=KIND_CHOICE, help="Only list one kind of entity")
@click.pass_context
def list_entities(ctx, kind: str | None):
    """List entities and their CAD balances."""
    service = EntityService(ctx.obj["db"])
    entities = service.list_entities(kind=EntityKind(kind) if kind else None)
    if not entities:
        click.echo("No entities found.")
        return

    click.echo("\nEntities:")
    click.echo("-" * 78)
    for ent in entities:
        click.echo(f"{ent.id:34s} | {ent.kind.value:9s} | {ent.name:20s} | {ent.balance:>10}")


@entity_group.command("show")
@click.argument("entity_id", metavar="ENTITY_ID")
@click.pass_context
def show_entity(ctx, entity_id: str):
    """Show an entity, its balances and its transaction history."""
    db = ctx.obj["db"]
    service = EntityService(db)
    try:
        kind, ent = service.resolve(entity_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"{ent.name} ({kind.value}, ID: {ent.id})")
    click.echo(f"Balance (CAD): {ent.balance}")
    for currency, amount in db.get_currency_balances(ent.id).items():
        click.echo(f"Balance ({currency}): {amount}")

    if not ent.history:
        click.echo("No history.")
        return
    click.echo("\nHistory:")
    for entry in ent.history:
        click.echo(
            f"  {entry.timestamp:%Y-%m-%d %H:%M} | {entry.role:9s} | "
            f"{entry.transaction_type.value:8s} | {entry.transaction_id}"
        )


def register_commands(cli):
    """Register entity commands with the CLI."""
    cli.add_command(entity_group, name="entity")
