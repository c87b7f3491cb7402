"""Inventory commands."""

import click
from phoneledger.domain.inventory import InventoryService


@click.group()
def inventory_group():
    """Inspect phones in stock."""
    pass


@inventory_group.command("list")
@click.option("--brand", help="Only list phones of this brand")
@click.pass_context
def list_inventory(ctx, brand: str | None):
    """List phones in stock."""
    service = InventoryService(ctx.obj["db"])
    units = service.list_inventory(brand=brand)
    if not units:
        click.echo("No phones in stock.")
        return

    click.echo(f"\n{len(units)} phone{'s' if len(units) != 1 else ''} in stock:")
    click.echo("-" * 78)
    for unit in units:
        capacity = f"{unit.capacity}{unit.capacity_unit}"
        color = unit.color or "-"
        click.echo(
            f"{unit.imei:16s} | {unit.brand:10s} | {unit.model:16s} | {capacity:7s} | "
            f"{color:8s} | {unit.unit_cost:>9} | {unit.status.value}"
        )


def register_commands(cli):
    """Register inventory commands with the CLI."""
    cli.add_command(inventory_group, name="inventory")
