#!/usr/bin/env python3
"""
Purchase-order store: CLI entry point.

Usage examples:
  python main.py check                              # Show backend and record counts
  python main.py seed                               # Load default records into an empty store
  python main.py reset --yes                        # Wipe and reseed
  python main.py orders                             # List orders, newest first
  python main.py orders --status sent --search 2025
  python main.py stats                              # Dashboard figures
  python main.py next-number                        # Propose the next order number
  python main.py backup backups                     # Zip every record as seed-compatible JSON
  python main.py --backend document check           # Use the SQLite document store
"""
import json
import logging
import sys
from pathlib import Path

import click

from bootstrap import COUNTER_FILE, ensure_initial_data
from config import Config
from models.purchase_order import ALL_ORDER_STATUSES, STATUS_LABELS, OrderFilter
from store.errors import StoreError
from store.factory import BACKENDS, open_store
from store.sync import SyncFacade


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )


def _config(ctx: click.Context) -> Config:
    config = Config()
    if ctx.obj.get("backend"):
        config.storage_backend = ctx.obj["backend"]
    return config


def _facade(ctx: click.Context, load: bool = True) -> SyncFacade:
    config = _config(ctx)
    try:
        store = open_store(config)
        facade = SyncFacade(store, bootstrap=lambda s: ensure_initial_data(s, config))
        if load:
            facade.load()
    except StoreError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    return facade


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option(
    "--backend", "-b", type=click.Choice(BACKENDS), default=None,
    help="Storage backend (default: PO_STORAGE_BACKEND env var or 'local')",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, backend: str | None) -> None:
    """Purchase-order store: suppliers, products, budgets and orders."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["backend"] = backend
    _setup_logging(verbose)


# --------------------------------------------------------------------
# check command
# --------------------------------------------------------------------

@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Show the storage backend in use and how many records it holds."""
    facade = _facade(ctx)
    info = facade.store.backend.describe()

    click.echo("\n=== Store Check ===\n")
    click.echo(f"  Backend:    {info['backend']}")
    click.echo(f"  Location:   {info['path']}  {'✓' if info['exists'] else '✗ (not created yet)'}")
    click.echo()
    for name in ("suppliers", "products", "companies", "budgets", "orders"):
        click.echo(f"  {name:<12} {len(getattr(facade, name)):>5}")
    counter = facade.store.order_counter()
    if counter:
        counters = ", ".join(f"{year}: {n}" for year, n in sorted(counter.items()))
        click.echo(f"\n  Order counter:  {counters}")
    click.echo()


# --------------------------------------------------------------------
# seed / reset commands
# --------------------------------------------------------------------

@cli.command()
@click.pass_context
def seed(ctx: click.Context) -> None:
    """Load the default records if the store is empty."""
    config = _config(ctx)
    try:
        written = ensure_initial_data(open_store(config), config)
    except StoreError as exc:
        click.echo(f"✗ Seeding failed: {exc}", err=True)
        sys.exit(1)
    if written:
        click.echo(f"✓ Seeded from {config.seed_dir}")
    else:
        click.echo("Store already holds data (or no seed files found), nothing to do.")


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def reset(ctx: click.Context, yes: bool) -> None:
    """Delete every record and reload the defaults."""
    if not yes:
        click.confirm("This deletes all suppliers, products, budgets and orders. Continue?", abort=True)
    facade = _facade(ctx, load=False)
    try:
        facade.reset_to_defaults()
    except StoreError as exc:
        click.echo(f"✗ Reset failed: {exc}", err=True)
        sys.exit(1)
    click.echo(f"✓ Store reset ({len(facade.orders)} orders after reseeding)")


# --------------------------------------------------------------------
# orders command
# --------------------------------------------------------------------

@cli.command()
@click.option("--search", "-s", default=None, help="Substring of order number or supplier name")
@click.option("--status", type=click.Choice(ALL_ORDER_STATUSES), default=None)
@click.option("--supplier", "supplier_id", type=int, default=None, help="Supplier id")
@click.option("--from", "date_from", default=None, help="Earliest date (YYYY-MM-DD)")
@click.option("--to", "date_to", default=None, help="Latest date (YYYY-MM-DD)")
@click.pass_context
def orders(
    ctx: click.Context,
    search: str | None,
    status: str | None,
    supplier_id: int | None,
    date_from: str | None,
    date_to: str | None,
) -> None:
    """List orders, newest first."""
    facade = _facade(ctx)
    found = facade.search_orders(OrderFilter(
        search=search, status=status, supplier_id=supplier_id,
        date_from=date_from, date_to=date_to,
    ))
    if not found:
        click.echo("No orders found.")
        return

    for o in found:
        vat = "+VAT" if o.add_vat else "    "
        click.echo(
            f"  {o.order_number:<10} {o.date:<10}  {STATUS_LABELS[o.status]:<8} "
            f"{o.supplier_name[:28]:<28} {o.total:>12,.2f} {vat}"
        )
    click.echo(f"\n{len(found)} order(s)")


# --------------------------------------------------------------------
# stats / next-number commands
# --------------------------------------------------------------------

@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show dashboard figures."""
    figures = _facade(ctx).store.order_stats()
    click.echo(f"\n  Orders:     {figures['total_orders']}")
    for status, count in figures["by_status"].items():
        click.echo(f"    {status:<10} {count}")
    click.echo(f"  Suppliers:  {figures['suppliers']}")
    click.echo(f"  Products:   {figures['products']}")
    click.echo(f"  Companies:  {figures['companies']}")
    if figures["recent_orders"]:
        click.echo(f"  Recent:     {', '.join(figures['recent_orders'])}")
    click.echo()


@cli.command("next-number")
@click.option("--consume", is_flag=True, help="Mint the number from the counter instead of proposing it")
@click.pass_context
def next_number(ctx: click.Context, consume: bool) -> None:
    """Print the next order number for the current year."""
    facade = _facade(ctx)
    try:
        number = facade.next_order_number() if consume else facade.propose_order_number()
    except StoreError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(number)


# --------------------------------------------------------------------
# backup command
# --------------------------------------------------------------------

@cli.command()
@click.argument("destination", type=click.Path(), default="backups")
@click.pass_context
def backup(ctx: click.Context, destination: str) -> None:
    """
    Write a timestamped zip of every record and the order counter.

    The archive holds one <collection>.json per collection plus
    order_counter.json, the same layout as defaults/, so an unzipped backup
    can be loaded into an empty store with PO_SEED_DIR.
    """
    import zipfile
    from datetime import datetime

    facade = _facade(ctx)
    dest_dir = Path(destination)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    zip_path = dest_dir / f"po_backup_{timestamp}.zip"

    click.echo(f"Creating backup: {zip_path}")
    try:
        counter = {str(year): n for year, n in facade.store.order_counter().items()}
        dest_dir.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as zipf:
            for name, records in facade.snapshot().items():
                click.echo(f"  + {name} ({len(records)})")
                zipf.writestr(f"{name}.json", json.dumps(records, ensure_ascii=False, indent=2))
            zipf.writestr(COUNTER_FILE, json.dumps(counter))
    except (OSError, StoreError) as exc:
        click.echo(f"✗ Backup failed: {exc}", err=True)
        sys.exit(1)
    click.echo(f"✓ Backup complete: {zip_path}")


if __name__ == "__main__":
    cli()
