"""
bidengine CLI - Command Line Interface for the auction engine

Main entry point for all CLI commands.
"""

import sys
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path

import click

from bidengine.utils.logger import setup_from_config


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", is_flag=True, help="Also write logs to BIDENGINE_LOG_DIR/bidengine.log")
@click.option("--data-dir", default=None, help="Data directory (default: BIDENGINE_DATA_DIR or ./data)")
@click.option("--env-file", default=".env", help="Environment file to load")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, log_file, data_dir, env_file):
    """Online auction bid engine"""
    import logging
    from bidengine.core.config import load_config

    cfg = load_config(env_file)
    if data_dir:
        cfg.data_dir = Path(data_dir).expanduser()
    if debug:
        cfg.log_level = logging.DEBUG
    if log_file:
        cfg.log_to_file = True

    setup_from_config(cfg)

    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


def _open_storage(ctx):
    from bidengine.core.storage import StorageManager

    cfg = ctx.obj["config"]
    return StorageManager(data_dir=cfg.data_dir, db_name=cfg.db_name)


@contextmanager
def _storage_guard(action: str):
    """Turn engine exceptions into a ❌ line and exit status 1."""
    from bidengine.core.errors import BidEngineError

    try:
        yield
    except BidEngineError as e:
        click.echo(f"❌ {action} failed: {e}")
        sys.exit(1)


def _echo_json(model) -> None:
    click.echo(model.model_dump_json(indent=2))


# =============================================================================
# Database Commands
# =============================================================================


@cli.group()
def db():
    """Database management commands"""
    pass


@db.command("init")
@click.pass_context
def db_init(ctx):
    """Create the database schema"""
    with _storage_guard("Database setup"):
        storage = _open_storage(ctx)
    click.echo(f"✓ Database ready at {storage.db_path}")


# =============================================================================
# User Commands
# =============================================================================


@cli.group()
def user():
    """User administration commands"""
    pass


@user.command("add")
@click.option("--email", required=True, help="Login identity")
@click.option("--first-name", default="", help="First name")
@click.option("--last-name", default="", help="Last name")
@click.option("--credit", default=0, type=click.IntRange(min=0), help="Initial credit")
@click.option("--admin", is_flag=True, help="Grant admin rights")
@click.pass_context
def user_add(ctx, email, first_name, last_name, credit, admin):
    """Register a user"""
    from bidengine.core.model import User
    from bidengine.core.errors import StorageError

    with _storage_guard("User creation"):
        storage = _open_storage(ctx)
    try:
        stored = storage.add_user(User(
            user_id=0,
            email=email,
            first_name=first_name,
            last_name=last_name,
            credit=credit,
            is_admin=admin,
        ))
    except StorageError:
        click.echo(f"❌ Could not create user {email} (already registered?)")
        sys.exit(1)

    click.echo(f"✓ User created: #{stored.user_id} {stored.email} (credit {stored.credit})")


@user.command("show")
@click.argument("email")
@click.pass_context
def user_show(ctx, email):
    """Show a user and their remaining credit"""
    from bidengine.schemas import UserView

    with _storage_guard("User lookup"):
        found = _open_storage(ctx).load_user_by_identity(email)
    if found is None:
        click.echo(f"❌ User {email} not found")
        sys.exit(1)

    _echo_json(UserView.from_user(found))


# =============================================================================
# Sale Commands
# =============================================================================


@cli.group()
def sale():
    """Sale administration commands"""
    pass


@sale.command("add")
@click.option("--seller", required=True, help="Seller email")
@click.option("--starting-price", required=True, type=click.IntRange(min=0), help="Floor price")
@click.option("--ends-in-hours", default=24.0, type=float, help="Auction duration")
@click.option("--item-name", default=None, help="Name of the item for sale")
@click.option("--item-desc", default="", help="Item description")
@click.pass_context
def sale_add(ctx, seller, starting_price, ends_in_hours, item_name, item_desc):
    """List a new sale"""
    from bidengine.core.model import Item, Sale, utcnow

    with _storage_guard("Sale creation"):
        storage = _open_storage(ctx)
        seller_user = storage.load_user_by_identity(seller)
    if seller_user is None:
        click.echo(f"❌ Seller {seller} not found")
        sys.exit(1)

    now = utcnow()
    with _storage_guard("Sale creation"):
        stored = storage.add_sale(Sale(
            sale_id=0,
            starting_date=now,
            ending_date=now + timedelta(hours=ends_in_hours),
            starting_price=starting_price,
            seller=seller_user,
            item=Item(item_id=0, name=item_name, description=item_desc) if item_name else None,
        ))
    click.echo(f"✓ Sale created: #{stored.sale_id}, starting at {stored.starting_price}, ends {stored.ending_date:%Y-%m-%d %H:%M} UTC")


@sale.command("show")
@click.argument("sale_id", type=int)
@click.pass_context
def sale_show(ctx, sale_id):
    """Show a sale with its bids"""
    from bidengine.schemas import SaleView

    with _storage_guard("Sale lookup"):
        found = _open_storage(ctx).load_sale_with_bids(sale_id)
    if found is None:
        click.echo(f"❌ Sale {sale_id} not found")
        sys.exit(1)

    _echo_json(SaleView.from_sale(found))


@sale.command("list")
@click.pass_context
def sale_list(ctx):
    """List all sales"""
    with _storage_guard("Sale listing"):
        sales = _open_storage(ctx).list_sales()
    if not sales:
        click.echo("No sales found.")
        return

    for s in sales:
        name = s.item.name if s.item else "-"
        click.echo(f"  #{s.sale_id} {name} [{s.status.value}] from {s.starting_price}, seller {s.seller.email}")


# =============================================================================
# Bid Commands
# =============================================================================


@cli.group()
def bid():
    """Bidding commands"""
    pass


@bid.command("place")
@click.option("--sale", "sale_id", required=True, type=int, help="Sale id")
@click.option("--as", "identity", required=True, help="Bidder email")
@click.option("--amount", required=True, type=int, help="Bid amount")
@click.option("--enforce-liveness/--no-enforce-liveness", default=None, help="Refuse bids on sales that are over")
@click.pass_context
def bid_place(ctx, sale_id, identity, amount, enforce_liveness):
    """Place a bid and print the updated sale and bidder"""
    from pydantic import ValidationError
    from bidengine.core.placement import BidPlacementService
    from bidengine.schemas import BidRequest, BidResponse, ErrorView

    cfg = ctx.obj["config"]
    if enforce_liveness is not None:
        cfg.enforce_sale_liveness = enforce_liveness

    try:
        request = BidRequest(sale_id=sale_id, bid_amount=amount)
    except ValidationError as e:
        click.echo(f"❌ Invalid bid request: {e.errors()[0]['msg']}")
        sys.exit(2)

    with _storage_guard("Bid placement"):
        service = BidPlacementService(_open_storage(ctx), config=cfg)
        outcome = service.place_bid(
            request.sale_id,
            identity,
            request.bid_amount,
            bid_time=request.bid_time,
        )

    if outcome.ok:
        _echo_json(BidResponse.from_snapshot(outcome.snapshot))
    else:
        _echo_json(ErrorView.from_error(outcome.error))
        sys.exit(1)


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
def demo():
    """Run the reference bidding scenarios on an in-memory store"""
    from bidengine.core.model import Sale, User, utcnow
    from bidengine.core.placement import BidPlacementService
    from bidengine.core.storage import MemoryStorage

    click.echo("=" * 60)
    click.echo("  BID ENGINE - DEMO")
    click.echo("=" * 60)
    click.echo()

    storage = MemoryStorage()
    service = BidPlacementService(storage)

    alice = storage.add_user(User(user_id=0, email="alice@example.com", first_name="Alice", credit=200))
    bob = storage.add_user(User(user_id=0, email="bob@example.com", first_name="Bob", credit=100))
    seller = storage.add_user(User(user_id=0, email="seller@example.com", first_name="Sam", credit=0))

    now = utcnow()
    listing = storage.add_sale(Sale(
        sale_id=0,
        starting_date=now,
        ending_date=now + timedelta(days=1),
        starting_price=150,
        seller=seller,
    ))
    click.echo(f"📦 Sale #{listing.sale_id} opens at {listing.starting_price}")
    click.echo(f"   Alice credit: {alice.credit}, Bob credit: {bob.credit}")
    click.echo()

    attempts = [
        ("alice@example.com", 160),
        ("bob@example.com", 150),
        ("seller@example.com", 500),
        ("bob@example.com", 170),
        ("alice@example.com", 180),
    ]
    for identity, amount in attempts:
        outcome = service.place_bid(listing.sale_id, identity, amount)
        if outcome.ok:
            click.echo(f"✅ {identity} bids {amount}: accepted, credit left {outcome.snapshot.user.credit}")
        else:
            click.echo(f"❌ {identity} bids {amount}: {outcome.error.code}")

    final = storage.load_sale_with_bids(listing.sale_id)
    click.echo()
    click.echo(f"📊 Current price: {final.current_price} ({len(final.bids)} bids)")
    click.echo("✅ Demo complete!")


if __name__ == "__main__":
    cli()
