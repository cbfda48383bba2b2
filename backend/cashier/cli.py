# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/cashier/cli.py
# Commands Legend (run from the repository root):
# Prereqs:
# - Activate your virtualenv and `pip install -e .`.
# - Set FLASK_APP (PowerShell: $env:FLASK_APP="cashier:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default settings rows.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Settings:
# - python -m flask settings show
#   Print the current store settings and invoice counter.
# - python -m flask settings reset-invoice-counter --yes
#   Set last_invoice_number back to 0.
#
# Products:
# - python -m flask products list [--all]
#   List products (use --all to include deactivated ones).
# - python -m flask products seed
#   Insert a small demo catalog when the product table is empty.

import click
from flask.cli import with_appcontext

from .errors import CashierError
from .extensions import db
from .models import Product
from .services import invoice_number_service, settings_service

DEMO_PRODUCTS = [
    ("Mineral Water 600ml", 350, 120),
    ("Instant Noodles", 300, 200),
    ("Coffee Sachet", 150, 300),
    ("White Bread", 1500, 40),
    ("Cooking Oil 1L", 1800, 35),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and seed default settings (safe to re-run)."""
    click.echo("START Initializing cashier backend...")
    db.create_all()
    click.echo("PASS Tables ready")

    created = settings_service.ensure_default_settings()
    if created:
        click.echo(f"PASS Created settings: {', '.join(created)}")
    else:
        click.echo("PASS Settings already present")

    click.echo("DONE Cashier backend initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    click.echo("BUILD  Recreating schema...")
    db.create_all()
    settings_service.ensure_default_settings()
    click.echo("PASS Database reset complete")


@click.group('settings')
def settings_group():
    """Store settings and invoice counter."""


@settings_group.command('show')
@with_appcontext
def show_settings():
    """Print the current store settings."""
    try:
        settings = settings_service.get_settings()
    except CashierError as e:
        raise click.ClickException(e.message)

    for key, value in settings.to_dict().items():
        click.echo(f"{key:22} {value}")


@settings_group.command('reset-invoice-counter')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_invoice_counter(yes):
    """Reset last_invoice_number to 0. Cannot be undone."""
    if not yes:
        click.confirm(
            "WARN Invoice numbers will restart at 1. Change the invoice prefix to keep numbers unique. Continue?",
            abort=True,
        )
    try:
        invoice_number_service.reset_invoice_counter()
        last_number = invoice_number_service.peek_last_invoice_number()
    except CashierError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Invoice counter reset (last_invoice_number={last_number})")


@click.group('products')
def products_group():
    """Product catalog inspection and demo data."""


@products_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include deactivated products')
@with_appcontext
def list_products(include_inactive):
    query = db.session.query(Product).order_by(Product.name.asc())
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))

    products = query.all()
    if not products:
        click.echo("No products found.")
        return

    for p in products:
        status = "" if p.is_active else " (inactive)"
        click.echo(f"{p.id:5}  {p.name:30} price_cents={p.price_cents:<8} stock={p.stock}{status}")


@products_group.command('seed')
@with_appcontext
def seed_products():
    """Insert demo products when the catalog is empty."""
    if db.session.query(Product.id).first() is not None:
        click.echo("WARN Products already exist, skipping seed")
        return

    for name, price_cents, stock in DEMO_PRODUCTS:
        db.session.add(Product(name=name, price_cents=price_cents, stock=stock))
    db.session.commit()
    click.echo(f"PASS Seeded {len(DEMO_PRODUCTS)} products")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(settings_group)
    app.cli.add_command(products_group)
