# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create all tables (idempotent).
#
# Customer inspection/bootstrap:
# - python -m flask customers create-admin --name "Store Admin" --email admin@store.local --phone 9000000000 --password "secret123"
#   Create an admin account for the back-office and POS register.
# - python -m flask customers list [--source web|pos]
#   List customers, optionally filtered by directory.
#
# Maintenance:
# - python -m flask orders cleanup-failed --older-than-hours 24
#   Delete failed online orders older than the window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import customer_service, order_service
from .services.auth_service import PasswordValidationError
from .validation import ValidationError, ConflictError


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create database tables for customers, orders and the catalog."""
    click.echo("START Initializing storefront database...")
    db.create_all()
    click.echo("PASS Tables created")


@click.group('customers')
def customers_group():
    """Customer account commands."""


@customers_group.command('create-admin')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--phone', prompt=True, help='10 digit phone number')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_admin_cli(name, email, phone, password):
    """
    Create an admin account.

    Admins manage orders, the catalog and the POS register through the API.
    """
    try:
        admin = customer_service.create_admin(name=name, email=email, phone=phone, password=password)
    except (ValidationError, ConflictError, PasswordValidationError) as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created admin {admin.email} (ID: {admin.id})")


@customers_group.command('list')
@click.option('--source', type=click.Choice(['web', 'pos']), help='Filter by directory')
@with_appcontext
def list_customers_cli(source):
    """List customers, newest first."""
    customers = customer_service.list_customers(source)

    if not customers:
        click.echo("No customers found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Source':<7} {'Role':<9} {'Name':<25} {'Phone':<12} {'Email':<30} {'Orders'}")
    click.echo("="*100)

    for customer in customers:
        click.echo(
            f"{customer.id:<5} {customer.source:<7} {customer.role:<9} {(customer.name or '-'):<25} "
            f"{customer.phone:<12} {(customer.email or '-'):<30} {customer.total_orders}"
        )

    click.echo("="*100 + "\n")


@click.group('orders')
def orders_group():
    """Order maintenance commands."""


@orders_group.command('cleanup-failed')
@click.option('--older-than-hours', type=int, default=24, show_default=True)
@with_appcontext
def cleanup_failed_orders_cli(older_than_hours):
    """
    Delete failed online orders.

    Default window: 24 hours.
    """
    deleted = order_service.cleanup_failed_orders(older_than_hours=older_than_hours)
    click.echo(f"Deleted {deleted} failed orders older than {older_than_hours} hours.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(customers_group)
    app.cli.add_command(orders_group)
