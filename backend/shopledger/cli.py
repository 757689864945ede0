# Overview: Flask CLI command groups for bootstrap, profiles, and ledger reporting.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# - flask --app shopledger system init
#   Create tables (if missing) and the default admin/manager/staff profiles.
# - flask --app shopledger system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask --app shopledger profiles create --email a@b.c --full-name "A" --password "..." --role manager
# - flask --app shopledger profiles set-role --email a@b.c --role admin
# - flask --app shopledger profiles list
# - flask --app shopledger ledger summary [--recent 5]
# - flask --app shopledger ledger debts
# - flask --app shopledger ledger policy
#   Print the role/table access matrix.

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .models import Profile
from .permissions import Operation, describe_matrix
from .services import auth_service, ledger_query_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--password', default='Password123!', help='Password for the default profiles')
@with_appcontext
def init_system(password):
    """
    Create tables and default profiles (idempotent).

    Profiles: admin@shopledger.local, manager@shopledger.local,
    staff@shopledger.local. Change the passwords in production!
    """
    click.echo("START Initializing ShopLedger...")
    db.create_all()

    defaults = [
        ("admin@shopledger.local", "Administrator", "admin"),
        ("manager@shopledger.local", "Store Manager", "manager"),
        ("staff@shopledger.local", "Sales Staff", "staff"),
    ]
    for email, full_name, role in defaults:
        if db.session.query(Profile).filter_by(email=email).first():
            click.echo(f"WARN  Profile '{email}' already exists, skipping...")
            continue
        try:
            auth_service.create_profile(email=email, full_name=full_name, password=password, role=role)
        except LedgerError as e:
            click.echo(f"FAIL Could not create '{email}': {e.message}")
            continue
        click.echo(f"PASS Created profile: {email} with role '{role}'")

    click.echo("DONE ShopLedger initialized.")


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

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'flask system init' to initialize.")


@click.group('profiles')
def profiles_group():
    """Profile inspection and bootstrap commands."""


@profiles_group.command('create')
@click.option('--email', prompt=True)
@click.option('--full-name', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(['admin', 'manager', 'staff']), default='staff')
@with_appcontext
def create_profile_cmd(email, full_name, password, role):
    """Create a profile."""
    try:
        profile = auth_service.create_profile(email=email, full_name=full_name, password=password, role=role)
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created profile {profile.email} (ID: {profile.id}) with role '{profile.role}'")


@profiles_group.command('set-role')
@click.option('--email', required=True)
@click.option('--role', type=click.Choice(['admin', 'manager', 'staff']), required=True)
@with_appcontext
def set_role_cmd(email, role):
    """Change a profile's role."""
    profile = db.session.query(Profile).filter_by(email=email.strip().lower()).first()
    if not profile:
        raise click.ClickException(f"Profile '{email}' not found")
    try:
        auth_service.set_role(profile.id, role)
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS {profile.email} is now '{role}'")


@profiles_group.command('list')
@with_appcontext
def list_profiles():
    """List all profiles with their roles."""
    profiles = db.session.query(Profile).order_by(Profile.id).all()
    if not profiles:
        click.echo("No profiles found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Email':<35} {'Role':<10} {'Active':<8} {'Name'}")
    click.echo("=" * 80)
    for p in profiles:
        active_str = "Yes" if p.is_active else "No"
        click.echo(f"{p.id:<5} {p.email:<35} {p.role:<10} {active_str:<8} {p.full_name}")
    click.echo("")


@click.group('ledger')
def ledger_group():
    """Ledger reporting commands."""


@ledger_group.command('summary')
@click.option('--recent', type=int, default=None, help='Recent orders per kind')
@with_appcontext
def ledger_summary_cmd(recent):
    """Print dashboard aggregates."""
    summary = ledger_query_service.ledger_summary(recent)

    click.echo(f"Products:        {summary['total_products']} ({summary['low_stock_products']} low stock)")
    click.echo(f"Customers:       {summary['total_customers']}")
    click.echo(f"Suppliers:       {summary['total_suppliers']}")
    click.echo(f"Sales:           {summary['sales_count']} totalling {summary['total_sales']}"
               f" (paid {summary['total_sales_paid']})")
    click.echo(f"Purchases:       {summary['purchases_count']} totalling {summary['total_purchases']}"
               f" (paid {summary['total_purchases_paid']})")
    click.echo(f"Customer debt:   {summary['customer_debt']}")
    click.echo(f"Supplier debt:   {summary['supplier_debt']}")

    for label, key in (("Recent sales", "recent_sales"), ("Recent purchases", "recent_purchases")):
        click.echo(f"\n{label}:")
        for order in summary[key]:
            click.echo(
                f"  {order['order_number']:<12} {order['order_date'] or '':<22} "
                f"{order['total_amount']:>14} {order['counterparty_name'] or '-'}"
            )


@ledger_group.command('debts')
@with_appcontext
def ledger_debts_cmd():
    """Print counterparties with outstanding debt."""
    view = ledger_query_service.debts_view()
    for label, key, total_key in (
        ("Customers", "customers", "customer_total"),
        ("Suppliers", "suppliers", "supplier_total"),
    ):
        click.echo(f"{label} (total {view[total_key]}):")
        if not view[key]:
            click.echo("  none")
        for row in view[key]:
            click.echo(f"  {row['id']:<5} {row['name']:<30} {row['debt_balance']:>14}")


@ledger_group.command('policy')
def ledger_policy_cmd():
    """Print the access policy matrix."""
    click.echo(f"{'Table':<22} " + " ".join(f"{op:<24}" for op in Operation.ALL))
    for row in describe_matrix():
        click.echo(f"{row['table']:<22} " + " ".join(f"{','.join(row[op]):<24}" for op in Operation.ALL))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(profiles_group)
    app.cli.add_command(ledger_group)
