# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/tillbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--store "Main Store"] [--with-users]
#   Idempotent bootstrap: tables, default store, invoice counters, roles,
#   permissions and (optionally) default users.
#
# Users:
# - python -m flask users create --username admin --email admin@tillbook.local --password "Password123!" --role admin
#
# Permissions:
# - python -m flask perms grant cashier CANCEL_SALE
#   Grant a permission to a role.
#
# Invoice counters:
# - python -m flask invoices list
# - python -m flask invoices reset --store-id 1 --value 0 --yes
# - python -m flask invoices reset --dc --value 0 --yes

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Store, Role
from .services.auth_service import create_user, create_default_roles, assign_role, PasswordValidationError
from .services import permission_service
from .services import invoice_service
from .services.locations import DISTRIBUTION_CENTER, location_for


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--store', 'store_name', default='Main Store', help='Default store name')
@click.option('--with-users', is_flag=True, help='Create admin/manager/cashier users')
@with_appcontext
def init_system(store_name, with_users):
    """
    Initialize tables, default store, counters, roles and permissions.

    Default user passwords are "Password123!". Change them in production.
    """
    click.echo("START Initializing tillbook...")
    db.create_all()

    store = db.session.query(Store).first()
    if not store:
        store = Store(name=store_name, code="MAIN")
        db.session.add(store)
        db.session.commit()
        click.echo(f"PASS Created default store: {store.name} (ID: {store.id})")
    else:
        click.echo(f"PASS Using existing store: {store.name} (ID: {store.id})")

    invoice_service.initialize_store_counter(store.id)
    click.echo(f"PASS Invoice counter ready for store {store.id}")

    create_default_roles()
    roles = db.session.query(Role).all()
    click.echo(f"PASS Roles: {', '.join(r.name for r in roles)}")

    grants = permission_service.assign_default_role_permissions()
    click.echo(f"PASS {grants} new role permission grants")

    if with_users:
        default_password = "Password123!"
        for username, role_name in (("admin", "admin"), ("manager", "manager"), ("cashier", "cashier")):
            try:
                user = create_user(
                    username=username,
                    email=f"{username}@tillbook.local",
                    password=default_password,
                    store_id=store.id,
                )
                assign_role(user.id, role_name)
                click.echo(f"PASS Created user: {username} with role '{role_name}'")
            except ValueError as e:
                click.echo(f"WARN  Skipping '{username}': {e}")

    click.echo("DONE tillbook initialized")


@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'manager', 'cashier']), prompt=True, help='Role')
@click.option('--store-id', type=int, default=None, help='Home store (omit for back-office users)')
@with_appcontext
def create_user_cli(username, email, password, role, store_id):
    """Create a user and assign a role."""
    try:
        user = create_user(username=username, email=email, password=password, store_id=store_id)
        assign_role(user.id, role)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except ValueError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {username} (ID: {user.id}) with role '{role}'")


@click.group('perms')
def perms_group():
    """Permission repair commands."""


@perms_group.command('grant')
@click.argument('role_name')
@click.argument('permission_code')
@with_appcontext
def grant_permission_cli(role_name, permission_code):
    """Grant a permission to a role."""
    try:
        permission_service.grant_permission(role_name, permission_code.upper())
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Granted {permission_code.upper()} to {role_name}")


@click.group('invoices')
def invoices_group():
    """Invoice counter inspection and admin repair."""


@invoices_group.command('list')
@with_appcontext
def list_counters_cli():
    counters = invoice_service.list_counters()
    if not counters:
        click.echo("No invoice counters yet")
        return
    for c in counters:
        click.echo(f"{c.location_key:<12} prefix={c.prefix:<8} current={c.current_number}")


@invoices_group.command('reset')
@click.option('--store-id', type=int, default=None, help='Store whose counter to reset')
@click.option('--dc', is_flag=True, help='Reset the distribution-center counter')
@click.option('--value', type=int, default=0, show_default=True, help='New current number')
@click.option('--yes', is_flag=True, help='Confirm the reset')
@with_appcontext
def reset_counter_cli(store_id, dc, value, yes):
    """
    Set a location's invoice sequence.

    Lowering it below numbers already issued makes the next checkouts
    collide with existing invoices.
    """
    if dc == (store_id is not None):
        raise click.UsageError("Pass exactly one of --store-id or --dc")
    if not yes:
        raise click.UsageError("Refusing to reset without --yes")

    location = DISTRIBUTION_CENTER if dc else location_for(store_id)
    try:
        counter = invoice_service.reset_counter(location, value)
    except ValueError as e:
        raise click.ClickException(str(e))
    if counter is None:
        raise click.ClickException(f"No counter for {location.key}")
    click.echo(f"PASS {location.key} counter set to {counter.current_number}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(invoices_group)
