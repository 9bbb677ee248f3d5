# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/bakeoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init --restaurant "Chez Fatou" --owner-email owner@bakeoffice.local --owner-password "Password123"
#   Idempotent: creates tables, the restaurant and its Owner.
#
# Restaurants (tenants):
# - python -m flask restaurants list
# - python -m flask restaurants create --name "Chez Fatou" --code "FATOU"
#
# Users:
# - python -m flask users create --restaurant-id 1 --email baker@bakeoffice.local --password "Password123" --role Baker
#
# Data reset (Owner operation, same service as POST /api/admin/reset):
# - python -m flask data preview-reset --restaurant-id 1
# - python -m flask data reset --restaurant-id 1 --type sales --type bank --confirm "Chez Fatou"
#
# Ledger audit:
# - python -m flask audit drift [--restaurant-id 1] [--fix]
#   Recompute cached aggregates from their sources and report (or repair) drift.

import click
from flask.cli import with_appcontext

from .errors import DomainError
from .extensions import db
from .models import Restaurant, User, UserRestaurant
from .permissions.roles import ALL_ROLES, Role
from .services import audit_service, reset_service
from .services.auth_service import add_membership, create_user
from .services.tenant_service import TenantContext


def _system_context(restaurant_id: int) -> TenantContext:
    """Owner-level context for operator commands (no acting user)."""
    if db.session.get(Restaurant, restaurant_id) is None:
        raise click.ClickException(f"Restaurant {restaurant_id} not found")
    return TenantContext(user_id=None, role=Role.OWNER, restaurant_id=restaurant_id)


# =============================================================================
# SYSTEM
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--restaurant', 'restaurant_name', default='Main Bakery', help='Restaurant name')
@click.option('--owner-email', default='owner@bakeoffice.local', help='Owner email')
@click.option('--owner-password', default='Password123', help='Owner password')
@with_appcontext
def init_system(restaurant_name, owner_email, owner_password):
    """
    Create tables, a restaurant and its Owner (idempotent).

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing bakeoffice...")
    db.create_all()

    restaurant = db.session.query(Restaurant).filter_by(name=restaurant_name).first()
    if not restaurant:
        restaurant = Restaurant(name=restaurant_name, is_active=True)
        db.session.add(restaurant)
        db.session.commit()
        click.echo(f"PASS Created restaurant: {restaurant.name} (ID: {restaurant.id})")
    else:
        click.echo(f"PASS Using existing restaurant: {restaurant.name} (ID: {restaurant.id})")

    owner = db.session.query(User).filter_by(email=owner_email.lower()).first()
    if not owner:
        try:
            owner = create_user(owner_email, owner_password, name="Owner")
        except DomainError as e:
            raise click.ClickException(e.message)
        click.echo(f"PASS Created owner: {owner.email}")
    else:
        click.echo(f"PASS Using existing owner: {owner.email}")

    add_membership(owner.id, restaurant.id, Role.OWNER)
    click.echo("DONE Initialization complete.")


# =============================================================================
# RESTAURANTS
# =============================================================================

@click.group('restaurants')
def restaurants_group():
    """Restaurant (tenant) management."""


@restaurants_group.command('list')
@with_appcontext
def list_restaurants():
    restaurants = db.session.query(Restaurant).order_by(Restaurant.id).all()

    if not restaurants:
        click.echo("No restaurants found.")
        return

    click.echo("\n" + "=" * 70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Users'}")
    click.echo("=" * 70)

    for restaurant in restaurants:
        user_count = db.session.query(UserRestaurant).filter_by(restaurant_id=restaurant.id).count()
        active_str = "Yes" if restaurant.is_active else "No"
        click.echo(f"{restaurant.id:<5} {restaurant.name:<30} {restaurant.code or '-':<15} {active_str:<8} {user_count}")

    click.echo("=" * 70 + "\n")


@restaurants_group.command('create')
@click.option('--name', required=True, help='Restaurant name')
@click.option('--code', default=None, help='Short code (unique)')
@click.option('--location', default=None)
@with_appcontext
def create_restaurant_cli(name, code, location):
    if code and db.session.query(Restaurant).filter_by(code=code).first():
        raise click.ClickException(f"Restaurant code {code} already exists")
    restaurant = Restaurant(name=name, code=code, location=location, is_active=True)
    db.session.add(restaurant)
    db.session.commit()
    click.echo(f"PASS Created restaurant: {restaurant.name} (ID: {restaurant.id})")


# =============================================================================
# USERS
# =============================================================================

@click.group('users')
def users_group():
    """User management."""


@users_group.command('create')
@click.option('--restaurant-id', type=int, required=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--name', default=None)
@click.option('--role', type=click.Choice(sorted(ALL_ROLES)), required=True)
@with_appcontext
def create_user_cli(restaurant_id, email, password, name, role):
    """Create a user (or reuse an existing email) and grant a role in a restaurant."""
    try:
        user = db.session.query(User).filter_by(email=email.strip().lower()).first()
        if not user:
            user = create_user(email, password, name=name)
        add_membership(user.id, restaurant_id, role)
    except DomainError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS {user.email} is {role} in restaurant {restaurant_id}")


# =============================================================================
# DATA RESET
# =============================================================================

@click.group('data')
def data_group():
    """Tenant data reset."""


@data_group.command('preview-reset')
@click.option('--restaurant-id', type=int, required=True)
@with_appcontext
def preview_reset_cli(restaurant_id):
    preview = reset_service.preview_reset(_system_context(restaurant_id))
    click.echo(f"{'Category':<12} {'Count':<8} {'Related':<8} Description")
    for category in reset_service.RESET_ORDER:
        row = preview[category]
        click.echo(f"{category:<12} {row['count']:<8} {row['relatedCount']:<8} {row['description']}")


@data_group.command('reset')
@click.option('--restaurant-id', type=int, required=True)
@click.option('--type', 'types', multiple=True, required=True,
              type=click.Choice(reset_service.RESET_ORDER))
@click.option('--confirm', 'phrase', required=True, help='Restaurant name, as confirmation')
@with_appcontext
def reset_cli(restaurant_id, types, phrase):
    """DANGER: irreversibly delete the selected categories of one restaurant."""
    try:
        deleted = reset_service.execute_reset(_system_context(restaurant_id), list(types), phrase)
    except DomainError as e:
        raise click.ClickException(e.message)
    for category, counts in deleted.items():
        click.echo(f"DELETE {category}: {counts['count']} (+{counts['relatedCount']} related)")


# =============================================================================
# AUDIT
# =============================================================================

@click.group('audit')
def audit_group():
    """Ledger cache audits."""


@audit_group.command('drift')
@click.option('--restaurant-id', type=int, default=None, help='Default: every restaurant')
@click.option('--fix', is_flag=True, help='Rewrite drifted caches from their sources')
@with_appcontext
def drift_cli(restaurant_id, fix):
    if restaurant_id is not None:
        restaurant_ids = [_system_context(restaurant_id).restaurant_id]
    else:
        restaurant_ids = [r.id for r in db.session.query(Restaurant).order_by(Restaurant.id)]

    total = 0
    for rid in restaurant_ids:
        drift = audit_service.repair_drift(rid) if fix else audit_service.find_drift(rid)
        total += len(drift)
        for row in drift:
            click.echo(
                f"{'FIXED' if fix else 'DRIFT'} restaurant={rid} {row['entity']}#{row['id']} "
                f"{row['field']}: cached={row['cached']} actual={row['actual']}"
            )

    click.echo(f"{'PASS' if total == 0 else 'WARN'} {total} drifted value(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(restaurants_group)
    app.cli.add_command(users_group)
    app.cli.add_command(data_group)
    app.cli.add_command(audit_group)
