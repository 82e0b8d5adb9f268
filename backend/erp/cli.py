# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/erp/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "erp:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--org "Org Name"] [--email admin@example.com]
#   Idempotent bootstrap: organization, its system roles, a main warehouse and an admin user.
#
# Organization management (MULTI-TENANT):
# - python -m flask orgs list
# - python -m flask orgs create --name "Acme Corp"
#
# Roles:
# - python -m flask roles init --org-id 1
#   Seed the four system roles for an organization (safe to re-run).
#
# Users:
# - python -m flask users list [--org-id 1]
# - python -m flask users create --org-id 1 --name "Jane Doe" --email jane@example.com --password "Password123!" --role manager
# - python -m flask users revoke-sessions jane@example.com
#
# Permission inspection:
# - python -m flask perms check jane@example.com inventory update
#
# Inventory:
# - python -m flask inventory low-stock --org-id 1
#   Log a low-stock alert per product and print the summary.

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import Organization, User, Warehouse
from .permissions import SYSTEM_ROLES, SystemRole
from .services import low_stock_service
from .services import permission_service
from .services.auth_service import create_user, PasswordValidationError
from .services.role_service import get_user_grants, initialize_system_roles
from .services.session_service import revoke_all_user_sessions


DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--org', 'org_name', default='Default Organization', help='Organization name')
@click.option('--email', default='admin@erp.local', help='Admin user email')
@with_appcontext
def init_system(org_name, email):
    """
    Initialize an organization with its system roles, a main warehouse and
    an admin user (password "Password123!").

    SECURITY: Change the password immediately in production!
    """
    click.echo("START Initializing ERP system...")

    org = db.session.query(Organization).filter_by(name=org_name).first()
    if not org:
        org = Organization(name=org_name, is_active=True)
        db.session.add(org)
        db.session.commit()
        click.echo(f"PASS Created organization: {org.name} (ID: {org.id})")
    else:
        click.echo(f"PASS Using existing organization: {org.name} (ID: {org.id})")

    roles = initialize_system_roles(org.id)
    db.session.commit()
    click.echo(f"PASS System roles: {', '.join(r.name for r in roles)}")

    warehouse = db.session.query(Warehouse).filter_by(org_id=org.id).first()
    if not warehouse:
        warehouse = Warehouse(org_id=org.id, name="Main Warehouse")
        db.session.add(warehouse)
        db.session.commit()
        click.echo(f"PASS Created warehouse: {warehouse.name} (ID: {warehouse.id})")
    else:
        click.echo(f"PASS Using existing warehouse: {warehouse.name} (ID: {warehouse.id})")

    if db.session.query(User).filter_by(email=email.lower()).first():
        click.echo(f"WARN  User '{email}' already exists, skipping...")
    else:
        try:
            create_user(org.id, "Administrator", email, DEFAULT_PASSWORD, SystemRole.ADMIN)
            click.echo(f"PASS Created admin user: {email}")
        except ServiceError as e:
            click.echo(f"FAIL Failed to create admin user: {e.message}")

    click.echo("\n" + "=" * 60)
    click.echo("DONE ERP System Initialized")
    click.echo("=" * 60)
    click.echo(f"\nOrganization: {org.name} (ID: {org.id})")
    click.echo(f"Admin: {email} / {DEFAULT_PASSWORD}  (CHANGE IN PRODUCTION!)")


# =============================================================================
# ORGANIZATION MANAGEMENT COMMANDS (MULTI-TENANT)
# =============================================================================

@click.group('orgs')
def orgs_group():
    """Organization (tenant) management commands."""


@orgs_group.command('list')
@with_appcontext
def list_orgs():
    """List all organizations."""
    orgs = db.session.query(Organization).order_by(Organization.id.asc()).all()

    if not orgs:
        click.echo("No organizations found.")
        return

    click.echo("\n" + "=" * 70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Active':<8} {'Warehouses':<12} {'Users'}")
    click.echo("=" * 70)

    for org in orgs:
        warehouse_count = db.session.query(Warehouse).filter_by(org_id=org.id).count()
        user_count = db.session.query(User).filter_by(org_id=org.id).count()
        active_str = "Yes" if org.is_active else "No"
        click.echo(f"{org.id:<5} {org.name:<30} {active_str:<8} {warehouse_count:<12} {user_count}")

    click.echo("=" * 70 + "\n")


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@with_appcontext
def create_org_cli(name):
    """Create a new organization (tenant) and seed its system roles."""
    org = Organization(name=name, is_active=True)
    db.session.add(org)
    db.session.flush()
    initialize_system_roles(org.id)
    db.session.commit()
    click.echo(f"PASS Created organization: {org.name} (ID: {org.id})")


# =============================================================================
# ROLES
# =============================================================================

@click.group('roles')
def roles_group():
    """Role management commands."""


@roles_group.command('init')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@with_appcontext
def init_roles_cli(org_id):
    """Seed the four system roles for an organization."""
    if not db.session.get(Organization, org_id):
        click.echo(f"FAIL Organization ID {org_id} not found")
        return
    roles = initialize_system_roles(org_id)
    db.session.commit()
    click.echo(f"PASS System roles: {', '.join(r.name for r in roles)}")


# =============================================================================
# USERS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@click.option('--org-id', type=int, help='Only users of this organization')
@with_appcontext
def list_users_cli(org_id):
    query = db.session.query(User)
    if org_id:
        query = query.filter_by(org_id=org_id)
    users = query.order_by(User.org_id.asc(), User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'ID':<5} {'Org':<5} {'Email':<35} {'Role':<10} {'Custom role':<20} {'Active'}")
    for user in users:
        custom = user.custom_role.name if user.custom_role else "-"
        click.echo(
            f"{user.id:<5} {user.org_id:<5} {user.email:<35} {user.role:<10} {custom:<20} "
            f"{'Yes' if user.is_active else 'No'}"
        )


@users_group.command('create')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(SYSTEM_ROLES)), default=SystemRole.USER, help='System role')
@with_appcontext
def create_user_cli(org_id, name, email, password, role):
    """
    Create a user in an organization.

    Password must meet strength requirements: 8+ chars, uppercase,
    lowercase, digit, special character.
    """
    try:
        user = create_user(org_id, name, email, password, role)
        click.echo(f"PASS Created user: {user.email} with role '{user.role}' in org {org_id}")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e.message}")
    except ServiceError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")


@users_group.command('revoke-sessions')
@click.argument('email')
@with_appcontext
def revoke_sessions_cli(email):
    """Revoke every active session of a user."""
    user = db.session.query(User).filter_by(email=email.lower()).first()
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return
    count = revoke_all_user_sessions(user.id, reason="Revoked via CLI")
    click.echo(f"PASS Revoked {count} session(s) for {user.email}")


# =============================================================================
# PERMISSIONS
# =============================================================================

@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('check')
@click.argument('email')
@click.argument('resource')
@click.argument('action')
@with_appcontext
def check_permission_cli(email, resource, action):
    """Check if a user may perform ACTION on RESOURCE."""
    user = db.session.query(User).filter_by(email=email.lower()).first()

    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return

    if permission_service.user_has_permission(user, resource, action):
        click.echo(f"PASS User '{email}' HAS permission '{resource}:{action}'")
    else:
        click.echo(f"FAIL User '{email}' DOES NOT HAVE permission '{resource}:{action}'")

    custom = user.custom_role.name if user.custom_role else "-"
    click.echo(f"\nSystem role: {user.role}  Custom role: {custom}")
    for grant in get_user_grants(user):
        click.echo(f"  {grant['resource']:<12} {', '.join(grant['actions'])}")


# =============================================================================
# INVENTORY
# =============================================================================

@click.group('inventory')
def inventory_group():
    """Inventory maintenance commands."""


@inventory_group.command('low-stock')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@with_appcontext
def low_stock_cli(org_id):
    """Run the low-stock notifier for an organization."""
    result = low_stock_service.check_and_notify(org_id)
    if not result["count"]:
        click.echo("PASS No low-stock products")
        return
    click.echo(f"WARN  {result['count']} low-stock product(s):")
    for note in result["notifications"]:
        click.echo(f"  - {note['message']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)  # Multi-tenant organization management
    app.cli.add_command(roles_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(inventory_group)
