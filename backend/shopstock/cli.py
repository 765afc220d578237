# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/shopstock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask db upgrade
#   Apply migrations (creates users, inventory_items, sales, session_tokens, security_events).
# - python -m flask system init [--password "..."]
#   Idempotent bootstrap: creates the default "admin" account if no admin exists.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role, active status and permission source.
# - python -m flask users create --username alice --email alice@shop.local --password "Password123" --role manager
#   Create a user (prompts if options are omitted).
# - python -m flask users set-role alice admin
#   Change a user's role (last-admin guard applies).
#
# Permission inspection:
# - python -m flask perms list [--role manager]
#   List permission flags and their default roles.
# - python -m flask perms check alice can_approve_inventory
#   Check a user's effective permission.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --older-than-days 30
#   Delete expired/revoked session tokens.
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import secrets

import click
from flask.cli import with_appcontext

from .errors import ShopError
from .extensions import db
from .models import User
from .permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    ROLE_ADMIN,
    ROLES,
    get_permission_catalog,
    validate_permission_code,
)
from .services import maintenance_service, permission_service
from .services.auth_service import create_user


def _generate_initial_password() -> str:
    # token_urlsafe alone may miss a character class; the suffix guarantees all three
    return secrets.token_urlsafe(12) + "Aa1"


def _find_user(identifier: str) -> User | None:
    query = db.session.query(User)
    if identifier.isdigit():
        return query.filter_by(id=int(identifier)).first()
    return query.filter(db.or_(User.username == identifier, User.email == identifier.lower())).first()


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--username', default='admin', show_default=True, help='Admin username')
@click.option('--email', default='admin@shopstock.local', show_default=True, help='Admin email')
@click.option('--password', default=None, help='Admin password (generated and printed if omitted)')
@with_appcontext
def init_system(username, email, password):
    """
    Create the initial admin account.

    Idempotent: does nothing if an active admin already exists.

    SECURITY: Change the printed password after first login!
    """
    click.echo("START Initializing Shopstock...")

    existing_admin = db.session.query(User).filter(
        User.role == ROLE_ADMIN, User.is_active.is_(True)
    ).first()
    if existing_admin:
        click.echo(f"PASS Admin already exists: {existing_admin.username} (ID: {existing_admin.id})")
        return

    generated = password is None
    password = password or _generate_initial_password()

    try:
        user = create_user(username=username, email=email, password=password, role=ROLE_ADMIN)
    except ShopError as e:
        click.echo(f"FAIL Could not create admin '{username}': {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created admin: {user.username} ({user.email})")
    if generated:
        click.echo(f"\nInitial password (CHANGE IT): {password}")
    click.echo("")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<9} {'Active':<8} {'Permissions'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        perm_source = "custom" if user.permissions is not None else "role defaults"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<9} {active_str:<8} {perm_source}")

    click.echo("="*90 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), default='user', show_default=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    """
    try:
        user = create_user(username=username, email=email, password=password, role=role)
    except ShopError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")


@users_group.command('set-role')
@click.argument('identifier')
@click.argument('role', type=click.Choice(ROLES))
@with_appcontext
def set_role_cli(identifier, role):
    """Change a user's role by id, username or email."""
    user = _find_user(identifier)
    if not user:
        click.echo(f"FAIL User '{identifier}' not found")
        raise SystemExit(1)

    try:
        user, permissions_reset = permission_service.change_role(user.id, role, actor=None)
    except ShopError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS {user.username} is now '{user.role}'")
    if not permissions_reset:
        click.echo("WARN Role default permissions could not be applied; custom permissions were kept")


# =============================================================================
# PERMISSION INSPECTION COMMANDS
# =============================================================================

@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', type=click.Choice(ROLES), help='Only flags granted to this role by default')
@with_appcontext
def list_permissions_cli(role):
    """List permission flags, optionally only those a role gets by default."""
    catalog = get_permission_catalog()
    if role:
        catalog = [p for p in catalog if p["code"] in DEFAULT_ROLE_PERMISSIONS[role]]

    click.echo(f"\n{'='*80}")
    click.echo(f"Permissions for role: {role.upper()}" if role else "All Permissions")
    click.echo(f"{'='*80}\n")

    click.echo(f"{'Code':<26} {'Category':<12} {'Default roles'}")
    click.echo("-"*80)
    for perm in catalog:
        click.echo(f"{perm['code']:<26} {perm['category']:<12} {', '.join(perm['default_roles'])}")

    click.echo(f"\n Total: {len(catalog)} permissions\n")


@perms_group.command('check')
@click.argument('identifier')
@click.argument('permission_code')
@with_appcontext
def check_permission_cli(identifier, permission_code):
    """Check whether a user has a permission."""
    if not validate_permission_code(permission_code):
        click.echo(f"FAIL Unknown permission code: {permission_code}")
        raise SystemExit(1)

    user = _find_user(identifier)
    if not user:
        click.echo(f"FAIL User '{identifier}' not found")
        raise SystemExit(1)

    if permission_service.user_has_permission(user, permission_code):
        click.echo(f"PASS {user.username} has {permission_code}")
    else:
        click.echo(f"DENY {user.username} does not have {permission_code}")


# =============================================================================
# MAINTENANCE COMMANDS
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(older_than_days):
    """Delete expired or revoked session tokens."""
    deleted = maintenance_service.cleanup_sessions(older_than_days=older_than_days)
    click.echo(f"Deleted {deleted} sessions older than {older_than_days} days.")


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """Delete security events older than the retention window."""
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(maintenance_group)
