# Overview: Flask CLI command groups for bootstrap, account management, API keys and maintenance.

# backend/multishop/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--branch "Main Branch"] [--owner-username owner]
#   Idempotent bootstrap: creates tables, a default branch and an Owner account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Management users:
# - python -m flask users list
# - python -m flask users create --username jane --full-name "Jane Doe" --password "Password123!" --role Manager
#
# Branch staff:
# - python -m flask staff list [--branch-id 1]
# - python -m flask staff create --branch-id 1 --username cashier1 --full-name "Sam Lee" --password "Password123!" --role Cashier
#
# API keys:
# - python -m flask api-keys create --username owner --name "Reporting" --scope read:customers --scope read:dashboard [--expires-days 90]
#   Prints the key once. It cannot be recovered later.
# - python -m flask api-keys list [--username owner]
# - python -m flask api-keys revoke --id 3
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from flask.cli import with_appcontext

from .errors import AppError
from .extensions import db
from .models import Branch
from .permissions import ManagementRole, PrincipalKind, role_values, scope_codes
from .services import api_key_service, maintenance_service, staff_service, user_service
from .services.auth_service import find_management_by_username
from .validation import MAX_DB_INT


DEFAULT_PASSWORD = "Password123!"
ROW_ID = click.IntRange(1, MAX_DB_INT)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--branch', 'branch_name', default='Main Branch', help='Default branch name')
@click.option('--owner-username', default='owner', help='Owner account username')
@click.option('--owner-password', default=DEFAULT_PASSWORD, help='Owner account password')
@with_appcontext
def init_system(branch_name, owner_username, owner_password):
    """
    Initialize the system: tables, a default branch and an Owner account.

    Safe to run repeatedly; existing rows are left untouched.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing multishop...")

    db.create_all()
    click.echo("PASS Tables ready")

    branch = db.session.query(Branch).first()
    if not branch:
        branch = Branch(name=branch_name)
        db.session.add(branch)
        db.session.commit()
        click.echo(f"PASS Created default branch: {branch.name} (ID: {branch.id})")
    else:
        click.echo(f"PASS Using existing branch: {branch.name} (ID: {branch.id})")

    if find_management_by_username(owner_username):
        click.echo(f"WARN  User '{owner_username}' already exists, skipping...")
    else:
        try:
            user = user_service.create_user({
                "username": owner_username,
                "full_name": "System Owner",
                "password": owner_password,
                "role": ManagementRole.OWNER.value,
            })
            click.echo(f"PASS Created owner: {user.username} (ID: {user.id})")
        except AppError as e:
            click.echo(f"FAIL Failed to create owner '{owner_username}': {e.message}")
            return

    click.echo("\nDONE multishop initialized.")
    if owner_password == DEFAULT_PASSWORD:
        click.echo(f"   {owner_username} / {DEFAULT_PASSWORD}  (CHANGE IN PRODUCTION!)")


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


@click.group('users')
def users_group():
    """Management user commands."""


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List management users with role and active status."""
    users = user_service.list_users()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<24} {user.role:<22} {status}")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(role_values(PrincipalKind.MANAGEMENT)), default='Management', show_default=True)
@with_appcontext
def create_user_cli(username, full_name, password, role):
    """
    Create a management user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = user_service.create_user({
            "username": username,
            "full_name": full_name,
            "password": password,
            "role": role,
        })
    except AppError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@click.group('staff')
def staff_group():
    """Branch staff commands."""


@staff_group.command('list')
@click.option('--branch-id', type=ROW_ID, help='Only staff of this branch')
@with_appcontext
def list_staff_cli(branch_id):
    """List staff accounts."""
    members = staff_service.list_staff(branch_id)
    if not members:
        click.echo("No staff found.")
        return
    for member in members:
        status = "active" if member.is_active else "inactive"
        click.echo(f"{member.id:>4}  {member.username:<24} {member.role:<12} branch={member.branch_id:<4} {status}")


@staff_group.command('create')
@click.option('--branch-id', type=ROW_ID, prompt=True, help='Branch ID')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(role_values(PrincipalKind.STAFF)), default='Staff', show_default=True)
@with_appcontext
def create_staff_cli(branch_id, username, full_name, password, role):
    """Create a branch staff account."""
    try:
        member = staff_service.create_staff({
            "branch_id": branch_id,
            "username": username,
            "full_name": full_name,
            "password": password,
            "role": role,
        })
    except AppError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created staff: {member.username} (ID: {member.id}) in branch {member.branch_id}")


@click.group('api-keys')
def api_keys_group():
    """API key commands."""


@api_keys_group.command('create')
@click.option('--username', required=True, help='Owning management user')
@click.option('--name', required=True, help='Label for the key')
@click.option('--scope', 'scopes', multiple=True, required=True, type=click.Choice(scope_codes()))
@click.option('--expires-days', type=int, default=None, help='Days until expiry (omit for no expiry)')
@with_appcontext
def create_api_key_cli(username, name, scopes, expires_days):
    """Create an API key and print it once."""
    user = find_management_by_username(username)
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return
    try:
        api_key, plaintext = api_key_service.create_api_key(user.id, name, list(scopes), expires_days)
    except AppError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created API key {api_key.id} ({api_key.key_prefix}...) for {user.username}")
    click.echo(f"\n   {plaintext}\n")
    click.echo("WARN  Store this key now. It will not be shown again.")


@api_keys_group.command('list')
@click.option('--username', default=None, help='Only keys owned by this user')
@with_appcontext
def list_api_keys_cli(username):
    """List API keys (never the secrets)."""
    user_id = None
    if username:
        user = find_management_by_username(username)
        if not user:
            click.echo(f"FAIL User '{username}' not found")
            return
        user_id = user.id
    keys = api_key_service.list_api_keys(user_id)
    if not keys:
        click.echo("No API keys found.")
        return
    for key in keys:
        status = "active" if key.is_active else "revoked"
        click.echo(f"{key.id:>4}  {key.key_prefix}...  {key.name:<24} {','.join(key.scopes or [])}  {status}")


@api_keys_group.command('revoke')
@click.option('--id', 'key_id', type=ROW_ID, required=True, help='API key ID')
@with_appcontext
def revoke_api_key_cli(key_id):
    """Revoke an API key. The row is kept for audit."""
    try:
        api_key = api_key_service.revoke_api_key(key_id)
    except AppError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Revoked API key {api_key.id} ({api_key.key_prefix}...)")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    try:
        deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    except AppError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(staff_group)
    app.cli.add_command(api_keys_group)
    app.cli.add_command(maintenance_group)
