# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "simlok:create_app" (PowerShell: $env:FLASK_APP="simlok:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and one account per workflow role.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--role VENDOR]
#   List all users with role and active status.
# - python -m flask users create --email admin@simlok.local --officer-name "Admin" --password "Password123!" --role SUPER_ADMIN
#   Create a user (prompts if options are omitted).
#
# Permission inspection:
# - python -m flask perms list [--role APPROVER] [--category WORKFLOW]
#   List permissions (optionally filtered by role or category).
# - python -m flask perms check approver@simlok.local FINALIZE_SUBMISSION
#   Check whether a user has a permission.
#
# Permit numbering:
# - python -m flask sequences show
#   Show per-year counters and the next number for the current year.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --days 30
#   Delete expired/revoked sessions older than the window.
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, USER_ROLES
from .permissions import (
    PERMISSION_DEFINITIONS,
    get_permission_definition,
    get_permissions_by_category,
    get_role_permissions,
    get_roles_with_permission,
    validate_permission_code,
)
from .services.auth_service import create_user, PasswordValidationError, UserExistsError
from .services import maintenance_service
from .services import permission_service
from .services import sequence_service
from .services import session_service


# One account per workflow role; SECURITY: change these passwords in production
DEFAULT_USERS = [
    ("superadmin@simlok.local", "Super Admin", "SUPER_ADMIN"),
    ("admin@simlok.local", "Admin", "ADMIN"),
    ("reviewer@simlok.local", "Reviewer", "REVIEWER"),
    ("approver@simlok.local", "Approver", "APPROVER"),
    ("verifier@simlok.local", "Verifier", "VERIFIER"),
    ("vendor@simlok.local", "Vendor Officer", "VENDOR"),
]

DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize SIMLOK: tables plus a default account for every role.

    All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing SIMLOK...")

    db.create_all()
    click.echo("PASS Tables ready")

    click.echo("\nUSERS Creating default users...")
    for email, officer_name, role in DEFAULT_USERS:
        try:
            create_user(
                email=email,
                password=DEFAULT_PASSWORD,
                officer_name=officer_name,
                role=role,
                vendor_name="PT Vendor Contoh" if role == "VENDOR" else None,
            )
            click.echo(f"PASS Created user: {email} with role '{role}'")
        except UserExistsError:
            click.echo(f"WARN  User '{email}' already exists, skipping...")
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed for '{email}': {str(e)}")

    click.echo("\n" + "="*60)
    click.echo("DONE SIMLOK Initialized Successfully!")
    click.echo("="*60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for email, _, role in DEFAULT_USERS:
        click.echo(f"   {role:<12} -> {email:<26} / {DEFAULT_PASSWORD}")
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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--officer-name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(USER_ROLES), prompt=True, help='Role')
@click.option('--vendor-name', default=None, help='Company name (vendors)')
@with_appcontext
def create_user_cli(email, officer_name, password, role, vendor_name):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(
            email=email,
            password=password,
            officer_name=officer_name,
            role=role,
            vendor_name=vendor_name,
        )
        click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{user.role}'")
        click.echo("SECURITY Password securely hashed with bcrypt")

    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except ValueError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@click.option('--role', type=click.Choice(USER_ROLES), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their roles."""
    query = db.session.query(User)

    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Email':<32} {'Name':<25} {'Role':<12} {'Active'}")
    click.echo("="*100)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<32} {user.officer_name[:24]:<25} {user.role:<12} {active_str}")

    click.echo("="*100 + "\n")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', type=click.Choice(USER_ROLES), help='Filter by role')
@click.option('--category', help='Filter by category')
def list_permissions_cli(role, category):
    """List all permissions, optionally filtered by role or category."""
    if role:
        perms = [get_permission_definition(code) for code in sorted(get_role_permissions(role))]
        title = f"Permissions for role: {role}"
    elif category:
        perms = [get_permission_definition(p[0]) for p in get_permissions_by_category(category.upper())]
        title = f"Permissions in category: {category.upper()}"
    else:
        perms = [get_permission_definition(p[0]) for p in PERMISSION_DEFINITIONS]
        title = "All permissions"

    click.echo(f"\n{'='*80}")
    click.echo(title)
    click.echo(f"{'='*80}\n")

    click.echo(f"{'Code':<30} {'Name':<35} {'Category'}")
    click.echo("-"*80)

    for perm in perms:
        click.echo(f"{perm['code']:<30} {perm['name']:<35} {perm['category']}")

    click.echo(f"\n Total: {len(perms)} permissions\n")


@perms_group.command('check')
@click.argument('email')
@click.argument('permission_code')
@with_appcontext
def check_permission_cli(email, permission_code):
    """Check whether a user has a permission."""
    code = permission_code.upper()
    if not validate_permission_code(code):
        click.echo(f"FAIL Unknown permission: {code}")
        return

    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return

    if permission_service.user_has_permission(user, code):
        click.echo(f"PASS {user.email} ({user.role}) HAS {code}")
    else:
        click.echo(f"DENY {user.email} ({user.role}) does NOT have {code}")
        click.echo(f"     Granted to: {', '.join(get_roles_with_permission(code)) or 'no role'}")


@click.group('sequences')
def sequences_group():
    """Permit number sequence commands."""


@sequences_group.command('show')
@with_appcontext
def show_sequences():
    """Show per-year permit counters."""
    sequences = sequence_service.list_sequences()

    if not sequences:
        click.echo("No permit numbers allocated yet.")
    else:
        click.echo(f"{'Year':<8} {'Last':<8} {'Updated'}")
        click.echo("-"*50)
        for seq in sequences:
            click.echo(f"{seq.year:<8} {seq.last_number:<8} {seq.updated_at}")

    click.echo(f"\nNext number: {sequence_service.preview_next_simlok_number()}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(days):
    """Delete expired and revoked sessions older than --days."""
    deleted = session_service.cleanup_expired_sessions(days=days)
    click.echo(f"Deleted {deleted} sessions older than {days} days.")


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(sequences_group)
    app.cli.add_command(maintenance_group)
