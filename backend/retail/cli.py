# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/retail/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-password "Password123!"]
#   Create all tables and a default admin user (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
#   List all users with roles and active status.
# - python -m flask users create --username bob --email bob@example.com --password "Password123!" --role sales
#   Create a user (prompts if options are omitted).
# - python -m flask users set-role bob manager
#   Change a user's role.
#
# Permissions:
# - python -m flask perms list [--role manager]
#   Show the role policy table.
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from datetime import timedelta
from flask.cli import with_appcontext

from .extensions import db
from .models import User, SecurityEvent
from .permissions import ROLES, ROLE_PERMISSIONS, get_permission_definition
from .services.auth_service import create_user, PasswordValidationError
from .validation import ConflictError, ValidationError
from .time_utils import utcnow


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', help='Default admin username')
@click.option('--admin-email', default='admin@retail.local', help='Default admin email')
@click.option('--admin-password', default='Password123!', help='Default admin password')
@with_appcontext
def init_system(admin_username, admin_email, admin_password):
    """
    Create the schema and a default admin account.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing retail backend...")
    db.create_all()
    click.echo("PASS Tables created")

    if db.session.query(User).filter_by(role="admin").first():
        click.echo("PASS Admin user already exists")
        return

    try:
        create_user(username=admin_username, email=admin_email, password=admin_password, role="admin")
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        click.echo(f"FAIL Could not create admin user: {e}")
        return
    click.echo(f"PASS Created admin user: {admin_username} ({admin_email})")


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
    click.echo("PASS Database reset complete. Run 'python -m flask system init' to create the admin user.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users_cli():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for u in users:
        status = "active" if u.is_active else "inactive"
        click.echo(f"{u.id:>4}  {u.username:<20} {u.email:<30} {u.role:<8} {status}")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, role):
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
        create_user(username=username, email=email, password=password, role=role)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        return

    click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")


@users_group.command('set-role')
@click.argument('username')
@click.argument('role', type=click.Choice(list(ROLES)))
@with_appcontext
def set_role_cli(username, role):
    """Change a user's role (no protected/last-admin checks: operator tool)."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return
    old_role = user.role
    user.role = role
    db.session.commit()
    click.echo(f"PASS {username}: {old_role} -> {role}")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', type=click.Choice(list(ROLES)), help='Only show one role')
@with_appcontext
def list_perms_cli(role):
    for role_name in ([role] if role else ROLES):
        click.echo(f"[{role_name}]")
        for code in sorted(ROLE_PERMISSIONS[role_name]):
            definition = get_permission_definition(code)
            click.echo(f"  {code:<20} {definition['name']}")


@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events(retention_days):
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(SecurityEvent.occurred_at < cutoff).delete()
    db.session.commit()
    click.echo(f"PASS Deleted {deleted} security events older than {retention_days} days")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(maintenance_group)
