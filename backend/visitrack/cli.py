# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--admin-username admin] [--admin-password admin123]
#   Create all tables and a default administrator (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role, department and status.
# - python -m flask users create --username li --real-name "Li Lei" --role MANAGER --department "East"
#   Create a user (prompts for the password).
# - python -m flask users set-status li INACTIVE
#   Activate or deactivate an account.
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, UserStatus
from .permissions import Role
from .services import audit_service
from .services.auth_service import PasswordValidationError, exists_by_username, hash_password


def _create_account(*, username, password, real_name, role, department=None, email=None) -> User:
    user = User(
        username=username,
        password_hash=hash_password(password),
        real_name=real_name,
        role=role,
        department=department,
        email=email,
        status=UserStatus.ACTIVE,
    )
    db.session.add(user)
    db.session.commit()
    return user


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', show_default=True, help='Administrator username')
@click.option('--admin-password', default='admin123', show_default=True, help='Administrator password')
@with_appcontext
def init_system(admin_username, admin_password):
    """
    Create the schema and a default administrator.

    SECURITY: Change the administrator password immediately in production!
    """
    click.echo("START Initializing visitrack...")

    db.create_all()
    click.echo("PASS Tables created")

    if exists_by_username(admin_username):
        click.echo(f"WARN  User '{admin_username}' already exists, skipping...")
        return

    try:
        user = _create_account(
            username=admin_username,
            password=admin_password,
            real_name="System Administrator",
            role=Role.ADMIN,
        )
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed for '{admin_username}': {e}")

    click.echo(f"PASS Created administrator: {user.username} (ID: {user.id})")
    click.echo("\nSECURITY WARNING: change the administrator password immediately in production!")


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
@click.option('--username', prompt=True, help='Username')
@click.option('--real-name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([r.value for r in Role], case_sensitive=False), default='SALES', show_default=True)
@click.option('--department', default=None, help='Sales department (managers see this department)')
@click.option('--email', default=None, help='Email address')
@with_appcontext
def create_user_cli(username, real_name, password, role, department, email):
    """Create a user with any role."""
    if exists_by_username(username):
        raise click.ClickException(f"User '{username}' already exists")
    try:
        user = _create_account(
            username=username,
            password=password,
            real_name=real_name,
            role=Role(role.upper()),
            department=department,
            email=email,
        )
    except PasswordValidationError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role.value}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role, department and status."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<10} {'Department':<25} {'Active':<8} {'Last login'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        last_login = user.last_login_at.isoformat() if user.last_login_at else "-"
        click.echo(
            f"{user.id:<5} {user.username:<20} {user.role.value:<10} "
            f"{(user.department or '-'):<25} {active_str:<8} {last_login}"
        )

    click.echo("="*90 + "\n")


@users_group.command('set-status')
@click.argument('username')
@click.argument('status', type=click.Choice([s.value for s in UserStatus], case_sensitive=False))
@with_appcontext
def set_status_cli(username, status):
    """Activate or deactivate an account."""
    user = db.session.query(User).filter_by(username=username).first()
    if user is None:
        raise click.ClickException(f"User '{username}' not found")
    user.status = UserStatus(status.upper())
    db.session.commit()
    click.echo(f"PASS {user.username} is now {user.status.value}")


@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = audit_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
