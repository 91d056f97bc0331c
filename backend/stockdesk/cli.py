# Overview: Flask CLI command groups for bootstrap, users, notifications, and maintenance.

# backend/stockdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email admin@stockdesk.local]
#   Create tables if missing and an admin user if none exists.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --email ana@example.com --name "Ana" --password "Password123!" --role user
# - python -m flask users suspend ana@example.com --reason "Unpaid subscription"
# - python -m flask users unsuspend ana@example.com
#
# Notifications:
# - python -m flask notifications check
#   Run the low-stock / overdue-order checks once.
# - python -m flask notifications watch [--interval 30]
#   Run the checks every N minutes until interrupted.
#
# Maintenance:
# - python -m flask maintenance purge-recycle-bin [--retention-days 30]
#   Permanently delete recycle bin rows older than the retention window.
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired/revoked session rows.

import time

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services.auth_service import (
    create_user,
    suspend_user,
    unsuspend_user,
    get_user_by_email,
    PasswordValidationError,
)
from .services import maintenance_service
from .services import notification_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default='admin@stockdesk.local', show_default=True)
@click.option('--admin-password', default='Password123!', show_default=True)
@with_appcontext
def init_system(admin_email, admin_password):
    """
    Create missing tables and a first admin user.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing StockDesk...")
    db.create_all()
    click.echo("PASS Tables ready")

    admin = db.session.query(User).filter_by(role="admin").first()
    if admin:
        click.echo(f"PASS Using existing admin: {admin.email}")
        return

    try:
        admin = create_user(email=admin_email, password=admin_password, name="Administrator", role="admin")
    except (ValueError, PasswordValidationError) as e:
        click.echo(f"FAIL Could not create admin: {e}")
        return
    click.echo(f"PASS Created admin user: {admin.email}")


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
@click.option('--name', default=None, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'user']), default='user', show_default=True)
@with_appcontext
def create_user_cli(email, name, password, role):
    """
    Create a new user.

    Password must have 8+ characters with uppercase, lowercase, a digit and
    a special character.
    """
    try:
        user = create_user(email=email, password=password, name=name, role=role)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except ValueError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        return

    click.echo(f"PASS Created user: {user.email} with role '{user.role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and suspension status."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Email':<35} {'Role':<8} {'Active':<8} {'Suspended'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        suspended_str = f"Yes ({user.suspended_reason})" if user.is_suspended else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {user.role:<8} {active_str:<8} {suspended_str}")

    click.echo("="*90 + "\n")


@users_group.command('suspend')
@click.argument('email')
@click.option('--reason', default=None, help='Shown to the user on their next request')
@with_appcontext
def suspend_user_cli(email, reason):
    """Suspend a user and revoke their sessions."""
    user = get_user_by_email(email)
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return
    suspend_user(user.id, reason)
    click.echo(f"PASS Suspended {user.email}; active sessions revoked")


@users_group.command('unsuspend')
@click.argument('email')
@with_appcontext
def unsuspend_user_cli(email):
    user = get_user_by_email(email)
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return
    unsuspend_user(user.id)
    click.echo(f"PASS Lifted suspension for {user.email}")


@click.group('notifications')
def notifications_group():
    """Automated notification checks."""


def _echo_check_result(result: dict) -> None:
    click.echo(
        f"PASS Archived {result['archived_stock']} stock / {result['archived_orders']} order notifications; "
        f"created {result['created_stock']} stock / {result['created_orders']} order notifications"
    )


@notifications_group.command('check')
@with_appcontext
def check_notifications_cli():
    """Run the low-stock and overdue-order checks once."""
    _echo_check_result(notification_service.run_automated_checks())


@notifications_group.command('watch')
@click.option('--interval', type=int, default=None, help='Minutes between runs (default: NOTIFICATION_CHECK_INTERVAL_MINUTES)')
@with_appcontext
def watch_notifications_cli(interval):
    """
    Run the checks now and then every --interval minutes until interrupted.

    A failed run is logged and the next run still happens.
    """
    minutes = interval or current_app.config["NOTIFICATION_CHECK_INTERVAL_MINUTES"]
    click.echo(f"START Notification checks every {minutes} minutes (Ctrl+C to stop)")
    try:
        while True:
            try:
                _echo_check_result(notification_service.run_automated_checks())
            except Exception:
                db.session.rollback()
                current_app.logger.exception("Automated notification checks failed")
            finally:
                db.session.remove()
            time.sleep(minutes * 60)
    except KeyboardInterrupt:
        click.echo("STOP Notification watcher stopped")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('purge-recycle-bin')
@click.option('--retention-days', type=int, default=None, help='Default: RECYCLE_BIN_RETENTION_DAYS')
@with_appcontext
def purge_recycle_bin_cli(retention_days):
    """Permanently delete recycle bin records past the retention window."""
    removed = maintenance_service.purge_recycle_bin(retention_days=retention_days)
    if not removed:
        click.echo("Nothing to purge.")
        return
    for table_type, count in removed.items():
        click.echo(f"Deleted {count} {table_type}")


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    deleted = maintenance_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} expired or revoked sessions older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(notifications_group)
    app.cli.add_command(maintenance_group)
