# Overview: Flask CLI command groups for bootstrap, inspection, scheduled jobs and maintenance.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init --email admin@stockroom.local --password "Passw0rd!"
#   Create all tables and an initial admin if no admin exists yet.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --name "Jane" --email jane@example.com --password "Passw0rd!" --role admin
#   Create a user (prompts if options are omitted).
#
# Scheduled jobs:
# - python -m flask alerts check-low-stock
#   Mail the low-stock list to every subscribed admin. Point the host's daily
#   scheduler (cron, systemd timer) at this command.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired or revoked sessions older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .principal import ROLE_ADMIN, ROLES
from .services.auth_service import create_user
from .services.low_stock_service import send_low_stock_alerts
from .services.session_service import cleanup_expired_sessions
from .validation import ValidationError


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--name', default='Administrator', show_default=True, help='Initial admin name')
@click.option('--email', default='admin@stockroom.local', show_default=True, help='Initial admin email')
@click.option('--password', default='Passw0rd!', show_default=True, help='Initial admin password')
@with_appcontext
def init_system(name, email, password):
    """
    Create tables and an initial administrator.

    Idempotent: an existing admin account is left untouched.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing Stockroom...")

    db.create_all()
    click.echo("PASS Database tables ready")

    existing = db.session.query(User).filter_by(role=ROLE_ADMIN).first()
    if existing:
        click.echo(f"WARN  Admin '{existing.email}' already exists, skipping...")
        return

    try:
        user = create_user(name, email, password, role=ROLE_ADMIN)
    except ValidationError as e:
        db.session.rollback()
        raise click.ClickException(f"Failed to create admin: {e}")

    click.echo(f"PASS Created admin: {user.email}")
    click.echo("DONE Stockroom initialized")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(name, email, password, role):
    """
    Create a new user.

    Password must be at least 8 characters with one digit and one of !@#$%^&*.
    """
    try:
        user = create_user(name, email, password, role=role)
    except ValidationError as e:
        db.session.rollback()
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<35} {'Active':<8} {'Role'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<20} {user.email:<35} {active_str:<8} {user.role}")


@click.group('alerts')
def alerts_group():
    """Scheduled alert jobs."""


@alerts_group.command('check-low-stock')
@with_appcontext
def check_low_stock_cli():
    """Send the daily low-stock alert to every subscribed admin."""
    summary = send_low_stock_alerts()
    click.echo(summary["message"])
    click.echo(
        f"Low stock items: {summary['low_stock_count']}, "
        f"sent: {summary['sent_count']}, failed: {summary['failed_count']}"
    )
    if summary["failed_count"] and not summary["sent_count"]:
        raise click.ClickException("Every low-stock alert delivery failed")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired or revoked sessions older than the retention window."""
    deleted = cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} sessions older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(alerts_group)
    app.cli.add_command(maintenance_group)
