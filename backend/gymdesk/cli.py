# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/gymdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default admin account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Account inspection/bootstrap:
# - python -m flask accounts list [--role member]
#   List accounts with their role-prefixed ids.
# - python -m flask accounts create --first-name Asha --last-name Rao --email asha@gym.local --password "secret1" --role admin
#   Create an account (prompts if options are omitted).
#
# Maintenance (safe to run from cron):
# - python -m flask maintenance refresh-overdue
#   Pending bills past their due date become Overdue.
# - python -m flask maintenance refresh-statuses
#   Recompute member Active/Expired status and expire finished packages.
# - python -m flask maintenance reconcile-dues
#   Reset every member's dues to the sum of their unpaid bills.
# - python -m flask maintenance cleanup-sessions
#   Delete expired or revoked sessions older than 30 days.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import account_service, billing_service, reconciliation_service, session_service
from .services.account_service import DuplicateEmailError, PasswordValidationError, VALID_ROLES
from .validation import ValidationError


DEFAULT_ADMIN_EMAIL = "admin@gymdesk.local"
DEFAULT_ADMIN_PASSWORD = "admin123"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default=DEFAULT_ADMIN_EMAIL, show_default=True, help='Email for the default admin')
@click.option('--admin-password', default=DEFAULT_ADMIN_PASSWORD, help='Password for the default admin')
@with_appcontext
def init_system(admin_email, admin_password):
    """
    Initialize GymDesk: tables and a default admin account.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing GymDesk...")

    db.create_all()
    click.echo("PASS Tables ready")

    existing = account_service.get_account_by_email(admin_email)
    if existing:
        click.echo(f"PASS Using existing admin: {existing.email} ({existing.account_id})")
    else:
        admin = account_service.create_account(
            first_name="System",
            last_name="Admin",
            email=admin_email,
            role=account_service.ROLE_ADMIN,
            password=admin_password,
        )
        click.echo(f"PASS Created admin: {admin.email} ({admin.account_id})")
        click.echo("SECURITY Password securely hashed with bcrypt")

    click.echo("DONE GymDesk initialized.")


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


@click.group('accounts')
def accounts_group():
    """Account inspection and bootstrap commands."""


@accounts_group.command('create')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', prompt=True, help='Last name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), prompt=True, help='Role')
@with_appcontext
def create_account_cli(first_name, last_name, email, password, role):
    """Create a new account. Password must be at least 6 characters."""
    try:
        account = account_service.create_account(
            first_name=first_name,
            last_name=last_name,
            email=email,
            role=role,
            password=password,
        )
        click.echo(f"PASS Created account: {account.email} ({account.account_id}) with role '{role}'")
        click.echo("SECURITY Password securely hashed with bcrypt")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
    except DuplicateEmailError as e:
        click.echo(f"FAIL {str(e)}")
    except ValidationError as e:
        click.echo(f"FAIL Invalid input: {str(e)}")


@accounts_group.command('list')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), help='Filter by role')
@with_appcontext
def list_accounts_cli(role):
    """List all accounts."""
    accounts = account_service.list_accounts(role=role)

    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Account ID':<12} {'Name':<28} {'Email':<34} {'Role'}")
    click.echo("="*90)

    for a in accounts:
        name = f"{a.first_name} {a.last_name}"
        click.echo(f"{a.id:<5} {a.account_id:<12} {name:<28} {a.email:<34} {a.role}")

    click.echo("="*90 + "\n")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('refresh-overdue')
@with_appcontext
def refresh_overdue_cli():
    """Flip Pending bills past their due date to Overdue."""
    changed = billing_service.refresh_overdue_bills()
    click.echo(f"Marked {changed} bills Overdue.")


@maintenance_group.command('refresh-statuses')
@with_appcontext
def refresh_statuses_cli():
    """Recompute member statuses and expire finished packages."""
    members = reconciliation_service.refresh_member_statuses()
    packages = reconciliation_service.refresh_package_statuses()
    click.echo(f"Updated {members} member statuses; expired {packages} packages.")


@maintenance_group.command('reconcile-dues')
@with_appcontext
def reconcile_dues_cli():
    """Reset each member's dues to the sum of their unpaid bills."""
    corrections = reconciliation_service.reconcile_member_dues()
    if not corrections:
        click.echo("All member dues match their unpaid bills.")
        return
    for c in corrections:
        click.echo(f"Member {c['member_id']}: {c['before_cents']} -> {c['after_cents']}")
    click.echo(f"Corrected {len(corrections)} members.")


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired or revoked sessions older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} stale sessions.")


@maintenance_group.command('run-all')
@with_appcontext
def run_all_cli():
    """Every maintenance pass, in order."""
    result = reconciliation_service.run_all()
    for key, value in result.items():
        click.echo(f"{key}: {value}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(accounts_group)
    app.cli.add_command(maintenance_group)
