# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/salesflow/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-username admin --admin-email admin@salesflow.local --admin-password "Password123!"]
#   Idempotent bootstrap: creates tables, document sequences and (optionally) the first admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--role customer]
#   List users with role and active status.
# - python -m flask users create --username alice --email alice@example.com --password "Password123!" --role customer
#   Create a user (prompts if options are omitted).
#
# Record store inspection:
# - python -m flask collections show quotes [--limit 20]
#   Print a collection snapshot ({records, nextId}) as JSON.

import json

import click
from flask.cli import with_appcontext

from .errors import SalesFlowError
from .extensions import db
from .models import User
from .models.auth import ROLE_ADMIN, ROLE_CUSTOMER, VALID_ROLES
from .services.auth_service import create_user, PasswordValidationError
from .services import collection_service, document_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default=None, help='Create this admin user if missing')
@click.option('--admin-email', default=None, help='Email for the admin user')
@click.option('--admin-password', default=None, help='Password for the admin user')
@with_appcontext
def init_system(admin_username, admin_email, admin_password):
    """
    Initialize the portal database.

    Creates:
    - All tables (no-op for existing ones)
    - One document sequence per collection
    - An admin user, when --admin-username and --admin-password are given
    """
    click.echo("START Initializing SalesFlow...")

    db.create_all()
    click.echo("PASS Tables ready")

    created = document_service.ensure_sequences()
    click.echo(f"PASS Document sequences ready ({created} created)")

    if admin_username and admin_password:
        existing = db.session.query(User).filter_by(username=admin_username).first()
        if existing:
            click.echo(f"SKIP Admin '{admin_username}' already exists")
        else:
            try:
                create_user(
                    username=admin_username,
                    email=admin_email or f"{admin_username}@salesflow.local",
                    password=admin_password,
                    role=ROLE_ADMIN,
                )
                click.echo(f"PASS Created admin: {admin_username}")
            except PasswordValidationError as e:
                click.echo(f"FAIL Password validation failed: {str(e)}")
                click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")

    click.echo("PASS Initialization complete")


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
    document_service.ensure_sequences()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to create an admin.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), default=ROLE_CUSTOMER, show_default=True, help='Role')
@click.option('--name', default=None, help='Display name')
@with_appcontext
def create_user_cli(username, email, password, role, name):
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
        user = create_user(username=username, email=email, password=password, role=role, name=name)
        click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}' (ID: {user.id})")
        click.echo("SECURITY Password securely hashed with bcrypt")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except SalesFlowError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")


@users_group.command('list')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), default=None, help='Filter by role')
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

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<35} {'Role':<12} {'Active'}")
    click.echo("="*90)
    for user in users:
        click.echo(
            f"{user.id:<5} {user.username:<20} {(user.email or ''):<35} {user.role:<12} "
            f"{'Yes' if user.is_active else 'No'}"
        )
    click.echo("="*90 + "\n")


@click.group('collections')
def collections_group():
    """Record store inspection commands."""


@collections_group.command('show')
@click.argument('name', type=click.Choice(sorted(collection_service.COLLECTIONS)))
@click.option('--limit', type=int, default=None, help='Only print the last N records')
@with_appcontext
def show_collection(name, limit):
    """Print a collection snapshot as JSON."""
    snapshot = collection_service.read_collection(name)
    if limit is not None and limit >= 0:
        snapshot["records"] = snapshot["records"][-limit:] if limit else []
    click.echo(json.dumps(snapshot, indent=2, default=str))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(collections_group)
