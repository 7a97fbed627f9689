# Overview: Flask CLI command groups for bootstrap and user administration.

# backend/roastery/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--shop "Main Street"]
#   Idempotent bootstrap: creates tables, a first shop and the default roastery owner.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--pending]
#   List users with role and active status.
# - python -m flask users create --username owner --password "Password123!" --role roasteryOwner
#   Create an active user (prompts if options are omitted).
# - python -m flask users approve --username barista1
#   Approve a self-registered account.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import DomainError
from .models import Shop, User
from .permissions import ROLE_ROASTERY_OWNER, USER_ROLES
from .services import auth_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--shop', 'shop_name', default='Main Shop', help='Name of the first shop')
@click.option('--location', default='Roastery', help='Location of the first shop')
@with_appcontext
def init_system(shop_name, location):
    """
    Initialize the roastery back-end.

    Creates:
    - All tables (when missing)
    - A first shop (if no shop exists)
    - User: owner / Password123! with role roasteryOwner (if no owner exists)

    SECURITY: Change the password immediately in production!
    """
    click.echo("START Initializing roastery system...")

    db.create_all()
    click.echo("PASS Tables ready")

    shop = db.session.query(Shop).first()
    if not shop:
        shop = Shop(name=shop_name, location=location, is_active=True)
        db.session.add(shop)
        db.session.commit()
        click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id})")
    else:
        click.echo(f"PASS Using existing shop: {shop.name} (ID: {shop.id})")

    owner = db.session.query(User).filter_by(role=ROLE_ROASTERY_OWNER).first()
    if owner:
        click.echo(f"WARN  Roastery owner '{owner.username}' already exists, skipping...")
    else:
        try:
            owner = auth_service.create_user("owner", "Password123!", ROLE_ROASTERY_OWNER)
            click.echo(f"PASS Created user: {owner.username} with role '{owner.role}'")
        except DomainError as e:
            db.session.rollback()
            click.echo(f"FAIL Failed to create owner: {e.message}")
            return

    click.echo("\nDONE Roastery system initialized")
    click.echo("   owner -> Password123! (CHANGE IN PRODUCTION!)")


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


@users_group.command('list')
@click.option('--pending', is_flag=True, help='Only accounts awaiting approval')
@with_appcontext
def list_users_cli(pending):
    users = auth_service.list_users(pending_only=pending)
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Username':<24} {'Role':<16} {'Active':<8} {'Pending'}")
    click.echo("="*70)
    for user in users:
        click.echo(
            f"{user.id:<5} {user.username:<24} {user.role:<16} "
            f"{'yes' if user.is_active else 'no':<8} {'yes' if user.is_pending_approval else 'no'}"
        )
    click.echo("="*70 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(USER_ROLES)), prompt=True, help='Role')
@click.option('--shop-id', type=int, default=None, help='Default shop ID')
@with_appcontext
def create_user_cli(username, password, role, shop_id):
    """Create an active user."""
    try:
        user = auth_service.create_user(username, password, role, default_shop_id=shop_id)
    except auth_service.PasswordValidationError as e:
        db.session.rollback()
        click.echo(f"FAIL Password validation failed: {e.message}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except DomainError as e:
        db.session.rollback()
        click.echo(f"FAIL Failed to create user: {e.message}")
        return

    click.echo(f"PASS Created user: {user.username} with role '{user.role}' (ID: {user.id})")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('approve')
@click.option('--username', prompt=True, help='Username')
@with_appcontext
def approve_user_cli(username):
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return
    try:
        auth_service.approve_user(user.id)
    except DomainError as e:
        db.session.rollback()
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Approved user: {user.username}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
