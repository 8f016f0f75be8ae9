# Overview: Flask CLI command groups for bootstrap, user provisioning, and token minting.

# backend/oem_api/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables directly (dev/test; production uses `flask db upgrade`).
#
# User provisioning:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --email ops@example.com --role admin [--id <identity subject>] [--phone +9198...]
#   Create a user. Pass --id to match the hosted identity provider's subject id.
# - python -m flask users deactivate --email ops@example.com
# - python -m flask users activate --email ops@example.com
#
# Tokens:
# - python -m flask tokens issue --email ops@example.com
#   Mint a self-issued API token for an active user.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import AppError
from .extensions import db
from .models import User
from .models.users import ROLES
from .services import identity_service


# =============================================================================
# SYSTEM
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


# =============================================================================
# USERS
# =============================================================================

@click.group('users')
def users_group():
    """User provisioning commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = identity_service.list_users()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 100)
    click.echo(f"{'ID':<38} {'Email':<32} {'Role':<10} {'Active':<8} {'Phone'}")
    click.echo("=" * 100)
    for user in users:
        click.echo(
            f"{user.id:<38} {user.email:<32} {user.role:<10} "
            f"{'yes' if user.is_active else 'no':<8} {user.phone or '-'}"
        )


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--role', type=click.Choice(ROLES), default='user', show_default=True)
@click.option('--name', default=None)
@click.option('--phone', default=None, help='WhatsApp number in E.164 form')
@click.option('--company', default=None)
@click.option('--id', 'user_id', default=None, help='Hosted identity subject id')
@with_appcontext
def create_user(email, role, name, phone, company, user_id):
    """Create a user."""
    try:
        user = identity_service.create_user(
            email=email, role=role, name=name, phone=phone, company=company, user_id=user_id,
        )
    except AppError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user: {user.email} (ID: {user.id}, role: {user.role})")


def _set_active(email: str, active: bool) -> User:
    try:
        return identity_service.set_user_active(email, active)
    except AppError as e:
        raise click.ClickException(e.message)


@users_group.command('activate')
@click.option('--email', required=True)
@with_appcontext
def activate_user(email):
    user = _set_active(email, True)
    click.echo(f"PASS Activated {user.email}")


@users_group.command('deactivate')
@click.option('--email', required=True)
@with_appcontext
def deactivate_user(email):
    """Deactivate a user; existing tokens stop working immediately."""
    user = _set_active(email, False)
    click.echo(f"PASS Deactivated {user.email}")


# =============================================================================
# TOKENS
# =============================================================================

@click.group('tokens')
def tokens_group():
    """API token commands."""


@tokens_group.command('issue')
@click.option('--email', required=True)
@with_appcontext
def issue_token(email):
    """Mint a self-issued token for an active user."""
    settings = current_app.config["SETTINGS"]
    try:
        user = identity_service.get_user_by_email(email)
        identity_service.load_active_user(user.id)
    except AppError as e:
        raise click.ClickException(e.message)
    click.echo(identity_service.issue_token(user, settings.JWT_SECRET, settings.jwt_expires_delta))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(tokens_group)
