"""Flask CLI commands for schema bootstrap and identity provisioning."""

from __future__ import annotations

import click
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError

from tokenvault.core.extensions import db
from tokenvault.models import User


@click.command("init-db")
@with_appcontext
def init_db_command() -> None:
    """Create the ``users`` and ``refresh_tokens`` tables when missing."""
    db.create_all()
    click.echo("Database schema is up to date.")


@click.command("create-user")
@click.option("--email", required=True)
@click.option("--name", required=True)
@click.password_option()
@with_appcontext
def create_user_command(email: str, name: str, password: str) -> None:
    """Provision an active identity that can log in."""
    user = User(email=email, name=name)
    try:
        user.password = password
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--password") from exc
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise click.ClickException(f"A user with email {user.email} already exists.") from exc
    click.echo(f"Created user {user.id} <{user.email}>.")
