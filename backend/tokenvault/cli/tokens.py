"""Flask CLI commands for refresh-token maintenance."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from tokenvault.services._shared.errors import InvalidReasonError, StorageError
from tokenvault.services.tokens import reasons
from tokenvault.services.wiring import get_lifecycle_manager

LOGGER = logging.getLogger(__name__)


@click.group("tokens")
def tokens_cli() -> None:
    """Refresh-token maintenance commands."""


@tokens_cli.command("sweep")
@with_appcontext
def sweep_command() -> None:
    """Delete refresh tokens past their expiry, revoked or not."""
    try:
        count = get_lifecycle_manager().sweep_expired()
    except StorageError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Deleted {count} expired refresh token(s).")


@tokens_cli.command("revoke-all")
@click.argument("subject_id")
@click.option(
    "--reason",
    default=reasons.REVOKED_BY_USER,
    show_default=True,
    help="Revocation reason recorded on each token.",
)
@with_appcontext
def revoke_all_command(subject_id: str, reason: str) -> None:
    """Revoke every active refresh token of SUBJECT_ID."""
    try:
        count = get_lifecycle_manager().revoke_all_for_subject(subject_id, reason)
    except InvalidReasonError as exc:
        raise click.BadParameter(str(exc), param_hint="--reason") from exc
    except StorageError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Revoked {count} refresh token(s) for subject {subject_id}.")
