"""Command-line helpers. For dev/test purposes only."""

import secrets

import click

from . import store
from .factory import create_web_app


@click.group()
def cli() -> None:
    """Manage the API users database."""


@cli.command('create-db')
def create_db() -> None:
    """Create all tables."""
    app = create_web_app()
    with app.app_context():
        store.create_all()
    click.echo('Created tables')


@cli.command('create-client')
@click.option('--client-id', prompt='Client ID')
@click.option('--name', prompt='Brief client name', default='')
@click.option('--password-grant/--no-password-grant', default=False,
              help='Trust the client with raw user credentials.')
def create_client(client_id: str, name: str, password_grant: bool) -> None:
    """Register a new OAuth client."""
    app = create_web_app()
    with app.app_context():
        store.create_all()
        secret = secrets.token_urlsafe(36)
        clients = store.ClientStore(store.util.current_session())
        clients.register(client_id, secret, password_grant=password_grant,
                         name=name)
    click.echo(f'Created client {client_id} with secret {secret}')


if __name__ == '__main__':
    cli()
