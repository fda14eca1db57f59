"""Development bearer tokens."""

import click
from flask.cli import with_appcontext

from fedsite.auth import issue_token


@click.group('token')
def token_commands():
    """Bearer token commands."""
    pass


@token_commands.command('issue')
@click.option('--user-id', required=True, help='Account id as known to the Auth Provider')
@click.option('--role', default='club', show_default=True,
              type=click.Choice(['club', 'state_committee', 'partner', 'federation', 'admin']))
@click.option('--email', help='Account email, used as the default contact address')
@with_appcontext
def issue(user_id, role, email):
    """Mint a signed token for local testing.

    Example:
        flask token issue --user-id 42 --role club --email owner@club.mx
    """
    click.echo(issue_token(user_id, role, email))
