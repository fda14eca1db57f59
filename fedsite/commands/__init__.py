"""CLI commands for fedsite."""

from .microsite import microsite_commands
from .token import token_commands


def register_commands(app):
    """Register all CLI command groups with the Flask app."""
    app.cli.add_command(microsite_commands)
    app.cli.add_command(token_commands)
