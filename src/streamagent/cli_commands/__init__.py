"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from streamagent.cli_commands.chat import chat
    from streamagent.cli_commands.parse import parse_cmd
    from streamagent.cli_commands.tools import tools

    cli.add_command(chat)
    cli.add_command(tools)
    cli.add_command(parse_cmd)
