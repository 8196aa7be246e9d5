"""streamagent CLI entrypoint."""

from __future__ import annotations

import click

from streamagent import __version__


@click.group()
@click.version_option(version=__version__, prog_name="streamagent")
def main() -> None:
    """streamagent — streaming ReAct agent controller."""


from streamagent.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
