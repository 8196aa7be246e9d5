"""``streamagent parse`` — inspect a (possibly partial) model payload."""

from __future__ import annotations

from typing import TextIO

import click

from streamagent.cli_commands._output import print_parse_result
from streamagent.core.parsing.tags import META_TAG


@click.command("parse")
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--tag", default=META_TAG, show_default=True, help="Sentinel tag wrapping the JSON payload.")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON.")
def parse_cmd(source: TextIO, tag: str, as_json: bool) -> None:
    """Parse SOURCE (a file, or stdin) as mixed text and partial JSON."""
    from streamagent.core.parsing.partial_json import parse_partial_json

    print_parse_result(parse_partial_json(source.read(), tag=tag), as_json=as_json)
