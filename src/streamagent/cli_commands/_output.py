"""Shared CLI output formatters."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from streamagent.core.interface.models import ConversationMessage  # noqa: TC001
from streamagent.core.parsing.partial_json import PartialJsonResult, summary_of
from streamagent.protocols.mcp.models import MCPToolDef  # noqa: TC001

console = Console()

_ROLE_STYLES = {"user": "green", "assistant": "cyan", "tool": "magenta"}


class RichNotifier:
    """Prints loop notifications to the console.

    Satisfies :class:`streamagent.core.react.notifier.Notifier`.
    """

    def __init__(self, target: Console | None = None) -> None:
        self._console = target or console

    def error(self, text: str) -> None:
        self._console.print(f"[red]Error:[/red] {text}")

    def warning(self, text: str) -> None:
        self._console.print(f"[yellow]Warning:[/yellow] {text}")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def print_conversation(messages: Sequence[ConversationMessage]) -> None:
    """Render the visible conversation, one panel per message."""
    for msg in messages:
        if msg.role == "assistant" and not msg.content and not msg.tool_calls:
            continue

        body = msg.content
        if msg.tool_calls:
            calls = "\n".join(f"→ {tc.name}({tc.function.arguments})" for tc in msg.tool_calls)
            body = f"{body}\n{calls}" if body else calls
        if msg.role == "tool":
            body = _truncate(body, 400)

        title = msg.role if msg.role != "tool" else f"tool: {msg.name}"
        if msg.pending_tool_calls:
            title += " (awaiting confirmation)"
        console.print(Panel(Text(body), title=title, title_align="left", border_style=_ROLE_STYLES[msg.role]))


def print_tools_table(tools: Sequence[MCPToolDef]) -> None:
    """Pretty-print discovered tools as a table."""
    table = Table(title="Discovered Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")

    for tool in tools:
        table.add_row(tool.name, _truncate(tool.description))

    console.print(table)


def print_parse_result(result: PartialJsonResult, *, as_json: bool = False) -> None:
    """Show a parse result; incomplete payloads are marked as still streaming."""
    payload = {
        "data": result.data,
        "is_valid": result.is_valid,
        "text_content": result.text_content,
    }
    if as_json:
        console.print_json(json.dumps(payload, ensure_ascii=False))
        return

    if result.text_content:
        console.print(result.text_content)
    console.print_json(json.dumps(result.data, ensure_ascii=False))
    summary = summary_of(result)
    if summary and summary != result.text_content:
        console.print(f"[bold]Summary:[/bold] {summary}")
    if not result.is_valid:
        console.print("[dim]… still receiving[/dim]")


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
