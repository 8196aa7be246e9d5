"""``streamagent tools`` — discover tools exposed by MCP servers."""

from __future__ import annotations

import asyncio

import click

from streamagent.cli_commands._output import console, print_tools_table


@click.group()
def tools() -> None:
    """Discover and inspect tools."""


@tools.command("discover")
@click.argument("server")
@click.option(
    "--transport",
    type=click.Choice(["stdio", "websocket"]),
    default="stdio",
    help="MCP server transport type.",
)
def discover(server: str, transport: str) -> None:
    """List the tools of an MCP server.

    SERVER is the command (for stdio) or URL (for websocket) of the MCP server.
    """
    from streamagent.protocols.mcp.client import MCPClient
    from streamagent.protocols.mcp.models import MCPServerRef, MCPToolDef

    if transport == "stdio":
        ref = MCPServerRef(name="cli-discover", transport="stdio", command=server)
    else:
        ref = MCPServerRef(name="cli-discover", transport="websocket", url=server)

    async def _discover() -> list[MCPToolDef]:
        async with MCPClient(ref) as client:
            return await client.discover_tools()

    try:
        found = asyncio.run(_discover())
    except Exception as exc:
        console.print(f"[red]Discovery error:[/red] {exc}")
        raise SystemExit(1) from exc

    if not found:
        console.print("[yellow]No tools discovered.[/yellow]")
        return

    print_tools_table(found)
