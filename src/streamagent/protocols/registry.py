"""ToolRegistry — the agent's view of configured MCP servers and their tools.

Only servers that are both enabled and connected contribute callable tools.
The registry is plain state: connecting clients and refreshing the server
list is the owner's job (see :class:`streamagent.sdk.session.AgentSession`).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, NamedTuple

from streamagent.protocols.mcp.models import MCPServerInfo

logger = logging.getLogger(__name__)


class ToolInfo(NamedTuple):
    """Name and description of one callable tool, for prompt building."""

    name: str
    description: str


class ToolRegistry:
    """Maintains the server list and answers tool lookups.

    Usage::

        registry = ToolRegistry()
        registry.set_servers([client.info() for client in clients])

        schemas = registry.available_tools()     # for chat_completion
        server = registry.find_tool_server("read_file")
    """

    def __init__(self, servers: list[MCPServerInfo] | None = None) -> None:
        self._servers: list[MCPServerInfo] = []
        self._last_updated: datetime | None = None
        if servers is not None:
            self.set_servers(servers)

    @property
    def servers(self) -> list[MCPServerInfo]:
        return list(self._servers)

    @property
    def last_updated(self) -> datetime | None:
        return self._last_updated

    def set_servers(self, servers: list[MCPServerInfo]) -> None:
        """Replace the whole server list."""
        self._servers = list(servers)
        self._last_updated = datetime.now(timezone.utc)
        logger.debug(
            "Tool registry updated: %d servers, %d callable",
            len(self._servers),
            len(self.callable_servers),
        )

    def update_server(self, server: MCPServerInfo) -> None:
        """Insert or replace one server record, matched by key."""
        others = [s for s in self._servers if s.server_key != server.server_key]
        self.set_servers([*others, server])

    @property
    def callable_servers(self) -> list[MCPServerInfo]:
        return [s for s in self._servers if s.callable]

    def tool_infos(self) -> list[ToolInfo]:
        """Every callable tool's name and description, in server order."""
        return [
            ToolInfo(tool.name, tool.description)
            for server in self.callable_servers
            for tool in server.tools
        ]

    def available_tools(self) -> list[dict[str, Any]]:
        """OpenAI function schemas for every callable tool."""
        return [tool.to_function_schema() for server in self.callable_servers for tool in server.tools]

    def find_tool_server(self, tool_name: str) -> MCPServerInfo | None:
        """The first callable server exposing *tool_name*, if any."""
        for server in self.callable_servers:
            if any(tool.name == tool_name for tool in server.tools):
                return server
        return None
