"""MCPClient — one live connection to an MCP tool server.

Implements the initialize handshake, tool discovery (``tools/list``) and
execution (``tools/call``) over an :class:`MCPTransport`.
"""

from __future__ import annotations

import logging
from typing import Any, cast

from streamagent.protocols.errors import ConnectionError, ToolExecutionError, ToolNotFoundError
from streamagent.protocols.mcp.models import (
    ConnectionStatus,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    MCPServerInfo,
    MCPServerRef,
    MCPToolDef,
)
from streamagent.protocols.mcp.transport import MCPTransport, StdioTransport, WebSocketTransport

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"


class MCPClient:
    """Async context manager that connects to an MCP server.

    Usage::

        ref = MCPServerRef(name="fs", command="npx @mcp/filesystem")
        async with MCPClient(ref) as client:
            tools = await client.discover_tools()
            result = await client.execute_tool("read_file", {"path": "/tmp/x"})
    """

    def __init__(self, server_ref: MCPServerRef, transport: MCPTransport | None = None) -> None:
        self._ref = server_ref
        self._transport = transport
        self._tools: dict[str, MCPToolDef] = {}
        self._next_id = 1
        self._status = ConnectionStatus.DISCONNECTED

    async def __aenter__(self) -> MCPClient:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    @property
    def ref(self) -> MCPServerRef:
        return self._ref

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def tools(self) -> list[MCPToolDef]:
        return list(self._tools.values())

    def info(self) -> MCPServerInfo:
        """Registry record for this server as of now."""
        return MCPServerInfo.from_ref(self._ref, status=self._status, tools=self.tools)

    async def connect(self) -> None:
        """Open the transport and perform the initialize handshake."""
        if self._transport is None:
            self._transport = self._create_transport()
        self._status = ConnectionStatus.CONNECTING
        try:
            await self._transport.connect()
            await self._handshake()
        except Exception as exc:
            self._status = ConnectionStatus.ERROR
            raise ConnectionError(f"{self._ref.name}: {exc}") from exc
        self._status = ConnectionStatus.CONNECTED

    async def close(self) -> None:
        if self._transport is not None:
            await self._transport.close()
            self._transport = None
        self._status = ConnectionStatus.DISCONNECTED

    async def discover_tools(self) -> list[MCPToolDef]:
        """Send ``tools/list`` and cache the server's tool definitions."""
        response = await self._send_request("tools/list")
        raw_tools = (
            cast("list[dict[str, Any]]", response.result.get("tools", []))
            if response.result
            else []
        )
        self._tools = {}
        for raw in raw_tools:
            tool_def = MCPToolDef.model_validate(raw)
            self._tools[tool_def.name] = tool_def
        logger.debug("Discovered %d tools on %s", len(self._tools), self._ref.name)
        return self.tools

    async def execute_tool(
        self,
        name: str,
        arguments: dict[str, Any],
        *,
        resource_id: str | None = None,
        task_id: str | None = None,
    ) -> dict[str, Any]:
        """Send ``tools/call`` and return the server's result object.

        The optional resource/task focus travels in the request ``_meta``.
        """
        if self._tools and name not in self._tools:
            raise ToolNotFoundError(name)

        params: dict[str, Any] = {"name": name, "arguments": arguments}
        meta = {k: v for k, v in (("resourceId", resource_id), ("taskId", task_id)) if v}
        if meta:
            params["_meta"] = meta

        response = await self._send_request("tools/call", params=params)
        if response.error is not None:
            raise ToolExecutionError(name, response.error.message)

        result = response.result or {}
        return result

    @staticmethod
    def text_of(result: dict[str, Any]) -> str:
        """Join the text parts of a ``tools/call`` result."""
        content = cast("list[dict[str, Any]]", result.get("content", []))
        parts = [str(item.get("text", "")) for item in content if item.get("type") == "text"]
        return "\n".join(parts)

    def _create_transport(self) -> MCPTransport:
        if self._ref.transport == "stdio":
            if not self._ref.command:
                msg = "MCPServerRef with stdio transport must specify 'command'"
                raise ValueError(msg)
            return StdioTransport(command=self._ref.command, env=self._ref.env or None)
        if not self._ref.url:
            msg = "MCPServerRef with websocket transport must specify 'url'"
            raise ValueError(msg)
        return WebSocketTransport(url=self._ref.url)

    async def _handshake(self) -> None:
        await self._send_request(
            "initialize",
            params={
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": "streamagent", "version": "0.1.0"},
            },
        )
        await self._send_notification("notifications/initialized")

    async def _send_notification(self, method: str) -> None:
        if self._transport is None:
            msg = "Client not connected"
            raise RuntimeError(msg)
        await self._transport.send(JsonRpcNotification(method=method).model_dump())

    async def _send_request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
    ) -> JsonRpcResponse:
        """Send a request and wait for the response carrying its id.

        Server-initiated notifications arriving in between are skipped.
        """
        if self._transport is None:
            msg = "Client not connected"
            raise RuntimeError(msg)

        request_id = self._next_id
        self._next_id += 1
        request = JsonRpcRequest(method=method, id=request_id, params=params or {})
        await self._transport.send(request.model_dump())

        while True:
            raw = await self._transport.receive()
            if "id" not in raw or raw.get("id") is None:
                logger.debug("Skipping MCP notification %s", raw.get("method"))
                continue
            response = JsonRpcResponse.model_validate(raw)
            if response.id == request_id:
                return response
            logger.debug("Skipping MCP response for stale request %s", response.id)
