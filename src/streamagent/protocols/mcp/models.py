"""MCP models — JSON-RPC 2.0 envelopes, tool definitions, server records.

Implements the message format used by the Model Context Protocol for
tool discovery (``tools/list``) and execution (``tools/call``), plus the
server records the tool registry keeps about each configured server.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request message."""

    jsonrpc: str = "2.0"
    method: str
    id: int | str = 1
    params: dict[str, Any] = {}


class JsonRpcNotification(BaseModel):
    """A JSON-RPC 2.0 notification (no ``id``, no response expected)."""

    jsonrpc: str = "2.0"
    method: str
    params: dict[str, Any] = {}


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response message."""

    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: dict[str, Any] | None = None
    error: JsonRpcError | None = None


# ---------------------------------------------------------------------------
# Tools and servers
# ---------------------------------------------------------------------------


class MCPToolDef(BaseModel):
    """A tool definition as returned by ``tools/list``."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")

    def to_function_schema(self) -> dict[str, Any]:
        """OpenAI-compatible function schema for this tool."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema or {"type": "object", "properties": {}},
            },
        }


class ConnectionStatus(str, Enum):
    CONNECTED = "connected"
    CONNECTING = "connecting"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class MCPServerRef(BaseModel):
    """How to reach an MCP server, plus its trust and enablement flags."""

    name: str
    key: str | None = None
    transport: Literal["stdio", "websocket"] = "stdio"
    command: str | None = None
    url: str | None = None
    env: dict[str, str] = {}
    enabled: bool = True
    is_default: bool = False

    @property
    def server_key(self) -> str:
        return self.key or self.name


class MCPServerInfo(BaseModel):
    """Registry view of one server: configuration, live status, its tools."""

    name: str
    key: str | None = None
    enabled: bool = True
    is_default: bool = False
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    tools: list[MCPToolDef] = []

    @property
    def server_key(self) -> str:
        return self.key or self.name

    @property
    def callable(self) -> bool:
        """A server's tools may be called only when enabled and connected."""
        return self.enabled and self.status is ConnectionStatus.CONNECTED

    @classmethod
    def from_ref(
        cls,
        ref: MCPServerRef,
        *,
        status: ConnectionStatus = ConnectionStatus.DISCONNECTED,
        tools: list[MCPToolDef] | None = None,
    ) -> MCPServerInfo:
        return cls(
            name=ref.name,
            key=ref.key,
            enabled=ref.enabled,
            is_default=ref.is_default,
            status=status,
            tools=tools or [],
        )
