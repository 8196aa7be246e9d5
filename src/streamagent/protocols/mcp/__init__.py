"""Model Context Protocol client."""

from streamagent.protocols.mcp.client import MCPClient
from streamagent.protocols.mcp.models import (
    ConnectionStatus,
    MCPServerInfo,
    MCPServerRef,
    MCPToolDef,
)
from streamagent.protocols.mcp.transport import MCPTransport, StdioTransport, WebSocketTransport

__all__ = [
    "ConnectionStatus",
    "MCPClient",
    "MCPServerInfo",
    "MCPServerRef",
    "MCPToolDef",
    "MCPTransport",
    "StdioTransport",
    "WebSocketTransport",
]
