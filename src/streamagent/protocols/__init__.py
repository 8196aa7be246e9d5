"""Protocol layer — collaborator contracts, tool registry, MCP client."""

from streamagent.protocols.errors import (
    CommandNotFoundError,
    ConnectionError,
    ProtocolError,
    ToolExecutionError,
    ToolNotFoundError,
)
from streamagent.protocols.executor import CommandExecutor
from streamagent.protocols.registry import ToolInfo, ToolRegistry

__all__ = [
    "CommandExecutor",
    "CommandNotFoundError",
    "ConnectionError",
    "ProtocolError",
    "ToolExecutionError",
    "ToolInfo",
    "ToolNotFoundError",
    "ToolRegistry",
]
