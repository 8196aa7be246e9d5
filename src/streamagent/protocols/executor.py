"""CommandExecutor protocol — invoke-style RPC to the application backend.

The agent core never talks to a model provider, a tool server or a database
directly.  Everything goes through named commands:

``chat_completion``
    ``config_id, messages, tools, system_message, stream_id`` — starts a
    streamed completion whose events are published on
    ``ai-chat-stream-<stream_id>``.
``stop_chat_stream``
    ``stream_id`` — asks the backend to halt that stream.
``execute_mcp_tool_call``
    ``server_key, tool_name, arguments, resource_id, task_id`` — returns a
    JSON-serializable result.
``save_message``
    ``chat_id, role, content, tool_calls, tool_call_id, name, reasoning,
    message_id`` — upserts one message durably.
``get_mcp_configs``
    returns the tool server list.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

CHAT_COMPLETION = "chat_completion"
STOP_CHAT_STREAM = "stop_chat_stream"
EXECUTE_MCP_TOOL_CALL = "execute_mcp_tool_call"
SAVE_MESSAGE = "save_message"
GET_MCP_CONFIGS = "get_mcp_configs"


@runtime_checkable
class CommandExecutor(Protocol):
    """Executes a named backend command and returns its result or raises."""

    async def invoke(self, name: str, args: dict[str, Any] | None = None) -> Any:
        ...
