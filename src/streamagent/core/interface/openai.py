"""OpenAI wire conversion — the conversation is already close to ChatML."""

from collections.abc import Iterable
from typing import Any

from streamagent.core.interface.models import ConversationMessage, ToolCall


def to_chat_messages(
    messages: Iterable[ConversationMessage],
    *,
    exclude_ids: Iterable[str] = (),
) -> list[dict[str, Any]]:
    """Convert conversation messages to OpenAI chat-completion messages.

    Assistant messages with neither content nor tool calls (an in-flight or
    aborted turn) are skipped, as are messages whose id is in *exclude_ids*.
    """
    skipped = set(exclude_ids)
    result: list[dict[str, Any]] = []
    for msg in messages:
        if msg.id in skipped:
            continue
        if msg.role == "assistant" and not msg.content and not msg.tool_calls:
            continue
        result.append(message_to_openai(msg))
    return result


def message_to_openai(msg: ConversationMessage) -> dict[str, Any]:
    """Convert a single message to OpenAI format."""
    result: dict[str, Any] = {"role": msg.role, "content": msg.content}

    if msg.role == "tool":
        result["tool_call_id"] = msg.tool_call_id
        if msg.name:
            result["name"] = msg.name
        return result

    if msg.tool_calls:
        result["tool_calls"] = [tool_call_to_openai(tc) for tc in msg.tool_calls]
        if not msg.content:
            result["content"] = None

    return result


def tool_call_to_openai(call: ToolCall) -> dict[str, Any]:
    return {
        "id": call.id,
        "type": "function",
        "function": {"name": call.function.name, "arguments": call.function.arguments},
    }
