"""Conversation data model — the message format shared by every layer.

Messages mirror the OpenAI chat shape closely enough that the wire
conversion in :mod:`streamagent.core.interface.openai` stays trivial, while
carrying the extra fields the agent loop needs (reasoning channel, pending
tool calls awaiting confirmation, creation timestamp for reconciliation).
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def new_message_id() -> str:
    """Return a fresh opaque message identifier."""
    return uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Tool calls requested by the assistant
# ---------------------------------------------------------------------------


class ToolFunction(BaseModel):
    """The function half of a tool call; ``arguments`` is raw JSON text."""

    name: str
    arguments: str = ""


class ToolCall(BaseModel):
    """A tool invocation emitted by an assistant turn."""

    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    type: Literal["function"] = "function"
    function: ToolFunction

    @classmethod
    def create(cls, name: str, arguments: dict[str, Any] | str | None = None, **kwargs: Any) -> ToolCall:
        """Build a tool call from a name and (optionally structured) arguments."""
        if isinstance(arguments, dict):
            raw = json.dumps(arguments, ensure_ascii=False)
        else:
            raw = arguments or ""
        return cls(function=ToolFunction(name=name, arguments=raw), **kwargs)

    @property
    def name(self) -> str:
        return self.function.name

    def parsed_arguments(self) -> dict[str, Any]:
        """Decode ``function.arguments``; malformed or non-object JSON yields ``{}``."""
        try:
            value = json.loads(self.function.arguments)
        except (json.JSONDecodeError, TypeError):
            return {}
        return value if isinstance(value, dict) else {}


# ---------------------------------------------------------------------------
# Conversation Message
# ---------------------------------------------------------------------------


class ConversationMessage(BaseModel):
    """A single message in the live conversation.

    Roles:
    - user: human input
    - assistant: model output, possibly still streaming
    - tool: a tool result answering ``tool_call_id``
    """

    id: str = Field(default_factory=new_message_id)
    role: Literal["user", "assistant", "tool"]
    content: str = ""
    reasoning: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    name: str | None = None
    pending_tool_calls: list[ToolCall] | None = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def user(cls, text: str, **kwargs: Any) -> ConversationMessage:
        return cls(role="user", content=text, **kwargs)

    @classmethod
    def assistant(cls, text: str = "", **kwargs: Any) -> ConversationMessage:
        return cls(role="assistant", content=text, **kwargs)

    @classmethod
    def tool(cls, call: ToolCall, result: str, **kwargs: Any) -> ConversationMessage:
        """Create the tool-role message answering *call*."""
        return cls(
            role="tool",
            content=result,
            tool_call_id=call.id,
            name=call.name,
            **kwargs,
        )


# ---------------------------------------------------------------------------
# ReAct loop values
# ---------------------------------------------------------------------------


class ReActPhase(str, Enum):
    """The phase the loop driver is currently in."""

    IDLE = "idle"
    THOUGHT = "thought"
    ACTION = "action"
    OBSERVATION = "observation"


class AgentMeta(BaseModel):
    """Continuation signal extracted from a Think turn."""

    model_config = ConfigDict(populate_by_name=True)

    should_continue: bool = Field(default=True, alias="shouldContinue")
    reason: str | None = None


class AgentStatus(BaseModel):
    """UI-observable progress of the agent."""

    is_streaming: bool = False
    current_phase: ReActPhase = ReActPhase.IDLE
    current_iteration: int = 0


class TurnContext(BaseModel):
    """Identifies the conversation (and optional focus) a model turn belongs to."""

    chat_id: str
    resource_id: str | None = None
    task_id: str | None = None


class TurnResult(BaseModel):
    """What one streamed model turn produced."""

    message_id: str
    content: str = ""
    tool_calls: list[ToolCall] | None = None
    reasoning: str | None = None
