"""Stream event payloads — a closed, tagged union keyed on ``type``."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from streamagent.core.errors import StreamProtocolError
from streamagent.core.interface.models import ToolCall

STREAM_TOPIC_PREFIX = "ai-chat-stream-"


def stream_topic(stream_id: str) -> str:
    """The subscription topic carrying events for *stream_id*."""
    return f"{STREAM_TOPIC_PREFIX}{stream_id}"


class ContentEvent(BaseModel):
    """A content delta; appended to the live message."""

    type: Literal["content"] = "content"
    content: str = ""


class ReasoningEvent(BaseModel):
    """A reasoning delta; kept on a separate channel from content."""

    type: Literal["reasoning"] = "reasoning"
    content: str = ""


class ToolCallsEvent(BaseModel):
    """The complete tool-call list so far; replaces the previous one."""

    type: Literal["tool_calls"] = "tool_calls"
    tool_calls: list[ToolCall] = []


class DoneEvent(BaseModel):
    type: Literal["done"] = "done"


class StoppedEvent(BaseModel):
    type: Literal["stopped"] = "stopped"


StreamEvent = Annotated[
    ContentEvent | ReasoningEvent | ToolCallsEvent | DoneEvent | StoppedEvent,
    Field(discriminator="type"),
]

TERMINAL_EVENTS = (DoneEvent, StoppedEvent)

_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)


def parse_event(payload: Any) -> StreamEvent:
    """Validate a raw payload into a :data:`StreamEvent`.

    Raises:
        StreamProtocolError: If the payload has an unknown ``type`` or bad fields.
    """
    try:
        return _adapter.validate_python(payload)
    except ValidationError as exc:
        raise StreamProtocolError(str(exc)) from exc
