"""Streaming layer — stream events, subscriptions, the streaming call adapter."""

from streamagent.core.streaming.adapter import StreamingCallAdapter
from streamagent.core.streaming.bus import (
    EventBus,
    EventStream,
    Subscription,
    SubscriptionState,
)
from streamagent.core.streaming.events import (
    STREAM_TOPIC_PREFIX,
    ContentEvent,
    DoneEvent,
    ReasoningEvent,
    StoppedEvent,
    StreamEvent,
    ToolCallsEvent,
    parse_event,
    stream_topic,
)

__all__ = [
    "STREAM_TOPIC_PREFIX",
    "ContentEvent",
    "DoneEvent",
    "EventBus",
    "EventStream",
    "ReasoningEvent",
    "StoppedEvent",
    "StreamEvent",
    "StreamingCallAdapter",
    "Subscription",
    "SubscriptionState",
    "ToolCallsEvent",
    "parse_event",
    "stream_topic",
]
