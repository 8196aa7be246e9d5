"""StreamingCallAdapter — one streamed model turn as a single awaitable call.

A call:

1. appends an empty live assistant message to the conversation,
2. subscribes to ``ai-chat-stream-<stream_id>`` (a fresh id per call),
3. only then asks the backend for ``chat_completion``,
4. folds ``content`` / ``reasoning`` / ``tool_calls`` events into the live
   message as they arrive,
5. on ``done`` or ``stopped`` unsubscribes, persists the turn and returns
   (or raises :class:`StreamStoppedError`).

Handlers may fire late (a superseded turn, a cancelled one); they only
enqueue while their turn is still the adapter's active turn, and the pump
checks the stop flag before every mutation.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any
from uuid import uuid4

from streamagent.core.conversation.state import ConversationState
from streamagent.core.errors import StreamProtocolError, StreamStoppedError
from streamagent.core.interface.models import ConversationMessage, ToolCall, TurnContext, TurnResult
from streamagent.core.interface.openai import to_chat_messages
from streamagent.core.streaming.bus import EventStream, Subscription
from streamagent.core.streaming.events import (
    TERMINAL_EVENTS,
    ContentEvent,
    ReasoningEvent,
    StoppedEvent,
    ToolCallsEvent,
    parse_event,
    stream_topic,
)
from streamagent.protocols.executor import CHAT_COMPLETION, SAVE_MESSAGE, STOP_CHAT_STREAM, CommandExecutor
from streamagent.protocols.registry import ToolRegistry
from streamagent.utils.telemetry import (
    ATTR_ALLOW_TOOLS,
    ATTR_CHAT_ID,
    ATTR_OUTCOME,
    ATTR_STREAM_ID,
    get_tracer,
)

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

_CANCELLED = object()


def _new_stream_id() -> str:
    return uuid4().hex


class _ActiveTurn:
    """Bookkeeping for the turn currently being streamed."""

    def __init__(self, stream_id: str, message_id: str, subscription: Subscription) -> None:
        self.stream_id = stream_id
        self.message_id = message_id
        self.subscription = subscription
        self.inbox: asyncio.Queue[Any] = asyncio.Queue()
        self.content = ""
        self.reasoning = ""
        self.tool_calls: list[ToolCall] | None = None


class StreamingCallAdapter:
    """Runs streamed model turns against a command executor and event stream.

    Usage::

        adapter = StreamingCallAdapter(backend, bus, conversation, registry)
        result = await adapter.call(TurnContext(chat_id="c1"), prompt, allow_tools=True)

    :meth:`cancel` stops the in-flight turn (if any) and makes every later
    :meth:`call` raise :class:`StreamStoppedError` until :meth:`reset`.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        events: EventStream,
        conversation: ConversationState,
        registry: ToolRegistry,
        *,
        config_id: str = "default",
        id_factory: Callable[[], str] = _new_stream_id,
    ) -> None:
        self._executor = executor
        self._events = events
        self._conversation = conversation
        self._registry = registry
        self._config_id = config_id
        self._id_factory = id_factory
        self._stopped = False
        self._active: _ActiveTurn | None = None

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def current_stream_id(self) -> str | None:
        return self._active.stream_id if self._active is not None else None

    def reset(self) -> None:
        """Clear the stop flag before a new run."""
        self._stopped = False

    async def call(self, turn: TurnContext, system_prompt: str, allow_tools: bool) -> TurnResult:
        """Stream one model turn and return what it produced.

        Raises:
            StreamStoppedError: If a stop was requested, locally or by the backend.
            Exception: Whatever the ``chat_completion`` command raised.
        """
        if self._stopped:
            raise StreamStoppedError()

        stream_id = self._id_factory()
        message = ConversationMessage.assistant()
        self._conversation.append(message)
        active = _ActiveTurn(stream_id, message.id, Subscription(self._events, stream_topic(stream_id)))
        self._active = active

        def on_event(payload: Any) -> None:
            if self._active is not active or self._stopped:
                logger.debug("Dropping late event for stream %s", stream_id)
                return
            active.inbox.put_nowait(payload)

        with _tracer.start_as_current_span("stream.call") as span:
            span.set_attribute(ATTR_STREAM_ID, stream_id)
            span.set_attribute(ATTR_CHAT_ID, turn.chat_id)
            span.set_attribute(ATTR_ALLOW_TOOLS, allow_tools)
            try:
                await active.subscription.open(on_event)
                if self._stopped:
                    raise StreamStoppedError(stream_id)

                tools = self._registry.available_tools() if allow_tools else []
                request = asyncio.ensure_future(
                    self._executor.invoke(
                        CHAT_COMPLETION,
                        {
                            "config_id": self._config_id,
                            "messages": to_chat_messages(
                                self._conversation.messages, exclude_ids=[message.id]
                            ),
                            "tools": tools or None,
                            "system_message": system_prompt,
                            "stream_id": stream_id,
                        },
                    )
                )
                request.add_done_callback(_consume_result)
                result = await self._pump(active, request, turn)
            except StreamStoppedError:
                span.set_attribute(ATTR_OUTCOME, "stopped")
                raise
            finally:
                active.subscription.close()
                if self._active is active:
                    self._active = None
            span.set_attribute(ATTR_OUTCOME, "done")
            return result

    async def cancel(self) -> None:
        """Stop the in-flight turn; idempotent."""
        self._stopped = True
        active = self._active
        if active is None:
            return

        active.inbox.put_nowait(_CANCELLED)
        try:
            await self._executor.invoke(STOP_CHAT_STREAM, {"stream_id": active.stream_id})
        except Exception:
            logger.exception("Failed to stop stream %s", active.stream_id)
        active.subscription.close()

    async def _pump(
        self,
        active: _ActiveTurn,
        request: asyncio.Future[Any],
        turn: TurnContext,
    ) -> TurnResult:
        """Drain events until a terminal one; a failed request wins if first."""
        watching_request = True
        while True:
            getter = asyncio.ensure_future(active.inbox.get())
            waiters: set[asyncio.Future[Any]] = {getter}
            if watching_request:
                waiters.add(request)
            try:
                done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            finally:
                if not getter.done():
                    getter.cancel()

            if watching_request and request in done:
                watching_request = False
                if request.cancelled():
                    raise asyncio.CancelledError
                error = request.exception()
                if error is not None:
                    raise error

            if getter in done:
                result = await self._apply(active, getter.result(), turn)
                if result is not None:
                    return result

    async def _apply(self, active: _ActiveTurn, payload: Any, turn: TurnContext) -> TurnResult | None:
        if payload is _CANCELLED or self._stopped:
            raise StreamStoppedError(active.stream_id)

        try:
            event = parse_event(payload)
        except StreamProtocolError as exc:
            logger.warning("Ignoring payload on stream %s: %s", active.stream_id, exc)
            return None

        if isinstance(event, ContentEvent):
            active.content += event.content
            self._conversation.patch(active.message_id, content=active.content)
        elif isinstance(event, ReasoningEvent):
            active.reasoning += event.content
            self._conversation.patch(active.message_id, reasoning=active.reasoning)
        elif isinstance(event, ToolCallsEvent):
            active.tool_calls = list(event.tool_calls)
            self._conversation.patch(active.message_id, tool_calls=active.tool_calls)
        elif isinstance(event, TERMINAL_EVENTS):
            return await self._settle(active, turn, stopped=isinstance(event, StoppedEvent))
        return None

    async def _settle(self, active: _ActiveTurn, turn: TurnContext, *, stopped: bool) -> TurnResult:
        active.subscription.close()
        if self._active is active:
            self._active = None

        reasoning = active.reasoning if active.reasoning.strip() else None
        if reasoning is None and active.reasoning:
            self._conversation.patch(active.message_id, reasoning=None)
        tool_calls = active.tool_calls or None

        if active.content or tool_calls or reasoning:
            await self._persist(turn, active.message_id, active.content, tool_calls, reasoning)

        if stopped:
            logger.info("Stream %s stopped by backend", active.stream_id)
            raise StreamStoppedError(active.stream_id)

        return TurnResult(
            message_id=active.message_id,
            content=active.content,
            tool_calls=tool_calls,
            reasoning=reasoning,
        )

    async def _persist(
        self,
        turn: TurnContext,
        message_id: str,
        content: str,
        tool_calls: list[ToolCall] | None,
        reasoning: str | None,
    ) -> None:
        try:
            await self._executor.invoke(
                SAVE_MESSAGE,
                {
                    "chat_id": turn.chat_id,
                    "role": "assistant",
                    "content": content,
                    "tool_calls": (
                        json.dumps([tc.model_dump() for tc in tool_calls]) if tool_calls else None
                    ),
                    "tool_call_id": None,
                    "name": None,
                    "reasoning": reasoning,
                    "message_id": message_id,
                },
            )
        except Exception:
            logger.exception("Failed to save assistant message %s", message_id)


def _consume_result(future: asyncio.Future[Any]) -> None:
    """Mark a detached request's outcome as retrieved."""
    if not future.cancelled():
        future.exception()
