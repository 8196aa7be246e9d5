"""LocalBackend — an in-process command executor.

Implements the backend commands the agent core invokes, on top of LiteLLM
streaming, connected MCP clients and an in-memory message store:

- ``chat_completion`` streams a completion and publishes its deltas on the
  event bus under ``ai-chat-stream-<stream_id>``
- ``stop_chat_stream`` flags a running stream; it publishes ``stopped`` at
  the next chunk boundary
- ``execute_mcp_tool_call`` routes to the MCP client registered for the
  server key
- ``save_message`` upserts into the :class:`MessageStore`
- ``get_mcp_configs`` lists the tool registry's servers
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import litellm

from streamagent.core.interface.config import ModelConfig
from streamagent.core.streaming.bus import EventBus
from streamagent.core.streaming.events import stream_topic
from streamagent.protocols.errors import CommandNotFoundError, ToolNotFoundError
from streamagent.protocols.executor import (
    CHAT_COMPLETION,
    EXECUTE_MCP_TOOL_CALL,
    GET_MCP_CONFIGS,
    SAVE_MESSAGE,
    STOP_CHAT_STREAM,
)
from streamagent.protocols.mcp.client import MCPClient
from streamagent.protocols.registry import ToolRegistry
from streamagent.runtime.store import MessageStore
from streamagent.utils.telemetry import ATTR_MODEL, ATTR_PROVIDER, ATTR_STREAM_ID, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


class ToolCallAssembler:
    """Accumulates streamed tool-call fragments into complete calls.

    Fragments carry an ``index``; the first fragment of a call brings its
    ``id`` and function name, later ones append to the arguments text.
    """

    def __init__(self) -> None:
        self._calls: dict[int, dict[str, Any]] = {}

    def add(self, fragments: list[Any]) -> None:
        for fragment in fragments:
            index = getattr(fragment, "index", None)
            if index is None:
                index = len(self._calls)
            call = self._calls.setdefault(
                index,
                {"id": "", "type": "function", "function": {"name": "", "arguments": ""}},
            )
            if getattr(fragment, "id", None):
                call["id"] = fragment.id
            function = getattr(fragment, "function", None)
            if function is not None:
                if getattr(function, "name", None):
                    call["function"]["name"] = function.name
                if getattr(function, "arguments", None):
                    call["function"]["arguments"] += function.arguments

    def snapshot(self) -> list[dict[str, Any]]:
        """Every call assembled so far, in index order."""
        return [
            {**call, "function": dict(call["function"])}
            for _, call in sorted(self._calls.items())
        ]


class LocalBackend:
    """Command executor running the model and tools in this process.

    Usage::

        bus = EventBus()
        backend = LocalBackend(bus, models={"default": ModelConfig(model="openai/gpt-4o")})
        backend.add_client(mcp_client)
        await backend.invoke("chat_completion", {...})
    """

    def __init__(
        self,
        bus: EventBus,
        *,
        models: dict[str, ModelConfig],
        registry: ToolRegistry | None = None,
        store: MessageStore | None = None,
    ) -> None:
        self._bus = bus
        self._models = dict(models)
        self._registry = registry or ToolRegistry()
        self._store = store or MessageStore()
        self._clients: dict[str, MCPClient] = {}
        self._streams: set[str] = set()
        self._stop_requests: set[str] = set()
        self._commands: dict[str, Callable[..., Awaitable[Any]]] = {
            CHAT_COMPLETION: self.chat_completion,
            STOP_CHAT_STREAM: self.stop_chat_stream,
            EXECUTE_MCP_TOOL_CALL: self.execute_mcp_tool_call,
            SAVE_MESSAGE: self.save_message,
            GET_MCP_CONFIGS: self.get_mcp_configs,
        }

    @property
    def store(self) -> MessageStore:
        return self._store

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def add_client(self, client: MCPClient) -> None:
        """Route tool calls for the client's server key to *client*."""
        self._clients[client.ref.server_key] = client

    async def invoke(self, name: str, args: dict[str, Any] | None = None) -> Any:
        """Run the command *name* with keyword arguments *args*."""
        command = self._commands.get(name)
        if command is None:
            raise CommandNotFoundError(name)
        return await command(**(args or {}))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def chat_completion(
        self,
        *,
        config_id: str,
        messages: list[dict[str, Any]],
        stream_id: str,
        tools: list[dict[str, Any]] | None = None,
        system_message: str | None = None,
    ) -> None:
        """Stream a completion, publishing its events; return when finished."""
        config = self._models.get(config_id)
        if config is None:
            msg = f"Unknown model config: {config_id}"
            raise ValueError(msg)

        topic = stream_topic(stream_id)
        payload = list(messages)
        if system_message:
            payload.insert(0, {"role": "system", "content": system_message})

        call_kwargs: dict[str, Any] = {**config.completion_kwargs(), "messages": payload, "stream": True}
        if tools:
            call_kwargs["tools"] = tools

        self._streams.add(stream_id)
        assembler = ToolCallAssembler()
        with _tracer.start_as_current_span("backend.chat_completion") as span:
            span.set_attribute(ATTR_STREAM_ID, stream_id)
            span.set_attribute(ATTR_MODEL, config.model)
            span.set_attribute(ATTR_PROVIDER, config.provider)
            try:
                response = await litellm.acompletion(**call_kwargs)
                async for chunk in response:
                    if stream_id in self._stop_requests:
                        break
                    self._publish_chunk(topic, chunk, assembler)

                if stream_id in self._stop_requests:
                    logger.info("Stream %s stopped", stream_id)
                    self._bus.publish(topic, {"type": "stopped"})
                else:
                    self._bus.publish(topic, {"type": "done"})
            finally:
                self._streams.discard(stream_id)
                self._stop_requests.discard(stream_id)

    async def stop_chat_stream(self, *, stream_id: str) -> None:
        if stream_id not in self._streams:
            logger.debug("stop_chat_stream for unknown stream %s ignored", stream_id)
            return
        self._stop_requests.add(stream_id)

    async def execute_mcp_tool_call(
        self,
        *,
        server_key: str,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        resource_id: str | None = None,
        task_id: str | None = None,
    ) -> dict[str, Any]:
        client = self._clients.get(server_key)
        if client is None:
            raise ToolNotFoundError(f"{server_key}/{tool_name}")
        return await client.execute_tool(
            tool_name,
            arguments or {},
            resource_id=resource_id,
            task_id=task_id,
        )

    async def save_message(
        self,
        *,
        chat_id: str,
        role: str,
        content: str = "",
        tool_calls: str | None = None,
        tool_call_id: str | None = None,
        name: str | None = None,
        reasoning: str | None = None,
        message_id: str | None = None,
    ) -> str:
        """Upsert one message; return its id."""
        row = self._store.save(
            chat_id=chat_id,
            role=role,
            content=content,
            tool_calls=tool_calls,
            tool_call_id=tool_call_id,
            name=name,
            reasoning=reasoning,
            message_id=message_id,
        )
        return row.message_id

    async def get_mcp_configs(self) -> list[dict[str, Any]]:
        return [server.model_dump(mode="json") for server in self._registry.servers]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _publish_chunk(self, topic: str, chunk: Any, assembler: ToolCallAssembler) -> None:
        choices = getattr(chunk, "choices", None) or []
        if not choices:
            return
        delta = getattr(choices[0], "delta", None)
        if delta is None:
            return

        content = getattr(delta, "content", None)
        if content:
            self._bus.publish(topic, {"type": "content", "content": content})

        reasoning = getattr(delta, "reasoning_content", None)
        if reasoning:
            self._bus.publish(topic, {"type": "reasoning", "content": reasoning})

        fragments = getattr(delta, "tool_calls", None)
        if fragments:
            assembler.add(list(fragments))
            self._bus.publish(topic, {"type": "tool_calls", "tool_calls": assembler.snapshot()})
