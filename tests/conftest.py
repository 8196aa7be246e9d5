"""Shared fixtures: a scripted command executor and a wired agent harness."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from unittest.mock import MagicMock

import pytest

from streamagent.core.conversation.state import ConversationState
from streamagent.core.interface.models import new_message_id
from streamagent.core.react.driver import ReActDriver
from streamagent.core.react.phases import PhaseExecutor
from streamagent.core.streaming.adapter import StreamingCallAdapter
from streamagent.core.streaming.bus import EventBus
from streamagent.core.streaming.events import stream_topic
from streamagent.protocols.errors import CommandNotFoundError, ToolNotFoundError
from streamagent.protocols.mcp.models import ConnectionStatus, MCPServerInfo, MCPToolDef
from streamagent.protocols.registry import ToolRegistry
from streamagent.runtime.dispatcher import ToolCallDispatcher

WAIT = "wait"
DONE = {"type": "done"}
STOPPED = {"type": "stopped"}

Script = list[Any]
Responder = Callable[[dict[str, Any]], Script]


class Events:
    """Builders for scripted stream events, exposed through the ``ev`` fixture."""

    WAIT = WAIT
    DONE = DONE
    STOPPED = STOPPED

    @staticmethod
    def content(text: str) -> dict[str, Any]:
        return {"type": "content", "content": text}

    @staticmethod
    def reasoning(text: str) -> dict[str, Any]:
        return {"type": "reasoning", "content": text}

    @staticmethod
    def tool_calls(*calls: tuple[str, str, dict[str, Any] | str]) -> dict[str, Any]:
        """A ``tool_calls`` event from ``(id, name, arguments)`` triples."""
        return {
            "type": "tool_calls",
            "tool_calls": [
                {
                    "id": call_id,
                    "type": "function",
                    "function": {
                        "name": name,
                        "arguments": args if isinstance(args, str) else json.dumps(args),
                    },
                }
                for call_id, name, args in calls
            ],
        }

    @classmethod
    def think(cls, text: str, *, should_continue: bool | None = True, reason: str = "") -> Script:
        """A Think turn whose text ends with a meta block."""
        meta: dict[str, Any] = {"reason": reason} if reason else {}
        if should_continue is not None:
            meta["shouldContinue"] = should_continue
        return [cls.content(text), cls.content(f"<agent_meta>{json.dumps(meta)}</agent_meta>"), DONE]

    @classmethod
    def say(cls, text: str) -> Script:
        return [cls.content(text), DONE]

    @classmethod
    def call_tools(cls, *calls: tuple[str, str, dict[str, Any] | str]) -> Script:
        return [cls.tool_calls(*calls), DONE]


class ScriptedBackend:
    """Command executor double that replays scripted streams on an event bus.

    Each ``chat_completion`` consumes the next script (or asks ``responder``).
    A script item is published as a stream event; ``WAIT`` blocks until
    ``stop_chat_stream`` arrives and then publishes ``stopped``; an exception
    instance is raised from the command.
    """

    def __init__(self, bus: EventBus) -> None:
        self.bus = bus
        self.scripts: list[Script] = []
        self.responder: Responder | None = None
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.saved: dict[str, dict[str, Any]] = {}
        self.tool_results: dict[str, Any] = {}
        self.tool_errors: dict[str, Exception] = {}
        self.waiting = asyncio.Event()
        self._stops: dict[str, asyncio.Event] = {}

    def script(self, *scripts: Script) -> None:
        self.scripts.extend(scripts)

    def commands(self, name: str) -> list[dict[str, Any]]:
        return [args for command, args in self.calls if command == name]

    async def invoke(self, name: str, args: dict[str, Any] | None = None) -> Any:
        args = dict(args or {})
        self.calls.append((name, args))

        if name == "chat_completion":
            return await self._stream(args)
        if name == "stop_chat_stream":
            self._stops.setdefault(args["stream_id"], asyncio.Event()).set()
            return None
        if name == "execute_mcp_tool_call":
            tool = args["tool_name"]
            if tool in self.tool_errors:
                raise self.tool_errors[tool]
            if tool not in self.tool_results:
                raise ToolNotFoundError(tool)
            return self.tool_results[tool]
        if name == "save_message":
            message_id = args.get("message_id") or new_message_id()
            self.saved[message_id] = args
            return message_id
        raise CommandNotFoundError(name)

    async def _stream(self, args: dict[str, Any]) -> None:
        topic = stream_topic(args["stream_id"])
        if self.responder is not None:
            script = self.responder(args)
        elif self.scripts:
            script = self.scripts.pop(0)
        else:
            script = [DONE]

        for item in script:
            if item == WAIT:
                stop = self._stops.setdefault(args["stream_id"], asyncio.Event())
                self.waiting.set()
                await stop.wait()
                self.bus.publish(topic, STOPPED)
                return
            if isinstance(item, Exception):
                raise item
            self.bus.publish(topic, item)
            await asyncio.sleep(0)


def server(
    name: str,
    *tools: str,
    is_default: bool = False,
    enabled: bool = True,
    status: ConnectionStatus = ConnectionStatus.CONNECTED,
) -> MCPServerInfo:
    return MCPServerInfo(
        name=name,
        is_default=is_default,
        enabled=enabled,
        status=status,
        tools=[MCPToolDef(name=tool, description=f"{tool} tool") for tool in tools],
    )


@dataclass
class Harness:
    bus: EventBus
    backend: ScriptedBackend
    conversation: ConversationState
    registry: ToolRegistry
    adapter: StreamingCallAdapter
    phases: PhaseExecutor
    dispatcher: ToolCallDispatcher
    notifier: MagicMock
    driver: ReActDriver

    def assistant_messages(self) -> list[Any]:
        return [m for m in self.conversation.messages if m.role == "assistant"]


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def backend(bus: EventBus) -> ScriptedBackend:
    return ScriptedBackend(bus)


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry([
        server("fs", "read_file", is_default=True),
        server("shell", "run_command"),
    ])


@pytest.fixture
def harness(bus: EventBus, backend: ScriptedBackend, registry: ToolRegistry) -> Harness:
    conversation = ConversationState()
    adapter = StreamingCallAdapter(backend, bus, conversation, registry)
    phases = PhaseExecutor(adapter, conversation, backend, registry)
    dispatcher = ToolCallDispatcher(backend, registry)
    notifier = MagicMock()
    driver = ReActDriver(phases, adapter, conversation, backend, dispatcher, notifier=notifier)
    return Harness(
        bus=bus,
        backend=backend,
        conversation=conversation,
        registry=registry,
        adapter=adapter,
        phases=phases,
        dispatcher=dispatcher,
        notifier=notifier,
        driver=driver,
    )


@pytest.fixture
def ev() -> type[Events]:
    return Events


@pytest.fixture
def make_server() -> Callable[..., MCPServerInfo]:
    return server
