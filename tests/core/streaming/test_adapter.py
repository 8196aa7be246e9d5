"""Tests for StreamingCallAdapter."""

import asyncio
import json

import pytest

from streamagent.core.conversation.state import ConversationState
from streamagent.core.errors import StreamStoppedError
from streamagent.core.interface.models import ConversationMessage, TurnContext
from streamagent.core.streaming.adapter import StreamingCallAdapter
from streamagent.core.streaming.events import stream_topic

TURN = TurnContext(chat_id="chat-1")


@pytest.fixture
def conversation() -> ConversationState:
    return ConversationState([ConversationMessage.user("hello")])


@pytest.fixture
def adapter(backend, bus, conversation, registry) -> StreamingCallAdapter:
    return StreamingCallAdapter(backend, bus, conversation, registry, config_id="cfg")


class TestCall:
    async def test_accumulates_content(self, adapter, backend, conversation, ev) -> None:
        backend.script([ev.content("Hel"), ev.content("lo"), ev.DONE])

        result = await adapter.call(TURN, "system", allow_tools=False)

        assert result.content == "Hello"
        assert result.tool_calls is None
        live = conversation.get(result.message_id)
        assert live is not None
        assert live.role == "assistant"
        assert live.content == "Hello"

    async def test_request_payload(self, adapter, backend, conversation, ev) -> None:
        backend.script(ev.say("ok"))

        await adapter.call(TURN, "be brief", allow_tools=False)

        (request,) = backend.commands("chat_completion")
        assert request["config_id"] == "cfg"
        assert request["system_message"] == "be brief"
        assert request["tools"] is None
        # The live placeholder is not sent back to the model.
        assert request["messages"] == [{"role": "user", "content": "hello"}]

    async def test_allow_tools_sends_callable_tools(self, adapter, backend, ev) -> None:
        backend.script(ev.say("ok"))

        await adapter.call(TURN, "system", allow_tools=True)

        (request,) = backend.commands("chat_completion")
        names = [tool["function"]["name"] for tool in request["tools"]]
        assert names == ["read_file", "run_command"]

    async def test_fresh_stream_id_per_call(self, adapter, backend, ev) -> None:
        backend.script(ev.say("a"), ev.say("b"))

        await adapter.call(TURN, "s", allow_tools=False)
        await adapter.call(TURN, "s", allow_tools=False)

        ids = [args["stream_id"] for args in backend.commands("chat_completion")]
        assert len(set(ids)) == 2

    async def test_unsubscribes_after_done(self, adapter, backend, bus, ev) -> None:
        backend.script(ev.say("ok"))

        await adapter.call(TURN, "s", allow_tools=False)

        stream_id = backend.commands("chat_completion")[0]["stream_id"]
        assert not bus.has_subscribers(stream_topic(stream_id))
        assert adapter.current_stream_id is None

    async def test_tool_calls_replace_previous_snapshot(self, adapter, backend, ev) -> None:
        backend.script([
            ev.tool_calls(("c1", "read_file", {"path": "a"})),
            ev.tool_calls(("c1", "read_file", {"path": "a"}), ("c2", "run_command", {"cmd": "ls"})),
            ev.DONE,
        ])

        result = await adapter.call(TURN, "s", allow_tools=True)

        assert [tc.id for tc in result.tool_calls] == ["c1", "c2"]

    async def test_reasoning_kept_separate(self, adapter, backend, conversation, ev) -> None:
        backend.script([ev.reasoning("think"), ev.reasoning("ing"), ev.content("answer"), ev.DONE])

        result = await adapter.call(TURN, "s", allow_tools=False)

        assert result.reasoning == "thinking"
        assert result.content == "answer"
        assert backend.saved[result.message_id]["reasoning"] == "thinking"

    async def test_whitespace_reasoning_dropped(self, adapter, backend, conversation, ev) -> None:
        backend.script([ev.reasoning("  \n"), ev.content("answer"), ev.DONE])

        result = await adapter.call(TURN, "s", allow_tools=False)

        assert result.reasoning is None
        assert conversation.get(result.message_id).reasoning is None
        assert backend.saved[result.message_id]["reasoning"] is None

    async def test_persists_with_message_id(self, adapter, backend, ev) -> None:
        backend.script([ev.content("hi"), ev.tool_calls(("c1", "read_file", {"path": "x"})), ev.DONE])

        result = await adapter.call(TURN, "s", allow_tools=True)

        saved = backend.saved[result.message_id]
        assert saved["chat_id"] == "chat-1"
        assert saved["role"] == "assistant"
        assert saved["content"] == "hi"
        assert json.loads(saved["tool_calls"])[0]["id"] == "c1"

    async def test_empty_turn_not_persisted(self, adapter, backend, ev) -> None:
        backend.script([ev.DONE])

        result = await adapter.call(TURN, "s", allow_tools=False)

        assert result.content == ""
        assert backend.commands("save_message") == []

    async def test_persistence_failure_is_not_fatal(self, adapter, backend, ev) -> None:
        backend.script(ev.say("ok"))
        original = backend.invoke

        async def invoke(name, args=None):
            if name == "save_message":
                raise RuntimeError("disk full")
            return await original(name, args)

        backend.invoke = invoke

        result = await adapter.call(TURN, "s", allow_tools=False)

        assert result.content == "ok"

    async def test_malformed_payload_ignored(self, adapter, backend, ev) -> None:
        backend.script([{"type": "mystery"}, ev.content("ok"), ev.DONE])

        result = await adapter.call(TURN, "s", allow_tools=False)

        assert result.content == "ok"


class TestStopping:
    async def test_backend_stopped_event(self, adapter, backend, ev) -> None:
        backend.script([ev.content("partial"), ev.STOPPED])

        with pytest.raises(StreamStoppedError):
            await adapter.call(TURN, "s", allow_tools=False)

        (saved,) = backend.saved.values()
        assert saved["content"] == "partial"

    async def test_cancel_mid_stream(self, adapter, backend, conversation, bus, ev) -> None:
        backend.script([ev.WAIT])
        task = asyncio.create_task(adapter.call(TURN, "s", allow_tools=False))
        await backend.waiting.wait()

        await adapter.cancel()
        with pytest.raises(StreamStoppedError):
            await task

        stream_id = backend.commands("stop_chat_stream")[0]["stream_id"]
        assert stream_id == backend.commands("chat_completion")[0]["stream_id"]
        assert backend.commands("save_message") == []
        assert not bus.has_subscribers(stream_topic(stream_id))

    async def test_no_mutation_after_cancel(self, adapter, backend, conversation, bus, ev) -> None:
        backend.script([ev.WAIT])
        task = asyncio.create_task(adapter.call(TURN, "s", allow_tools=False))
        await backend.waiting.wait()
        stream_id = backend.commands("chat_completion")[0]["stream_id"]
        placeholder = conversation.messages[-1]

        await adapter.cancel()
        bus.publish(stream_topic(stream_id), ev.content("late"))
        with pytest.raises(StreamStoppedError):
            await task

        assert conversation.get(placeholder.id).content == ""

    async def test_call_after_cancel_raises_until_reset(self, adapter, backend, ev) -> None:
        await adapter.cancel()
        with pytest.raises(StreamStoppedError):
            await adapter.call(TURN, "s", allow_tools=False)
        assert backend.commands("chat_completion") == []

        adapter.reset()
        backend.script(ev.say("ok"))
        result = await adapter.call(TURN, "s", allow_tools=False)
        assert result.content == "ok"

    async def test_cancel_without_active_turn(self, adapter, backend) -> None:
        await adapter.cancel()
        assert adapter.stopped
        assert backend.commands("stop_chat_stream") == []


class TestFailures:
    async def test_request_error_rejects_call(self, adapter, backend, bus) -> None:
        backend.script([RuntimeError("provider down")])

        with pytest.raises(RuntimeError, match="provider down"):
            await adapter.call(TURN, "s", allow_tools=False)

        stream_id = backend.commands("chat_completion")[0]["stream_id"]
        assert not bus.has_subscribers(stream_topic(stream_id))

    async def test_stale_handler_ignored(self, backend, bus, conversation, registry, ev) -> None:
        ids = iter(["first", "second"])
        adapter = StreamingCallAdapter(backend, bus, conversation, registry, id_factory=lambda: next(ids))
        backend.script(ev.say("one"), ev.say("two"))

        first = await adapter.call(TURN, "s", allow_tools=False)
        bus.publish(stream_topic("first"), ev.content(" stale"))
        second = await adapter.call(TURN, "s", allow_tools=False)

        assert conversation.get(first.message_id).content == "one"
        assert second.content == "two"
