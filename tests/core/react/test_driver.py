"""Tests for the ReAct loop driver."""

import asyncio
import json

import pytest

from streamagent.core.interface.models import AgentStatus, ReActPhase, ToolCall
from streamagent.core.react.driver import (
    CANCELLED_RESULT,
    DEFAULT_MAX_ITERATIONS,
    REJECTED_RESULT,
    ReActDriver,
)


def phase_of(args) -> str:
    prompt = args["system_message"]
    for marker in ("THINK step", "ACT step", "OBSERVE step"):
        if marker in prompt:
            return marker.split()[0]
    raise AssertionError("unknown phase prompt")


def completions(harness) -> list[str]:
    return [phase_of(args) for args in harness.backend.commands("chat_completion")]


def unanswered(args) -> set[str]:
    """Tool call ids requested in a completion request but never answered."""
    asked = {
        call["id"]
        for message in args["messages"]
        if message["role"] == "assistant"
        for call in message.get("tool_calls") or ()
    }
    answered = {m["tool_call_id"] for m in args["messages"] if m["role"] == "tool"}
    return asked - answered


class TestConstruction:
    def test_rejects_zero_iterations(self, harness) -> None:
        with pytest.raises(ValueError):
            ReActDriver(
                harness.phases,
                harness.adapter,
                harness.conversation,
                harness.backend,
                harness.dispatcher,
                max_iterations=0,
            )

    def test_default_budget(self, harness) -> None:
        assert harness.driver.max_iterations == DEFAULT_MAX_ITERATIONS


class TestDirectAnswer:
    async def test_single_think_turn(self, harness, ev) -> None:
        harness.backend.script(ev.think("The answer is 42", should_continue=False, reason="known"))

        await harness.driver.start_react_agent("chat-1")

        assert completions(harness) == ["THINK"]
        (answer,) = harness.assistant_messages()
        assert answer.content == "The answer is 42"
        assert harness.backend.saved[answer.id]["content"] == "The answer is 42"
        assert not harness.driver.is_running
        assert harness.driver.status.value == AgentStatus()
        harness.notifier.error.assert_not_called()
        harness.notifier.warning.assert_not_called()

    async def test_missing_meta_halts(self, harness, ev) -> None:
        harness.backend.script(ev.say("Hello there."))

        await harness.driver.start_react_agent("chat-1")

        assert completions(harness) == ["THINK"]
        harness.notifier.warning.assert_not_called()


class TestToolIteration:
    async def test_trusted_tool_round_trip(self, harness, ev) -> None:
        harness.backend.tool_results["read_file"] = {"content": [{"type": "text", "text": "42"}]}
        harness.backend.script(
            ev.think("I should read the file."),
            ev.call_tools(("c1", "read_file", {"path": "answer.txt"})),
            ev.say("The file contains 42."),
            ev.think("Let me double check."),
            ev.say("Nothing else to do."),
        )
        iterations: list[int] = []
        harness.driver.status.subscribe(lambda s: iterations.append(s.current_iteration))

        await harness.driver.start_react_agent("chat-1")

        assert completions(harness) == ["THINK", "ACT", "OBSERVE", "THINK", "ACT"]
        assert max(iterations) == 2
        (tool_message,) = [m for m in harness.conversation.messages if m.role == "tool"]
        assert tool_message.tool_call_id == "c1"
        assert json.loads(tool_message.content) == {"content": [{"type": "text", "text": "42"}]}
        assert harness.backend.saved[tool_message.id]["role"] == "tool"
        (execution,) = harness.backend.commands("execute_mcp_tool_call")
        assert execution["server_key"] == "fs"
        assert execution["arguments"] == {"path": "answer.txt"}

    async def test_tool_failure_does_not_stop_siblings(self, harness, ev, make_server) -> None:
        harness.registry.set_servers([make_server("fs", "read_file", "list_dir", is_default=True)])
        harness.backend.tool_errors["read_file"] = RuntimeError("disk error")
        harness.backend.tool_results["list_dir"] = ["a.txt"]
        harness.backend.script(
            ev.think("Look around."),
            ev.call_tools(("c1", "read_file", {"path": "x"}), ("c2", "list_dir", {})),
            ev.say("Listing worked, reading failed."),
            ev.think("Done.", should_continue=False),
        )

        await harness.driver.start_react_agent("chat-1")

        harness.notifier.error.assert_called_once()
        assert "disk error" in harness.notifier.error.call_args.args[0]
        tool_messages = [m for m in harness.conversation.messages if m.role == "tool"]
        assert [m.tool_call_id for m in tool_messages] == ["c1", "c2"]
        assert tool_messages[0].content == "Tool call failed: disk error"
        assert harness.backend.saved[tool_messages[0].id]["tool_call_id"] == "c1"
        assert completions(harness) == ["THINK", "ACT", "OBSERVE", "THINK"]
        observe = harness.backend.commands("chat_completion")[2]
        assert unanswered(observe) == set()

    async def test_observe_failure_is_not_fatal(self, harness, ev) -> None:
        harness.backend.tool_results["read_file"] = "ok"
        harness.backend.script(
            ev.think("Read it."),
            ev.call_tools(("c1", "read_file", {})),
            [RuntimeError("observe blew up")],
            ev.think("All set.", should_continue=False),
        )

        await harness.driver.start_react_agent("chat-1")

        assert completions(harness) == ["THINK", "ACT", "OBSERVE", "THINK"]
        harness.notifier.error.assert_not_called()


class TestConfirmation:
    async def test_untrusted_call_pauses(self, harness, ev) -> None:
        harness.backend.script(
            ev.think("I need to run a command."),
            ev.call_tools(("c1", "run_command", {"cmd": "ls"})),
        )

        await harness.driver.start_react_agent("chat-1")

        assert harness.driver.is_paused
        assert not harness.driver.is_running
        assert completions(harness) == ["THINK", "ACT"]
        assert harness.backend.commands("execute_mcp_tool_call") == []
        pending = harness.driver.pending_tool_calls()
        assert [tc.id for tc in pending] == ["c1"]
        carrier = harness.conversation.find_last(lambda m: bool(m.pending_tool_calls))
        assert carrier.role == "assistant"
        assert carrier.tool_calls[0].id == "c1"

    async def test_resume_runs_confirmed_calls(self, harness, ev) -> None:
        harness.backend.tool_results["run_command"] = {"stdout": "a.txt"}
        harness.backend.script(
            ev.think("I need to run a command."),
            ev.call_tools(("c1", "run_command", {"cmd": "ls"})),
            ev.say("The directory holds a.txt."),
            ev.think("There is one file, a.txt.", should_continue=False),
        )
        await harness.driver.start_react_agent("chat-1")

        await harness.driver.continue_after_tool_confirm(harness.driver.pending_tool_calls(), "chat-1")

        assert not harness.driver.is_paused
        assert harness.driver.pending_tool_calls() == []
        assert len(harness.backend.commands("execute_mcp_tool_call")) == 1
        assert completions(harness) == ["THINK", "ACT", "OBSERVE", "THINK"]
        assert harness.assistant_messages()[-1].content == "There is one file, a.txt."

    async def test_budget_carries_across_resume(self, harness, ev) -> None:
        iterations: list[int] = []
        harness.driver.status.subscribe(lambda s: iterations.append(s.current_iteration))
        harness.backend.tool_results["run_command"] = "ok"
        harness.backend.script(
            ev.think("Run it."),
            ev.call_tools(("c1", "run_command", {})),
            ev.say("Ran."),
            ev.think("Finished.", should_continue=False),
        )
        await harness.driver.start_react_agent("chat-1")

        await harness.driver.continue_after_tool_confirm(harness.driver.pending_tool_calls(), "chat-1")

        assert max(iterations) == 2

    async def test_stop_while_paused_discards_pending(self, harness, ev) -> None:
        harness.backend.script(
            ev.think("Run it."),
            ev.call_tools(("c1", "run_command", {})),
        )
        await harness.driver.start_react_agent("chat-1")

        await harness.driver.stop_react_agent()

        assert not harness.driver.is_paused
        assert harness.driver.pending_tool_calls() == []
        assert harness.backend.commands("execute_mcp_tool_call") == []
        (answer,) = [m for m in harness.conversation.messages if m.role == "tool"]
        assert (answer.tool_call_id, answer.content) == ("c1", REJECTED_RESULT)
        assert harness.backend.saved[answer.id]["content"] == REJECTED_RESULT

    async def test_partial_approval_answers_declined_calls(self, harness, ev) -> None:
        harness.backend.tool_results["run_command"] = "ok"
        harness.backend.script(
            ev.think("Run two commands."),
            ev.call_tools(
                ("c1", "run_command", {"cmd": "ls"}),
                ("c2", "run_command", {"cmd": "rm -rf /"}),
            ),
            ev.say("Only the listing ran."),
            ev.think("Done.", should_continue=False),
        )
        await harness.driver.start_react_agent("chat-1")
        (first, _) = harness.driver.pending_tool_calls()

        await harness.driver.continue_after_tool_confirm([first], "chat-1")

        (execution,) = harness.backend.commands("execute_mcp_tool_call")
        assert execution["arguments"] == {"cmd": "ls"}
        answers = {m.tool_call_id: m.content for m in harness.conversation.messages if m.role == "tool"}
        assert answers == {"c1": '"ok"', "c2": REJECTED_RESULT}
        for request in harness.backend.commands("chat_completion")[2:]:
            assert unanswered(request) == set()


class TestBudget:
    async def test_iteration_limit(self, harness, ev) -> None:
        harness.backend.tool_results["read_file"] = "more"
        scripts = {
            "THINK": lambda: ev.think("Keep going."),
            "ACT": lambda: ev.call_tools((ToolCall.create("read_file").id, "read_file", {})),
            "OBSERVE": lambda: ev.say("Still more."),
        }
        harness.backend.responder = lambda args: scripts[phase_of(args)]()

        await harness.driver.start_react_agent("chat-1")

        assert len(completions(harness)) == 3 * DEFAULT_MAX_ITERATIONS
        assert len(harness.backend.commands("execute_mcp_tool_call")) == DEFAULT_MAX_ITERATIONS
        harness.notifier.warning.assert_called_once_with(
            f"Reached the maximum number of iterations ({DEFAULT_MAX_ITERATIONS})"
        )
        assert not harness.driver.is_running


class TestStopping:
    async def test_stop_during_think(self, harness, ev) -> None:
        harness.backend.script([ev.content("Thinking"), ev.WAIT])
        run = asyncio.create_task(harness.driver.start_react_agent("chat-1"))
        await harness.backend.waiting.wait()

        await harness.driver.stop_react_agent()
        await run

        assert completions(harness) == ["THINK"]
        assert len(harness.backend.commands("stop_chat_stream")) == 1
        assert not harness.driver.is_running
        assert harness.driver.status.value.is_streaming is False
        harness.notifier.error.assert_not_called()
        harness.notifier.warning.assert_not_called()

    async def test_start_while_running_is_ignored(self, harness, ev) -> None:
        harness.backend.script([ev.WAIT])
        run = asyncio.create_task(harness.driver.start_react_agent("chat-1"))
        await harness.backend.waiting.wait()

        await harness.driver.start_react_agent("chat-1")
        assert len(harness.backend.commands("chat_completion")) == 1

        await harness.driver.stop_react_agent()
        await run

    async def test_stop_during_tool_call(self, harness, ev, make_server, monkeypatch) -> None:
        harness.registry.set_servers([make_server("fs", "read_file", "list_dir", is_default=True)])
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_execute(call, turn) -> str:
            started.set()
            await release.wait()
            return "done"

        monkeypatch.setattr(harness.dispatcher, "execute", slow_execute)
        harness.backend.script(
            ev.think("Read both."),
            ev.call_tools(("c1", "read_file", {}), ("c2", "list_dir", {})),
        )
        run = asyncio.create_task(harness.driver.start_react_agent("chat-1"))
        await started.wait()

        await harness.driver.stop_react_agent()
        release.set()
        await run

        answers = {m.tool_call_id: m.content for m in harness.conversation.messages if m.role == "tool"}
        assert answers == {"c1": "done", "c2": CANCELLED_RESULT}
        assert completions(harness) == ["THINK", "ACT"]
        assert not harness.driver.is_running

    async def test_stop_when_idle(self, harness) -> None:
        await harness.driver.stop_react_agent()
        assert not harness.driver.is_running


class TestFailures:
    async def test_transport_failure_is_reported(self, harness, ev) -> None:
        harness.backend.script([RuntimeError("provider unreachable")])

        await harness.driver.start_react_agent("chat-1")

        harness.notifier.error.assert_called_once_with("AI conversation failed: provider unreachable")
        assert not harness.driver.is_running
        assert harness.driver.status.value == AgentStatus()

    async def test_phase_reported_while_running(self, harness, ev) -> None:
        phases: list[ReActPhase] = []
        harness.driver.status.subscribe(lambda s: phases.append(s.current_phase))
        harness.backend.script(ev.think("Answer.", should_continue=False))

        await harness.driver.start_react_agent("chat-1")

        assert ReActPhase.THOUGHT in phases
        assert phases[-1] is ReActPhase.IDLE
