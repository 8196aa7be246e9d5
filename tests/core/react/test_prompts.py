"""Tests for the phase prompt variants."""

from streamagent.core.react import prompts
from streamagent.protocols.registry import ToolInfo

TOOLS = [ToolInfo("read_file", "Read a file"), ToolInfo("search", "")]


class TestSystemPrompt:
    def test_no_focus(self) -> None:
        assert "Current context" not in prompts.system_prompt()

    def test_focus_lines(self) -> None:
        text = prompts.system_prompt("res-1", "task-9")
        assert "Current resource id: res-1" in text
        assert "Current task id: task-9" in text

    def test_resource_only(self) -> None:
        text = prompts.system_prompt(resource_id="res-1")
        assert "res-1" in text
        assert "task id" not in text


class TestToolList:
    def test_empty(self) -> None:
        assert prompts.format_tool_list([]) == ""

    def test_lines(self) -> None:
        text = prompts.format_tool_list(TOOLS)
        assert "- read_file: Read a file" in text
        assert "- search: No description provided." in text


class TestPhasePrompts:
    def test_thought_requests_meta_block(self) -> None:
        text = prompts.thought_prompt(tools=TOOLS)
        assert "THINK step" in text
        assert '<agent_meta>{"shouldContinue"' in text
        assert "read_file" in text

    def test_action_lists_tools(self) -> None:
        text = prompts.action_prompt("res-1", None, TOOLS)
        assert "ACT step" in text
        assert "read_file" in text
        assert "res-1" in text

    def test_observation_has_no_tool_list(self) -> None:
        text = prompts.observation_prompt()
        assert "OBSERVE step" in text
        assert "Available tools" not in text
