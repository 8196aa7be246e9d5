"""System prompt variants for the Think / Act / Observe phases.

The ``<agent_meta>`` block requested from Think is the private contract
read back by :func:`streamagent.core.parsing.meta.extract_meta`.
"""

from collections.abc import Sequence

from streamagent.core.parsing.tags import META_TAG
from streamagent.protocols.registry import ToolInfo

_BASE_PROMPT = """\
You are a capable assistant that works through a task step by step.

Before calling any tool, check whether the conversation already contains
the information you need. Call a tool only when:
1. the information is not in the conversation at all,
2. the information in the conversation may be stale, or
3. the user explicitly asked to fetch or refresh it.

When tool results are long, extract the key points instead of repeating
them in full.\
"""

_CONTEXT_SECTION = """\


Current context:{resource}{task}\
"""

_RESOURCE_LINE = """
- Current resource id: {resource_id}. Tools can look up its details; check the conversation first."""

_TASK_LINE = """
- Current task id: {task_id}. Tools can look up its details; check the conversation first."""

_TOOL_SECTION = """\


Available tools:
{tool_list}\
"""

_THOUGHT_INSTRUCTIONS = """\


You are in the THINK step. Do not call tools now.
Reason about the user's request and everything gathered so far, then
decide whether more work (tool calls) is needed.

- If more work is needed, briefly describe what to do next.
- If you can answer now, write the complete answer for the user.

Always end your reply with exactly one block of this form:

<{tag}>{{"shouldContinue": true | false, "reason": "<why>"}}</{tag}>

Set "shouldContinue" to false only when your reply already contains the
final answer.\
"""

_ACTION_INSTRUCTIONS = """\


You are in the ACT step. Carry out the plan from the previous step:
call the tools you need, or answer directly if no tool is required.\
"""

_OBSERVATION_INSTRUCTIONS = """\


You are in the OBSERVE step. Do not call tools now.
Summarize what the tool results above show, in plain language, noting
anything that failed or is still missing.\
"""


def system_prompt(resource_id: str | None = None, task_id: str | None = None) -> str:
    """The shared base prompt, with a context section when a focus is set."""
    prompt = _BASE_PROMPT
    if resource_id or task_id:
        prompt += _CONTEXT_SECTION.format(
            resource=_RESOURCE_LINE.format(resource_id=resource_id) if resource_id else "",
            task=_TASK_LINE.format(task_id=task_id) if task_id else "",
        )
    return prompt


def format_tool_list(tools: Sequence[ToolInfo]) -> str:
    if not tools:
        return ""
    lines = "\n".join(f"- {tool.name}: {tool.description or 'No description provided.'}" for tool in tools)
    return _TOOL_SECTION.format(tool_list=lines)


def thought_prompt(
    resource_id: str | None = None,
    task_id: str | None = None,
    tools: Sequence[ToolInfo] = (),
) -> str:
    return system_prompt(resource_id, task_id) + format_tool_list(tools) + _THOUGHT_INSTRUCTIONS.format(tag=META_TAG)


def action_prompt(
    resource_id: str | None = None,
    task_id: str | None = None,
    tools: Sequence[ToolInfo] = (),
) -> str:
    return system_prompt(resource_id, task_id) + format_tool_list(tools) + _ACTION_INSTRUCTIONS


def observation_prompt(resource_id: str | None = None, task_id: str | None = None) -> str:
    return system_prompt(resource_id, task_id) + _OBSERVATION_INSTRUCTIONS
