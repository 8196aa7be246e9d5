"""Think / Act / Observe — the three phase calls of one ReAct iteration.

Each phase builds its prompt variant from the turn's focus and the callable
tool list, runs one streamed turn through the adapter, then post-processes:

- think: tools off; reads the ``<agent_meta>`` continuation signal and, on
  stop, strips it from the visible answer (memory and durable copy)
- act: tools on whenever any tool is callable; no post-processing
- observe: tools off; returns the summary verbatim
"""

from __future__ import annotations

import logging

from streamagent.core.conversation.state import ConversationState
from streamagent.core.interface.models import AgentMeta, TurnContext, TurnResult
from streamagent.core.parsing.meta import extract_meta, strip_meta
from streamagent.core.react import prompts
from streamagent.core.streaming.adapter import StreamingCallAdapter
from streamagent.protocols.executor import SAVE_MESSAGE, CommandExecutor
from streamagent.protocols.registry import ToolRegistry
from streamagent.utils.telemetry import ATTR_CHAT_ID, ATTR_PHASE, ATTR_TOOL_CALL_COUNT, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


class PhaseExecutor:
    """Runs the phase calls of the loop against one conversation."""

    def __init__(
        self,
        adapter: StreamingCallAdapter,
        conversation: ConversationState,
        executor: CommandExecutor,
        registry: ToolRegistry,
    ) -> None:
        self._adapter = adapter
        self._conversation = conversation
        self._executor = executor
        self._registry = registry

    async def think(self, turn: TurnContext) -> AgentMeta | None:
        """Reasoning turn; returns the continuation signal, or ``None`` if absent."""
        with _tracer.start_as_current_span("react.phase.think") as span:
            span.set_attribute(ATTR_PHASE, "think")
            span.set_attribute(ATTR_CHAT_ID, turn.chat_id)

            tools = self._registry.tool_infos()
            prompt = prompts.thought_prompt(turn.resource_id, turn.task_id, tools)
            result = await self._adapter.call(turn, prompt, allow_tools=False)

            meta = extract_meta(result.content)
            logger.debug("Think meta: %s", meta)
            if meta is not None and not meta.should_continue:
                await self._commit_answer(turn, result)
            return meta

    async def act(self, turn: TurnContext) -> TurnResult:
        """Acting turn; may produce text, tool calls or both."""
        with _tracer.start_as_current_span("react.phase.act") as span:
            span.set_attribute(ATTR_PHASE, "act")
            span.set_attribute(ATTR_CHAT_ID, turn.chat_id)

            tools = self._registry.tool_infos()
            prompt = prompts.action_prompt(turn.resource_id, turn.task_id, tools)
            result = await self._adapter.call(turn, prompt, allow_tools=bool(tools))
            span.set_attribute(ATTR_TOOL_CALL_COUNT, len(result.tool_calls or ()))
            return result

    async def observe(self, turn: TurnContext) -> str:
        """Summary turn over the latest tool results."""
        with _tracer.start_as_current_span("react.phase.observe") as span:
            span.set_attribute(ATTR_PHASE, "observe")
            span.set_attribute(ATTR_CHAT_ID, turn.chat_id)

            prompt = prompts.observation_prompt(turn.resource_id, turn.task_id)
            result = await self._adapter.call(turn, prompt, allow_tools=False)
            return result.content

    async def _commit_answer(self, turn: TurnContext, result: TurnResult) -> None:
        """Replace the think message with its meta-free visible text."""
        visible = strip_meta(result.content)
        if not visible:
            # Left empty; the meta reason is never shown as the answer.
            logger.warning("Think turn %s carried only a meta block and no visible answer", result.message_id)

        self._conversation.patch(result.message_id, content=visible)
        try:
            await self._executor.invoke(
                SAVE_MESSAGE,
                {
                    "chat_id": turn.chat_id,
                    "role": "assistant",
                    "content": visible,
                    "tool_calls": None,
                    "tool_call_id": None,
                    "name": None,
                    "reasoning": result.reasoning,
                    "message_id": result.message_id,
                },
            )
        except Exception:
            logger.exception("Failed to update think message %s", result.message_id)
