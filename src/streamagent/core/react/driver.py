"""ReActDriver — the think → act → observe loop.

Per iteration: think; stop if the continuation signal is missing or says
stop; act; stop if no tool calls; pause if any call needs confirmation;
otherwise run the calls one after another, observe, and go again.  The loop
is bounded by ``max_iterations`` and can be stopped at any time.

The public coroutines never raise for loop-level failures: errors are
logged and shown through the :class:`Notifier`, and a user stop ends the
run silently.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from streamagent.core.conversation.state import ConversationState, Observable
from streamagent.core.errors import StreamStoppedError
from streamagent.core.interface.models import (
    AgentStatus,
    ConversationMessage,
    ReActPhase,
    ToolCall,
    TurnContext,
)
from streamagent.core.react.notifier import LoggingNotifier, Notifier
from streamagent.core.react.phases import PhaseExecutor
from streamagent.core.streaming.adapter import StreamingCallAdapter
from streamagent.protocols.executor import SAVE_MESSAGE, CommandExecutor
from streamagent.utils.telemetry import (
    ATTR_CHAT_ID,
    ATTR_ITERATION,
    ATTR_MAX_ITERATIONS,
    ATTR_OUTCOME,
    ATTR_TOOL_CALL_COUNT,
    get_tracer,
)

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

DEFAULT_MAX_ITERATIONS = 10

REJECTED_RESULT = "Tool call rejected by user"
CANCELLED_RESULT = "Tool call cancelled before it ran"


@runtime_checkable
class ToolRunner(Protocol):
    """Classifies and executes the tool calls an Act turn produced."""

    def all_trusted(self, tool_calls: Sequence[ToolCall]) -> bool:
        """``True`` when every call may run without user confirmation."""
        ...

    async def execute(self, call: ToolCall, turn: TurnContext) -> str:
        """Run one call; return its result as text or raise."""
        ...


class IterationOutcome(str, Enum):
    CONTINUE = "continue"
    FINISHED = "finished"
    PAUSED = "paused"


class ReActDriver:
    """Drives one conversation through bounded ReAct iterations.

    Usage::

        driver = ReActDriver(phases, adapter, conversation, backend, dispatcher)
        driver.status.subscribe(render_progress)
        await driver.start_react_agent("chat-1")
        if driver.is_paused:
            await driver.continue_after_tool_confirm(driver.pending_tool_calls(), "chat-1")
    """

    def __init__(
        self,
        phases: PhaseExecutor,
        adapter: StreamingCallAdapter,
        conversation: ConversationState,
        executor: CommandExecutor,
        tools: ToolRunner,
        *,
        notifier: Notifier | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        resource_id: str | None = None,
        task_id: str | None = None,
    ) -> None:
        if max_iterations < 1:
            msg = "max_iterations must be at least 1"
            raise ValueError(msg)
        self._phases = phases
        self._adapter = adapter
        self._conversation = conversation
        self._executor = executor
        self._tools = tools
        self._notifier: Notifier = notifier or LoggingNotifier()
        self._max_iterations = max_iterations
        self.resource_id = resource_id
        self.task_id = task_id

        self.status: Observable[AgentStatus] = Observable(AgentStatus())
        self._iteration = 0
        self._running = False
        self._paused = False
        self._stopped = False
        self._chat_id: str | None = None

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_paused(self) -> bool:
        return self._paused

    def pending_tool_calls(self) -> list[ToolCall]:
        """The calls awaiting confirmation, from the message that carries them."""
        message = self._conversation.find_last(lambda m: bool(m.pending_tool_calls))
        return list(message.pending_tool_calls or ()) if message is not None else []

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    async def start_react_agent(self, chat_id: str) -> None:
        """Run the loop for *chat_id* from a fresh iteration budget."""
        if self._running:
            logger.warning("ReAct run already active; ignoring start for %s", chat_id)
            return
        self._iteration = 0
        await self._run(chat_id, confirmed=None)

    async def continue_after_tool_confirm(self, tool_calls: Sequence[ToolCall], chat_id: str) -> None:
        """Execute confirmed calls, observe, then resume the paused loop.

        Pending calls missing from *tool_calls* are answered as rejected.
        """
        if self._running:
            logger.warning("ReAct run already active; ignoring resume for %s", chat_id)
            return
        await self._run(chat_id, confirmed=list(tool_calls))

    async def stop_react_agent(self) -> None:
        """Stop the current run; no further phase or tool call starts.

        Stopping a paused run discards its pending tool calls, answering each
        as rejected.  A tool call already running still records its result.
        """
        self._stopped = True
        if self._paused:
            self._paused = False
            self._iteration = 0
            pending = self.pending_tool_calls()
            self._clear_pending()
            if self._chat_id is not None:
                turn = self._turn(self._chat_id)
                for call in pending:
                    await self._answer(call, REJECTED_RESULT, turn)
        await self._adapter.cancel()
        self._set_status(is_streaming=False)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def _run(self, chat_id: str, confirmed: list[ToolCall] | None) -> None:
        self._running = True
        self._paused = False
        self._stopped = False
        self._adapter.reset()
        self._chat_id = chat_id
        turn = self._turn(chat_id)
        self._set_status(is_streaming=True, current_iteration=self._iteration)

        paused = False
        exhausted = False
        with _tracer.start_as_current_span("react.run") as span:
            span.set_attribute(ATTR_CHAT_ID, chat_id)
            span.set_attribute(ATTR_MAX_ITERATIONS, self._max_iterations)
            try:
                if confirmed is not None:
                    approved = {call.id for call in confirmed}
                    declined = [c for c in self.pending_tool_calls() if c.id not in approved]
                    self._clear_pending()
                    for call in declined:
                        await self._answer(call, REJECTED_RESULT, turn)
                    await self._execute_tools(confirmed, turn)
                    if not self._stopped:
                        await self._observe(turn)

                while not self._stopped:
                    if self._iteration >= self._max_iterations:
                        exhausted = True
                        break
                    self._iteration += 1
                    self._set_status(current_iteration=self._iteration)
                    logger.info("ReAct iteration %d/%d", self._iteration, self._max_iterations)

                    outcome = await self._run_iteration(turn)
                    if outcome is IterationOutcome.PAUSED:
                        paused = True
                        break
                    if outcome is IterationOutcome.FINISHED:
                        break
            except StreamStoppedError:
                logger.info("ReAct run for %s stopped by user", chat_id)
            except Exception as exc:
                logger.exception("ReAct run for %s failed", chat_id)
                self._notifier.error(f"AI conversation failed: {exc}")
            finally:
                if exhausted:
                    logger.warning("ReAct run hit the iteration limit (%d)", self._max_iterations)
                    self._notifier.warning(
                        f"Reached the maximum number of iterations ({self._max_iterations})"
                    )
                span.set_attribute(ATTR_ITERATION, self._iteration)
                span.set_attribute(ATTR_OUTCOME, _outcome_label(paused, exhausted, self._stopped))
                self._paused = paused and not self._stopped
                if not self._paused:
                    self._iteration = 0
                self._running = False
                self.status.set(AgentStatus())

    async def _run_iteration(self, turn: TurnContext) -> IterationOutcome:
        with _tracer.start_as_current_span("react.iteration") as span:
            span.set_attribute(ATTR_ITERATION, self._iteration)

            self._set_status(current_phase=ReActPhase.THOUGHT)
            meta = await self._phases.think(turn)
            if meta is None:
                logger.info("Think produced no continuation signal; ending run")
                return IterationOutcome.FINISHED
            if not meta.should_continue:
                logger.info("Think finished the task: %s", meta.reason)
                return IterationOutcome.FINISHED

            self._set_status(current_phase=ReActPhase.ACTION)
            result = await self._phases.act(turn)
            if not result.tool_calls:
                logger.info("Act returned no tool calls; ending run")
                return IterationOutcome.FINISHED
            span.set_attribute(ATTR_TOOL_CALL_COUNT, len(result.tool_calls))

            if not self._tools.all_trusted(result.tool_calls):
                logger.info("%d tool calls need confirmation; pausing", len(result.tool_calls))
                self._attach_pending(result.tool_calls)
                return IterationOutcome.PAUSED

            await self._execute_tools(result.tool_calls, turn)
            if self._stopped:
                return IterationOutcome.FINISHED
            await self._observe(turn)
            return IterationOutcome.CONTINUE

    async def _execute_tools(self, tool_calls: Sequence[ToolCall], turn: TurnContext) -> None:
        """Run *tool_calls* in order; every call ends up with a tool message."""
        for call in tool_calls:
            if self._stopped:
                logger.info("Stop requested; skipping tool call %s", call.id)
                await self._answer(call, CANCELLED_RESULT, turn)
                continue
            try:
                output = await self._tools.execute(call, turn)
            except Exception as exc:
                logger.warning("Tool call %s (%s) failed", call.name, call.id, exc_info=True)
                output = f"Tool call failed: {exc}"
                self._notifier.error(output)
            await self._answer(call, output, turn)

    async def _observe(self, turn: TurnContext) -> None:
        self._set_status(current_phase=ReActPhase.OBSERVATION)
        try:
            await self._phases.observe(turn)
        except StreamStoppedError:
            raise
        except Exception:
            logger.exception("Observe phase failed; continuing")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _turn(self, chat_id: str) -> TurnContext:
        return TurnContext(chat_id=chat_id, resource_id=self.resource_id, task_id=self.task_id)

    async def _answer(self, call: ToolCall, output: str, turn: TurnContext) -> None:
        message = ConversationMessage.tool(call, output)
        self._conversation.append(message)
        await self._save(turn, message)

    def _attach_pending(self, tool_calls: Sequence[ToolCall]) -> None:
        target = self._conversation.find_last(lambda m: m.role == "assistant" and bool(m.tool_calls))
        if target is None:
            logger.warning("No assistant message with tool calls to attach pending calls to")
            return
        self._conversation.patch(target.id, pending_tool_calls=list(tool_calls))

    def _clear_pending(self) -> None:
        for message in self._conversation.messages:
            if message.pending_tool_calls:
                self._conversation.patch(message.id, pending_tool_calls=None)

    async def _save(self, turn: TurnContext, message: ConversationMessage) -> None:
        try:
            await self._executor.invoke(
                SAVE_MESSAGE,
                {
                    "chat_id": turn.chat_id,
                    "role": message.role,
                    "content": message.content,
                    "tool_calls": None,
                    "tool_call_id": message.tool_call_id,
                    "name": message.name,
                    "reasoning": None,
                    "message_id": message.id,
                },
            )
        except Exception:
            logger.exception("Failed to save tool message %s", message.id)

    def _set_status(self, **changes: Any) -> None:
        self.status.update(lambda current: current.model_copy(update=changes))


def _outcome_label(paused: bool, exhausted: bool, stopped: bool) -> str:
    if paused:
        return "paused"
    if exhausted:
        return "exhausted"
    return "stopped" if stopped else "finished"
