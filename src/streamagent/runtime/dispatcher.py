"""ToolCallDispatcher — trust classification and execution of tool calls.

Satisfies :class:`streamagent.core.react.driver.ToolRunner`.  A call is
trusted (runs without confirmation) when its server is marked default or
the gatekeeper policy allows the tool.  Execution routes the call to its
owning server through the ``execute_mcp_tool_call`` command and returns the
result serialized as JSON text.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from streamagent.core.interface.models import ToolCall, TurnContext
from streamagent.protocols.errors import ToolNotFoundError
from streamagent.protocols.executor import EXECUTE_MCP_TOOL_CALL, CommandExecutor
from streamagent.protocols.registry import ToolRegistry
from streamagent.runtime.errors import ApprovalDeniedError
from streamagent.runtime.gatekeeper.models import GatekeeperConfig, PolicyAction
from streamagent.runtime.gatekeeper.policy import PolicyEngine
from streamagent.utils.telemetry import ATTR_TOOL_NAME, ATTR_TOOL_SERVER, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


class ToolCallDispatcher:
    """Routes the loop's tool calls through the command executor.

    Usage::

        dispatcher = ToolCallDispatcher(backend, registry, config=GatekeeperConfig(safe_tools=["search"]))
        if dispatcher.all_trusted(result.tool_calls):
            output = await dispatcher.execute(result.tool_calls[0], turn)
    """

    def __init__(
        self,
        executor: CommandExecutor,
        registry: ToolRegistry,
        *,
        config: GatekeeperConfig | None = None,
    ) -> None:
        self._executor = executor
        self._registry = registry
        self._policy = PolicyEngine(config)

    @property
    def policy(self) -> PolicyEngine:
        return self._policy

    def is_trusted(self, call: ToolCall) -> bool:
        server = self._registry.find_tool_server(call.name)
        if server is not None and server.is_default:
            return True
        return self._policy.is_allowed(call.name)

    def all_trusted(self, tool_calls: Sequence[ToolCall]) -> bool:
        return all(self.is_trusted(call) for call in tool_calls)

    async def execute(self, call: ToolCall, turn: TurnContext) -> str:
        """Run *call* on its server and return the JSON-serialized result.

        Raises:
            ApprovalDeniedError: If the policy denies the tool.
            ToolNotFoundError: If no callable server exposes the tool.
        """
        action, rule = self._policy.match(call.name)
        if action is PolicyAction.DENY:
            raise ApprovalDeniedError(call.name, reason=rule.reason if rule and rule.reason else "denied by policy")

        server = self._registry.find_tool_server(call.name)
        if server is None:
            raise ToolNotFoundError(call.name)

        arguments = call.parsed_arguments()
        if not arguments and call.function.arguments.strip() not in ("", "{}"):
            logger.warning("Malformed arguments for %s; calling with {}", call.name)

        with _tracer.start_as_current_span("tool.execute") as span:
            span.set_attribute(ATTR_TOOL_NAME, call.name)
            span.set_attribute(ATTR_TOOL_SERVER, server.server_key)
            result: Any = await self._executor.invoke(
                EXECUTE_MCP_TOOL_CALL,
                {
                    "server_key": server.server_key,
                    "tool_name": call.name,
                    "arguments": arguments,
                    "resource_id": turn.resource_id,
                    "task_id": turn.task_id,
                },
            )

        logger.debug("Tool %s on %s returned", call.name, server.server_key)
        return json.dumps(result, ensure_ascii=False, default=str)
