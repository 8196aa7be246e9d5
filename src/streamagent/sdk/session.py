"""AgentSession — wires the agent core, local backend and MCP servers."""

from __future__ import annotations

import logging
from pathlib import Path

from streamagent.core.conversation.state import ConversationState
from streamagent.core.interface.models import ConversationMessage, ToolCall, new_message_id
from streamagent.core.react.driver import ReActDriver
from streamagent.core.react.notifier import Notifier
from streamagent.core.react.phases import PhaseExecutor
from streamagent.core.streaming.adapter import StreamingCallAdapter
from streamagent.core.streaming.bus import EventBus
from streamagent.protocols.executor import SAVE_MESSAGE
from streamagent.protocols.mcp.client import MCPClient
from streamagent.protocols.mcp.models import ConnectionStatus, MCPServerInfo
from streamagent.protocols.registry import ToolRegistry
from streamagent.runtime.backend import LocalBackend
from streamagent.runtime.dispatcher import ToolCallDispatcher
from streamagent.runtime.errors import ApprovalTimeoutError
from streamagent.runtime.gatekeeper.gatekeeper import AutoApproveGatekeeper, Gatekeeper
from streamagent.runtime.gatekeeper.models import ApprovalRequest
from streamagent.runtime.store import MessageStore
from streamagent.sdk.loader import SettingsLoader
from streamagent.sdk.models import AgentSettings
from streamagent.utils.telemetry import configure_telemetry

logger = logging.getLogger(__name__)


class AgentSession:
    """One conversation with a configured agent.

    Usage::

        async with AgentSession.from_yaml("agent.yaml") as session:
            await session.run("Summarize task 42")
            for message in session.conversation.messages:
                print(message.role, message.content)
    """

    def __init__(
        self,
        settings: AgentSettings,
        *,
        chat_id: str | None = None,
        gatekeeper: Gatekeeper | None = None,
        notifier: Notifier | None = None,
        store: MessageStore | None = None,
    ) -> None:
        self.settings = settings
        self.chat_id = chat_id or new_message_id()
        self.gatekeeper: Gatekeeper = gatekeeper or AutoApproveGatekeeper()

        self.bus = EventBus()
        self.registry = ToolRegistry()
        self.conversation = ConversationState()
        self.backend = LocalBackend(
            self.bus,
            models={settings.config_id: settings.model},
            registry=self.registry,
            store=store,
        )
        self.dispatcher = ToolCallDispatcher(
            self.backend,
            self.registry,
            config=settings.gatekeeper.to_config(),
        )
        self.adapter = StreamingCallAdapter(
            self.backend,
            self.bus,
            self.conversation,
            self.registry,
            config_id=settings.config_id,
        )
        self.driver = ReActDriver(
            PhaseExecutor(self.adapter, self.conversation, self.backend, self.registry),
            self.adapter,
            self.conversation,
            self.backend,
            self.dispatcher,
            notifier=notifier,
            max_iterations=settings.max_iterations,
            resource_id=settings.resource_id,
            task_id=settings.task_id,
        )
        self._clients: list[MCPClient] = []

    @classmethod
    def from_yaml(cls, path: str | Path, **kwargs: object) -> AgentSession:
        return cls(SettingsLoader(path).load(), **kwargs)  # type: ignore[arg-type]

    async def __aenter__(self) -> AgentSession:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def connect(self) -> None:
        """Configure telemetry, connect enabled MCP servers, fill the registry.

        A server that fails to connect is recorded with ``error`` status;
        its tools are simply not callable.
        """
        telemetry = self.settings.telemetry
        if telemetry is not None and telemetry.enabled:
            configure_telemetry(otlp_endpoint=telemetry.otlp_endpoint)

        servers: list[MCPServerInfo] = []
        for ref in self.settings.mcp_servers:
            if not ref.enabled:
                servers.append(MCPServerInfo.from_ref(ref))
                continue

            client = MCPClient(ref)
            try:
                await client.connect()
                await client.discover_tools()
            except Exception:
                logger.warning("MCP server %s unavailable", ref.name, exc_info=True)
                await client.close()
                servers.append(MCPServerInfo.from_ref(ref, status=ConnectionStatus.ERROR))
                continue

            self._clients.append(client)
            self.backend.add_client(client)
            servers.append(client.info())

        self.registry.set_servers(servers)

    async def close(self) -> None:
        clients, self._clients = self._clients, []
        for client in clients:
            try:
                await client.close()
            except Exception:
                logger.warning("Error closing MCP server %s", client.ref.name, exc_info=True)

    async def send(self, text: str) -> None:
        """Add a user message and run the loop until it ends or pauses."""
        message = ConversationMessage.user(text)
        self.conversation.append(message)
        await self.backend.invoke(
            SAVE_MESSAGE,
            {"chat_id": self.chat_id, "role": "user", "content": text, "message_id": message.id},
        )
        await self.driver.start_react_agent(self.chat_id)

    async def confirm_pending(self) -> bool:
        """Ask the gatekeeper about paused calls and resume with the approved ones.

        Returns ``False`` when nothing was approved (the paused run is
        discarded) or nothing was pending.
        """
        pending = self.driver.pending_tool_calls()
        if not self.driver.is_paused or not pending:
            return False

        approved: list[ToolCall] = []
        for call in pending:
            server = self.registry.find_tool_server(call.name)
            request = ApprovalRequest.for_call(call, server=server.name if server else None)
            try:
                result = await self.gatekeeper.request_approval(request)
            except ApprovalTimeoutError:
                logger.warning("No answer for %s; treating as denied", call.name)
                continue
            if result.approved:
                approved.append(call)

        if not approved:
            logger.info("All pending tool calls rejected")
            await self.driver.stop_react_agent()
            return False

        await self.driver.continue_after_tool_confirm(approved, self.chat_id)
        return True

    async def run(self, text: str) -> list[ConversationMessage]:
        """Send *text* and keep confirming pauses until the loop settles."""
        await self.send(text)
        while self.driver.is_paused:
            if not await self.confirm_pending():
                break
        return self.conversation.messages

    def sync_history(self) -> None:
        """Merge the stored history of this chat into the live conversation."""
        self.conversation.merge(self.backend.store.messages(self.chat_id))
