"""Gatekeeper protocol and implementations.

A gatekeeper answers the confirmation question for tool calls the loop
paused on.

- ``Gatekeeper`` — runtime-checkable protocol.
- ``CLIGatekeeper`` — asks at the terminal.
- ``AutoApproveGatekeeper`` — always approves (for tests and CI).
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Protocol, runtime_checkable

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from streamagent.runtime.errors import ApprovalTimeoutError
from streamagent.runtime.gatekeeper.models import ApprovalRequest, ApprovalResult

logger = logging.getLogger(__name__)


@runtime_checkable
class Gatekeeper(Protocol):
    """Decides whether a paused tool call may run."""

    async def request_approval(self, request: ApprovalRequest) -> ApprovalResult:
        ...


class AutoApproveGatekeeper:
    """Always approves.

    Satisfies the :class:`Gatekeeper` protocol.
    """

    async def request_approval(self, request: ApprovalRequest) -> ApprovalResult:
        logger.debug("Auto-approving %s", request.tool_name)
        return ApprovalResult(approved=True, reason="auto-approved")


class CLIGatekeeper:
    """Shows the call in a panel and asks ``Approve? [y/N]``.

    Satisfies the :class:`Gatekeeper` protocol.  The blocking prompt runs in
    the default executor; no answer within *timeout* raises
    :class:`ApprovalTimeoutError`.
    """

    def __init__(self, *, timeout: float = 300.0, console: Console | None = None) -> None:
        self._timeout = timeout
        self._console = console or Console()

    async def request_approval(self, request: ApprovalRequest) -> ApprovalResult:
        self._show(request)

        loop = asyncio.get_running_loop()
        try:
            approved: bool = await asyncio.wait_for(
                loop.run_in_executor(None, self._ask),
                timeout=self._timeout,
            )
        except TimeoutError:
            raise ApprovalTimeoutError(request.tool_name, self._timeout) from None

        return ApprovalResult(approved=approved, reason="" if approved else "denied by user")

    def _show(self, request: ApprovalRequest) -> None:
        lines = [f"[bold]Tool:[/bold] {escape(request.tool_name)}"]
        if request.server:
            lines.append(f"[bold]Server:[/bold] {escape(request.server)}")
        if request.arguments:
            lines.append(f"[bold]Arguments:[/bold] {escape(json.dumps(request.arguments, ensure_ascii=False))}")
        if request.reason:
            lines.append(f"[bold]Reason:[/bold] {escape(request.reason)}")
        self._console.print(Panel("\n".join(lines), title="Tool call needs confirmation"))

    @staticmethod
    def _ask() -> bool:
        return click.confirm("Approve?", default=False)
