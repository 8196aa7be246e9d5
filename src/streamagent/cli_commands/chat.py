"""``streamagent chat`` — run one user turn through the ReAct loop."""

from __future__ import annotations

import asyncio
import sys

import click

from streamagent.cli_commands._output import (
    RichNotifier,
    configure_logging,
    console,
    print_conversation,
)


@click.command()
@click.argument("settings", type=click.Path(exists=True, dir_okay=False))
@click.option("--message", "-m", required=True, help="The user message to send.")
@click.option("--yes", "-y", is_flag=True, help="Approve every paused tool call.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--telemetry", is_flag=True, help="Enable telemetry.")
def chat(settings: str, message: str, yes: bool, verbose: bool, telemetry: bool) -> None:
    """Send MESSAGE to the agent configured in the SETTINGS yaml file."""
    from streamagent.runtime.gatekeeper.gatekeeper import (
        AutoApproveGatekeeper,
        CLIGatekeeper,
        Gatekeeper,
    )
    from streamagent.sdk.loader import SettingsLoader
    from streamagent.sdk.models import TelemetrySettings
    from streamagent.sdk.session import AgentSession

    configure_logging(verbose)

    try:
        agent_settings = SettingsLoader(settings).load()
    except Exception as exc:
        console.print(f"[red]Validation error:[/red] {exc}")
        sys.exit(1)

    if telemetry:
        if agent_settings.telemetry is None:
            agent_settings.telemetry = TelemetrySettings(enabled=True)
        else:
            agent_settings.telemetry.enabled = True

    gatekeeper: Gatekeeper = (
        AutoApproveGatekeeper()
        if yes
        else CLIGatekeeper(timeout=agent_settings.gatekeeper.approval_timeout, console=console)
    )

    if verbose:
        console.print(f"Agent: {agent_settings.name or agent_settings.model.model}")

    async def _run() -> None:
        async with AgentSession(agent_settings, gatekeeper=gatekeeper, notifier=RichNotifier()) as session:
            try:
                await session.run(message)
            finally:
                print_conversation(session.conversation.messages)

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted.[/yellow]")
        sys.exit(130)
    except Exception as exc:
        console.print(f"[red]Execution error:[/red] {exc}")
        sys.exit(1)
