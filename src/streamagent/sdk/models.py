"""Pydantic models for the agent settings YAML consumed by ``streamagent chat``."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from streamagent.core.interface.config import ModelConfig
from streamagent.core.react.driver import DEFAULT_MAX_ITERATIONS
from streamagent.protocols.mcp.models import MCPServerRef
from streamagent.runtime.gatekeeper.models import GatekeeperConfig, PolicyAction, ToolPolicy


class TelemetrySettings(BaseModel):
    """Optional telemetry configuration."""

    enabled: bool = False
    otlp_endpoint: str | None = None


class GatekeeperSettings(BaseModel):
    """Tool trust policy as written in YAML."""

    enabled: bool = True
    default_action: Literal["allow", "deny", "ask"] = "ask"
    safe_tools: list[str] = []
    policies: list[ToolPolicy] = []
    approval_timeout: float = 300.0

    def to_config(self) -> GatekeeperConfig:
        return GatekeeperConfig(
            enabled=self.enabled,
            default_action=PolicyAction(self.default_action),
            safe_tools=self.safe_tools,
            policies=self.policies,
            approval_timeout=self.approval_timeout,
        )


class AgentSettings(BaseModel):
    """Top-level agent settings parsed from YAML."""

    version: str = "1"
    name: str = ""
    model: ModelConfig
    config_id: str = "default"
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=1)
    resource_id: str | None = None
    task_id: str | None = None
    mcp_servers: list[MCPServerRef] = []
    gatekeeper: GatekeeperSettings = Field(default_factory=GatekeeperSettings)
    telemetry: TelemetrySettings | None = None

    @model_validator(mode="after")
    def _validate_servers(self) -> AgentSettings:
        seen: set[str] = set()
        for ref in self.mcp_servers:
            if ref.server_key in seen:
                msg = f"duplicate MCP server key '{ref.server_key}'"
                raise ValueError(msg)
            seen.add(ref.server_key)

            if ref.transport == "stdio" and not ref.command:
                msg = f"MCP server '{ref.name}' uses stdio and requires 'command'"
                raise ValueError(msg)
            if ref.transport == "websocket" and not ref.url:
                msg = f"MCP server '{ref.name}' uses websocket and requires 'url'"
                raise ValueError(msg)
        return self
