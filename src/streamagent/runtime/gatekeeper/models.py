"""Data models for tool trust policy and user confirmation."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from streamagent.core.interface.models import ToolCall


class PolicyAction(str, Enum):
    """What a policy rule prescribes for a tool.

    ``ALLOW`` tools run without confirmation, ``ASK`` tools pause the loop
    for confirmation, ``DENY`` tools are refused when executed.
    """

    ALLOW = "allow"
    DENY = "deny"
    ASK = "ask"


class ToolPolicy(BaseModel):
    """A single rule matching tool names to an action."""

    pattern: str = Field(..., description="Tool name or glob pattern (e.g. 'read_*', '*').")
    action: PolicyAction
    reason: str = ""


class GatekeeperConfig(BaseModel):
    """Trust policy for tool calls."""

    enabled: bool = Field(default=True, description="When off, every tool is allowed.")
    default_action: PolicyAction = Field(
        default=PolicyAction.ASK,
        description="Action when no rule matches.",
    )
    safe_tools: list[str] = Field(
        default_factory=list,
        description="Tool names that are always allowed.",
    )
    policies: list[ToolPolicy] = Field(
        default_factory=list,
        description="Ordered rules; first match wins.",
    )
    approval_timeout: float = Field(
        default=300.0,
        description="Seconds to wait for a confirmation answer.",
    )


class ApprovalRequest(BaseModel):
    """One paused tool call presented for confirmation."""

    call_id: str
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    server: str | None = None
    reason: str = ""

    @classmethod
    def for_call(cls, call: ToolCall, *, server: str | None = None, reason: str = "") -> ApprovalRequest:
        return cls(
            call_id=call.id,
            tool_name=call.name,
            arguments=call.parsed_arguments(),
            server=server,
            reason=reason,
        )


class ApprovalResult(BaseModel):
    """The answer to an :class:`ApprovalRequest`."""

    approved: bool
    reason: str = ""
