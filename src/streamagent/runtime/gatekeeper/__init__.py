"""Gatekeeper subsystem — tool trust policy and confirmation gates."""

from streamagent.runtime.gatekeeper.gatekeeper import (
    AutoApproveGatekeeper,
    CLIGatekeeper,
    Gatekeeper,
)
from streamagent.runtime.gatekeeper.models import (
    ApprovalRequest,
    ApprovalResult,
    GatekeeperConfig,
    PolicyAction,
    ToolPolicy,
)
from streamagent.runtime.gatekeeper.policy import PolicyEngine

__all__ = [
    "ApprovalRequest",
    "ApprovalResult",
    "AutoApproveGatekeeper",
    "CLIGatekeeper",
    "Gatekeeper",
    "GatekeeperConfig",
    "PolicyAction",
    "PolicyEngine",
    "ToolPolicy",
]
