"""PolicyEngine — resolves a tool name to a :class:`PolicyAction`.

Pure logic, no I/O.  ``safe_tools`` are checked first, then the ordered
``policies`` (first match wins, glob patterns via ``fnmatch``), then
``default_action``.
"""

from __future__ import annotations

import fnmatch

from streamagent.runtime.gatekeeper.models import GatekeeperConfig, PolicyAction, ToolPolicy


class PolicyEngine:
    """Evaluate tool names against a :class:`GatekeeperConfig`."""

    def __init__(self, config: GatekeeperConfig | None = None) -> None:
        self._config = config or GatekeeperConfig()

    @property
    def config(self) -> GatekeeperConfig:
        return self._config

    def evaluate(self, tool_name: str) -> PolicyAction:
        return self.match(tool_name)[0]

    def match(self, tool_name: str) -> tuple[PolicyAction, ToolPolicy | None]:
        """The action for *tool_name* and the rule that decided it, if any."""
        if not self._config.enabled:
            return PolicyAction.ALLOW, None
        if tool_name in self._config.safe_tools:
            return PolicyAction.ALLOW, None
        for policy in self._config.policies:
            if fnmatch.fnmatchcase(tool_name, policy.pattern):
                return policy.action, policy
        return self._config.default_action, None

    def is_allowed(self, tool_name: str) -> bool:
        return self.evaluate(tool_name) is PolicyAction.ALLOW

    def is_denied(self, tool_name: str) -> bool:
        return self.evaluate(tool_name) is PolicyAction.DENY
