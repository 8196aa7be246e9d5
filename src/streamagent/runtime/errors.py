"""Shared error types for the tool safety layer."""


class RuntimeSafetyError(Exception):
    """Base error for all tool safety failures."""


class ApprovalDeniedError(RuntimeSafetyError):
    """A tool call was refused, by policy or by the user."""

    def __init__(self, tool_name: str, reason: str = "") -> None:
        self.tool_name = tool_name
        self.reason = reason
        msg = f"Approval denied for tool: {tool_name}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class ApprovalTimeoutError(RuntimeSafetyError):
    """Nobody answered a confirmation prompt in time."""

    def __init__(self, tool_name: str, timeout: float) -> None:
        self.tool_name = tool_name
        self.timeout = timeout
        super().__init__(f"Approval timed out for tool: {tool_name} after {timeout}s")
