"""Shared error types for the collaborator protocols."""


class ProtocolError(Exception):
    """Base error for all protocol-layer failures."""


class ConnectionError(ProtocolError):
    """Failed to connect to an external service."""


class CommandNotFoundError(ProtocolError):
    """The command executor has no handler for the requested command."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown command: {name}")


class ToolNotFoundError(ProtocolError):
    """No callable server exposes the requested tool."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not found: {name}")


class ToolExecutionError(ProtocolError):
    """A tool invocation failed at the server side."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"Tool execution failed: {name}" + (f": {detail}" if detail else ""))
