"""Shared error types for the agent core."""


class AgentError(Exception):
    """Base error for all agent-core failures."""


class StreamStoppedError(AgentError):
    """A streamed turn ended because a stop was requested.

    This is a control-flow signal, not a failure: it is never reported to
    the user.
    """

    def __init__(self, stream_id: str | None = None) -> None:
        self.stream_id = stream_id
        super().__init__("Stream stopped by user" + (f": {stream_id}" if stream_id else ""))


class StreamProtocolError(AgentError):
    """A stream payload could not be interpreted."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__("Malformed stream payload" + (f": {detail}" if detail else ""))
