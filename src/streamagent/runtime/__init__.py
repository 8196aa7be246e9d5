"""Runtime layer — local backend, message store, tool dispatch and trust policy."""

from streamagent.runtime.backend import LocalBackend, ToolCallAssembler
from streamagent.runtime.dispatcher import ToolCallDispatcher
from streamagent.runtime.errors import (
    ApprovalDeniedError,
    ApprovalTimeoutError,
    RuntimeSafetyError,
)
from streamagent.runtime.store import MessageStore, StoredMessage

__all__ = [
    "ApprovalDeniedError",
    "ApprovalTimeoutError",
    "LocalBackend",
    "MessageStore",
    "RuntimeSafetyError",
    "StoredMessage",
    "ToolCallAssembler",
    "ToolCallDispatcher",
]
