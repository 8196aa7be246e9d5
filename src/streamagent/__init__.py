"""streamagent — streaming ReAct agent controller for chat frontends."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from streamagent.core.react.driver import ReActDriver as ReActDriver
    from streamagent.sdk.session import AgentSession as AgentSession

_LAZY_EXPORTS = {
    "AgentSession": "streamagent.sdk.session",
    "ReActDriver": "streamagent.core.react.driver",
}


def __getattr__(name: str) -> object:
    module_path = _LAZY_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'streamagent' has no attribute {name!r}")
