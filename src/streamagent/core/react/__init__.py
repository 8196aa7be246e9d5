"""ReAct layer — prompts, phase calls, the loop driver."""

from streamagent.core.react.driver import (
    DEFAULT_MAX_ITERATIONS,
    IterationOutcome,
    ReActDriver,
    ToolRunner,
)
from streamagent.core.react.notifier import LoggingNotifier, Notifier
from streamagent.core.react.phases import PhaseExecutor

__all__ = [
    "DEFAULT_MAX_ITERATIONS",
    "IterationOutcome",
    "LoggingNotifier",
    "Notifier",
    "PhaseExecutor",
    "ReActDriver",
    "ToolRunner",
]
