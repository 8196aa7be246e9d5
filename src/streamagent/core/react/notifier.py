"""User-visible notifications raised by the loop driver."""

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Shows non-fatal errors and warnings to the user."""

    def error(self, text: str) -> None: ...
    def warning(self, text: str) -> None: ...


class LoggingNotifier:
    """Default notifier: routes notifications to the log."""

    def error(self, text: str) -> None:
        logger.error(text)

    def warning(self, text: str) -> None:
        logger.warning(text)
