"""Always-current state holders.

Long-lived async continuations (stream handlers, the loop driver) must never
act on a snapshot captured when they were created.  ``Observable`` keeps one
directly readable current value, updated synchronously on every transition,
and notifies listeners (the UI) after each change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, Generic, TypeVar

from streamagent.core.conversation.reconcile import reconcile_messages
from streamagent.core.interface.models import ConversationMessage

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class Observable(Generic[T]):
    """A mutable current-value box with change listeners."""

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._listeners: list[Listener[T]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        self._notify()

    def update(self, updater: Callable[[T], T]) -> T:
        """Apply *updater* to the current value and store its result."""
        self._value = updater(self._value)
        self._notify()
        return self._value

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._value)
            except Exception:
                logger.exception("State listener raised")


class ConversationState(Observable[list[ConversationMessage]]):
    """The live message list of one conversation.

    Messages are values: every change replaces the affected message with an
    updated copy and publishes a new list.
    """

    def __init__(self, messages: Iterable[ConversationMessage] = ()) -> None:
        super().__init__(list(messages))

    @property
    def messages(self) -> list[ConversationMessage]:
        return self.value

    def append(self, message: ConversationMessage) -> None:
        self.update(lambda prev: [*prev, message])

    def get(self, message_id: str) -> ConversationMessage | None:
        for msg in self.value:
            if msg.id == message_id:
                return msg
        return None

    def patch(self, message_id: str, **changes: Any) -> ConversationMessage | None:
        """Replace the message *message_id* with a copy carrying *changes*."""
        updated: ConversationMessage | None = None

        def apply(prev: list[ConversationMessage]) -> list[ConversationMessage]:
            nonlocal updated
            result: list[ConversationMessage] = []
            for msg in prev:
                if msg.id == message_id:
                    msg = msg.model_copy(update=changes)
                    updated = msg
                result.append(msg)
            return result

        self.update(apply)
        if updated is None:
            logger.debug("patch for unknown message %s ignored", message_id)
        return updated

    def find_last(
        self, predicate: Callable[[ConversationMessage], bool]
    ) -> ConversationMessage | None:
        for msg in reversed(self.value):
            if predicate(msg):
                return msg
        return None

    def merge(self, incoming: Iterable[ConversationMessage]) -> None:
        """Reconcile a message batch from another producer into this state."""
        batch = list(incoming)
        self.update(lambda prev: reconcile_messages(prev, batch))
