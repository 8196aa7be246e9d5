"""Event stream subscription service.

- ``EventStream`` — the collaborator contract: subscribe a handler to a
  topic and get back an unsubscribe callable.
- ``EventBus`` — in-process implementation used by the local backend and
  the tests.
- ``Subscription`` — one subscription with an explicit
  ``UNSET → SETTING_UP → ACTIVE → CLOSED`` life cycle, so "subscribe once,
  unsubscribe exactly once" is a checked invariant rather than a convention.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class EventStream(Protocol):
    """Delivers ordered push events for a named topic until unsubscribed."""

    async def subscribe(self, topic: str, handler: Handler) -> Unsubscribe:
        """Register *handler* for *topic*; return a callable that removes it."""
        ...


class EventBus:
    """Synchronous in-process publish/subscribe keyed by topic.

    Satisfies the :class:`EventStream` protocol.  Handlers run in publish
    order on the caller's event loop.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    async def subscribe(self, topic: str, handler: Handler) -> Unsubscribe:
        self._handlers.setdefault(topic, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(topic)
            if handlers and handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    del self._handlers[topic]

        return unsubscribe

    def publish(self, topic: str, payload: Any) -> int:
        """Deliver *payload* to every handler of *topic*; return the count."""
        handlers = list(self._handlers.get(topic, ()))
        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.exception("Handler for %s raised", topic)
        return len(handlers)

    def has_subscribers(self, topic: str) -> bool:
        return bool(self._handlers.get(topic))


class SubscriptionState(str, Enum):
    UNSET = "unset"
    SETTING_UP = "setting_up"
    ACTIVE = "active"
    CLOSED = "closed"


class Subscription:
    """A single-use subscription to one topic."""

    def __init__(self, stream: EventStream, topic: str) -> None:
        self._stream = stream
        self._topic = topic
        self._state = SubscriptionState.UNSET
        self._unsubscribe: Unsubscribe | None = None

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is SubscriptionState.ACTIVE

    async def open(self, handler: Handler) -> None:
        """Subscribe *handler*; only valid from ``UNSET``.

        If :meth:`close` is called while the subscription is being set up,
        the freshly registered handler is removed as soon as setup finishes.
        """
        if self._state is not SubscriptionState.UNSET:
            msg = f"Subscription to {self._topic} is already {self._state.value}"
            raise RuntimeError(msg)

        self._state = SubscriptionState.SETTING_UP
        unsubscribe = await self._stream.subscribe(self._topic, handler)

        if self._state is SubscriptionState.CLOSED:
            unsubscribe()
            return

        self._unsubscribe = unsubscribe
        self._state = SubscriptionState.ACTIVE

    def close(self) -> bool:
        """Tear the subscription down; ``True`` only for the call that did it."""
        if self._state in (SubscriptionState.UNSET, SubscriptionState.CLOSED):
            self._state = SubscriptionState.CLOSED
            return False

        self._state = SubscriptionState.CLOSED
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
        logger.debug("Unsubscribed from %s", self._topic)
        return True
