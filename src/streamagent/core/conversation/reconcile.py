"""Message reconciliation — merge a produced batch with user-authored messages.

A producer (an agent framework, or persisted history being reloaded) hands
over its own complete view of the conversation.  User messages the producer
does not know about must survive, framework-internal "user" prompts must not
leak into the visible conversation, and nothing may be duplicated or
reordered.
"""

from collections.abc import Iterable, Sequence

from streamagent.core.interface.models import ConversationMessage

INTERNAL_USER_PREFIXES: tuple[str, ...] = ("planner-user-", "executor-user-")


def is_internal(message: ConversationMessage, prefixes: Sequence[str] = INTERNAL_USER_PREFIXES) -> bool:
    """True for synthetic user prompts a framework injects for its own agents."""
    return message.role == "user" and message.id.startswith(tuple(prefixes))


def reconcile_messages(
    previous: Iterable[ConversationMessage],
    incoming: Iterable[ConversationMessage],
    *,
    internal_prefixes: Sequence[str] = INTERNAL_USER_PREFIXES,
) -> list[ConversationMessage]:
    """Merge *incoming* over *previous*.

    - user messages from *previous* are kept unless *incoming* carries the
      same id (the incoming copy wins)
    - internal user messages are dropped from both sides
    - the result is de-duplicated by id (first occurrence wins) and sorted
      by timestamp; ties keep their merge order
    """
    kept_users = [
        msg
        for msg in previous
        if msg.role == "user" and not is_internal(msg, internal_prefixes)
    ]
    produced = [msg for msg in incoming if not is_internal(msg, internal_prefixes)]
    produced_ids = {msg.id for msg in produced}

    merged: list[ConversationMessage] = []
    seen: set[str] = set()
    for msg in [*(m for m in kept_users if m.id not in produced_ids), *produced]:
        if msg.id in seen:
            continue
        seen.add(msg.id)
        merged.append(msg)

    return sorted(merged, key=lambda m: m.timestamp)
