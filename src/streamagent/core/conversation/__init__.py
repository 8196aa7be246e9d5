"""Conversation layer — live state holders and message reconciliation."""

from streamagent.core.conversation.reconcile import (
    INTERNAL_USER_PREFIXES,
    is_internal,
    reconcile_messages,
)
from streamagent.core.conversation.state import ConversationState, Observable

__all__ = [
    "INTERNAL_USER_PREFIXES",
    "ConversationState",
    "Observable",
    "is_internal",
    "reconcile_messages",
]
