"""In-memory durable message store backing the ``save_message`` command."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from streamagent.core.interface.models import ConversationMessage, ToolCall, new_message_id

logger = logging.getLogger(__name__)


class StoredMessage(BaseModel):
    """One persisted message row."""

    message_id: str
    chat_id: str
    role: str
    content: str = ""
    tool_calls: str | None = None
    tool_call_id: str | None = None
    name: str | None = None
    reasoning: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_message(self) -> ConversationMessage:
        """Rebuild the conversation message this row stores."""
        tool_calls = None
        if self.tool_calls:
            try:
                tool_calls = [ToolCall.model_validate(tc) for tc in json.loads(self.tool_calls)]
            except (ValueError, TypeError):
                logger.warning("Unreadable tool_calls on stored message %s", self.message_id)
        return ConversationMessage(
            id=self.message_id,
            role=self.role,  # type: ignore[arg-type]
            content=self.content,
            reasoning=self.reasoning,
            tool_calls=tool_calls,
            tool_call_id=self.tool_call_id,
            name=self.name,
            timestamp=self.created_at,
        )


class MessageStore:
    """Chat-scoped message rows, upserted by ``message_id``."""

    def __init__(self) -> None:
        self._chats: dict[str, dict[str, StoredMessage]] = {}

    def save(
        self,
        *,
        chat_id: str,
        role: str,
        content: str = "",
        tool_calls: str | None = None,
        tool_call_id: str | None = None,
        name: str | None = None,
        reasoning: str | None = None,
        message_id: str | None = None,
    ) -> StoredMessage:
        """Insert a row, or update the row with the same *message_id*.

        Updates keep the original creation time.
        """
        rows = self._chats.setdefault(chat_id, {})
        key = message_id or new_message_id()
        fields: dict[str, Any] = {
            "role": role,
            "content": content,
            "tool_calls": tool_calls,
            "tool_call_id": tool_call_id,
            "name": name,
            "reasoning": reasoning,
        }

        existing = rows.get(key)
        if existing is not None:
            row = existing.model_copy(update={**fields, "updated_at": datetime.now(timezone.utc)})
        else:
            row = StoredMessage(message_id=key, chat_id=chat_id, **fields)
        rows[key] = row
        logger.debug("Saved %s message %s in chat %s", role, key, chat_id)
        return row

    def rows(self, chat_id: str) -> list[StoredMessage]:
        """Rows of *chat_id* in insertion order."""
        return list(self._chats.get(chat_id, {}).values())

    def messages(self, chat_id: str) -> list[ConversationMessage]:
        return [row.to_message() for row in self.rows(chat_id)]

    def get(self, chat_id: str, message_id: str) -> StoredMessage | None:
        return self._chats.get(chat_id, {}).get(message_id)
