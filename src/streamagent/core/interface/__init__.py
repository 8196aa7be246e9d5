"""Interface layer — conversation model, model config, wire conversion."""

from streamagent.core.interface.config import ModelConfig
from streamagent.core.interface.models import (
    AgentMeta,
    AgentStatus,
    ConversationMessage,
    ReActPhase,
    ToolCall,
    ToolFunction,
    TurnContext,
    TurnResult,
    new_message_id,
)
from streamagent.core.interface.openai import to_chat_messages

__all__ = [
    "AgentMeta",
    "AgentStatus",
    "ConversationMessage",
    "ModelConfig",
    "ReActPhase",
    "ToolCall",
    "ToolFunction",
    "TurnContext",
    "TurnResult",
    "new_message_id",
    "to_chat_messages",
]
