"""Canned-response operations assistant."""

from royalty_ops.assistant.responder import (
    RESPONSES,
    ChatMessage,
    OperationsAssistant,
    select_response_key,
)

__all__ = ["RESPONSES", "ChatMessage", "OperationsAssistant", "select_response_key"]
