"""Conversion of client-supplied chat history into pydantic-ai messages.

The chat endpoint is stateless: prior turns arrive in the request body as
``{role, content}`` pairs.  Agents receive them as ``message_history`` so the
model sees the conversation the same way it would with server-side memory.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    TextPart,
    UserPromptPart,
)

from blueprint_chat.models.chat import ChatMessage


def recent_history(
    history: Sequence[ChatMessage] | None, max_messages: int
) -> list[ModelMessage] | None:
    """Convert the last *max_messages* entries of *history*.

    Returns ``None`` for an empty history so callers can pass the result
    straight to ``Agent.run(message_history=...)``.
    """
    if not history or max_messages <= 0:
        return None

    messages: list[ModelMessage] = []
    for msg in history[-max_messages:]:
        if msg.role == "user":
            messages.append(ModelRequest(parts=[UserPromptPart(content=msg.content)]))
        else:
            messages.append(ModelResponse(parts=[TextPart(content=msg.content)]))
    return messages
