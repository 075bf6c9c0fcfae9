"""Application-specific exceptions."""

from __future__ import annotations

from blueprint_chat.models.domain import TokenUsage


class ChatError(Exception):
    """Base class for errors raised while processing a chat turn."""


class MessageRequiredError(ChatError):
    """Raised when a chat turn arrives without a usable message."""

    def __init__(self) -> None:
        super().__init__("Message is required")


class BlueprintNotFoundError(ChatError):
    """Raised when the requested blueprint does not exist in the store."""

    def __init__(self, document_id: str) -> None:
        self.document_id = document_id
        super().__init__(f"Blueprint not found: {document_id}")


class StoreError(ChatError):
    """Raised when the blueprint store cannot complete a read or write."""


class RetrievalError(ChatError):
    """Raised when chunk retrieval (embedding or vector search) fails.

    ``cost`` is what the retrieval already spent, e.g. an embedding that
    succeeded before the search failed.
    """

    def __init__(self, message: str, cost: float = 0.0) -> None:
        self.cost = cost
        super().__init__(message)


class MalformedAgentOutputError(ChatError):
    """Raised when an agent returns structurally unusable output."""

    def __init__(
        self,
        agent: str,
        reason: str,
        usage: TokenUsage | None = None,
        cost: float = 0.0,
    ) -> None:
        self.agent = agent
        self.reason = reason
        # The call still ran and was billed
        self.usage = usage or TokenUsage()
        self.cost = cost
        super().__init__(f"Malformed output from {agent} agent: {reason}")


class AgentFailedError(ChatError):
    """Raised when a specialised agent call fails for any reason."""

    def __init__(
        self,
        agent: str,
        cause: BaseException,
        usage: TokenUsage | None = None,
        cost: float = 0.0,
    ) -> None:
        self.agent = agent
        self.cause = cause
        # Requests completed before the failure are billed
        self.usage = usage or TokenUsage()
        self.cost = cost
        super().__init__(f"{agent} agent failed: {cause}")


class InvalidEditError(ChatError):
    """Raised when a pending edit lacks the section or field path to apply it."""
