"""Chat turn orchestrator.

One turn runs sequentially:

1. validate the message (before any paid call),
2. classify the intent,
3. route to exactly one branch by intent type,
4. assemble a single :class:`ChatTurnResponse`.

Every executed stage is recorded on the turn's :class:`CostLedger`, so the
reported cost is the sum of what actually ran.  Failures inside a branch are
logged and turned into an in-band message; cost already recorded on the
turn is kept, and a paid call that fails part-way is charged for what it
consumed.  A store read that fails is treated like a missing document.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from blueprint_chat.agents.edit_proposal import propose_edit
from blueprint_chat.agents.explain import explain
from blueprint_chat.agents.intent_classifier import classify_intent
from blueprint_chat.agents.qa_answer import answer_question
from blueprint_chat.config.models import ResilienceConfig, RetrievalConfig
from blueprint_chat.core.model_registry import ModelRegistry
from blueprint_chat.core.resilience import safe_execute
from blueprint_chat.core.telemetry import trace_span
from blueprint_chat.models.chat import (
    ChatTurnRequest,
    ChatTurnResponse,
    PendingAction,
    SourceRef,
    TurnMetadata,
)
from blueprint_chat.models.domain import (
    SECTION_TITLES,
    ChatIntent,
    ConfidenceLevel,
    ConfidenceResult,
    EditIntent,
    EditResult,
    ExplainIntent,
    GeneralIntent,
    QuestionIntent,
    RegenerateIntent,
    RelatedFactor,
    SourceQuality,
)
from blueprint_chat.providers.base import (
    BaseBlueprintStore,
    BaseRetrieverProvider,
    select_chunks,
)
from blueprint_chat.services.exceptions import (
    AgentFailedError,
    MalformedAgentOutputError,
    MessageRequiredError,
    RetrievalError,
)
from blueprint_chat.services.turn_context import TurnContext

CONFIRM_PROMPT = "Reply **confirm** to apply this change or **cancel** to discard it."

HELP_TEXT = (
    "I'm here to help you with your Strategic Blueprint. You can ask me questions "
    "about it, ask me to change a specific field, or ask why a recommendation "
    "was made."
)


@dataclass
class BranchReply:
    """What a branch contributes to the response envelope."""

    response: str
    confidence: ConfidenceLevel = "medium"
    sources: list[SourceRef] = field(default_factory=list)
    pending_action: PendingAction | None = None
    related_factors: list[RelatedFactor] | None = None
    is_explanation: bool | None = None
    confidence_result: ConfidenceResult | None = None
    source_quality: SourceQuality | None = None


class ChatOrchestrator:
    """Routes a chat turn to the right agent and aggregates its cost.

    Usage::

        orchestrator = ChatOrchestrator(registry, retriever, store)
        response = await orchestrator.handle_turn(document_id, request)
    """

    def __init__(
        self,
        registry: ModelRegistry,
        retriever: BaseRetrieverProvider,
        store: BaseBlueprintStore,
        retrieval_config: RetrievalConfig | None = None,
        resilience: ResilienceConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.registry = registry
        self.retriever = retriever
        self.store = store
        self.retrieval_config = retrieval_config or RetrievalConfig()
        self.resilience = resilience or ResilienceConfig()
        self.logger = logger or logging.getLogger(__name__)

    @property
    def _timeout(self) -> float | None:
        return self.resilience.call_timeout_seconds

    @trace_span("chat_turn")
    async def handle_turn(
        self, document_id: str, request: ChatTurnRequest
    ) -> ChatTurnResponse:
        """Process one chat turn.

        Raises:
            MessageRequiredError: If the message is missing or blank.  No
                external call has been made at that point.
        """
        message = (request.message or "").strip()
        if not message:
            raise MessageRequiredError()

        ctx = TurnContext(
            document_id=document_id,
            message=message,
            conversation_id=request.conversation_id or str(uuid.uuid4()),
            chat_history=list(request.chat_history),
        )

        classification = await classify_intent(
            self.registry, message, timeout=self._timeout
        )
        ctx.ledger.record("classification", classification.usage, classification.cost)
        intent = classification.intent

        reply = await self._route(ctx, intent)

        self.logger.info(
            "Turn %s on %s: intent=%s stages=%s cost=%.6f",
            ctx.conversation_id,
            document_id,
            intent.type,
            [s.stage for s in ctx.ledger.stages],
            ctx.ledger.total_cost,
        )
        return ChatTurnResponse(
            conversation_id=ctx.conversation_id,
            response=reply.response,
            intent=intent,
            sources=reply.sources,
            confidence=reply.confidence,
            metadata=TurnMetadata(
                tokens_used=ctx.ledger.total_tokens,
                cost=ctx.ledger.total_cost,
                processing_time_ms=ctx.elapsed_ms,
                intent_classification_cost=classification.cost,
            ),
            pending_action=reply.pending_action,
            related_factors=reply.related_factors,
            is_explanation=reply.is_explanation,
            confidence_result=reply.confidence_result,
            source_quality=reply.source_quality,
        )

    async def _route(self, ctx: TurnContext, intent: ChatIntent) -> BranchReply:
        match intent:
            case QuestionIntent() | GeneralIntent():
                return await self._answer(ctx)
            case EditIntent():
                return await self._edit(ctx, intent)
            case ExplainIntent():
                return await self._explain(ctx, intent)
            case RegenerateIntent():
                return self._regenerate(intent)
            case _:
                return BranchReply(response=HELP_TEXT)

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    async def _answer(self, ctx: TurnContext) -> BranchReply:
        cfg = self.retrieval_config
        try:
            retrieval = await self.retriever.retrieve(
                ctx.document_id,
                ctx.message,
                match_count=cfg.match_count,
                match_threshold=cfg.match_threshold,
            )
            ctx.ledger.record("embedding", None, retrieval.embedding_cost)
            chunks = select_chunks(
                retrieval.chunks, cfg.match_count, cfg.match_threshold
            )

            qa = await answer_question(
                self.registry,
                ctx.message,
                chunks,
                ctx.chat_history,
                timeout=self._timeout,
            )
            ctx.ledger.record("qa", qa.usage, qa.cost)
        except RetrievalError as e:
            ctx.ledger.record("embedding", None, e.cost)
            self.logger.exception("Retrieval failed for %s", ctx.document_id)
            return self._answer_failed()
        except AgentFailedError as e:
            ctx.ledger.record("qa", e.usage, e.cost)
            self.logger.exception("Question answering failed for %s", ctx.document_id)
            return self._answer_failed()
        except Exception:
            self.logger.exception("Question answering failed for %s", ctx.document_id)
            return self._answer_failed()

        return BranchReply(
            response=qa.answer,
            confidence=qa.confidence,
            sources=[SourceRef.from_chunk(c) for c in chunks],
            confidence_result=qa.confidence_result,
            source_quality=qa.source_quality,
        )

    @staticmethod
    def _answer_failed() -> BranchReply:
        return BranchReply(
            response=(
                "I'm sorry, I ran into a problem while answering your question. "
                "Please try again in a moment."
            ),
            confidence="low",
        )

    async def _edit(self, ctx: TurnContext, intent: EditIntent) -> BranchReply:
        title = SECTION_TITLES.get(intent.section, intent.section)
        section_data = await self._fetch(
            self.store.fetch_section, ctx.document_id, intent.section
        )
        if section_data is None:
            return BranchReply(
                response=(
                    f"I couldn't find the {title} section in this blueprint, "
                    "so there is nothing to edit there yet."
                )
            )

        try:
            proposal = await propose_edit(
                self.registry,
                section_data,
                intent,
                ctx.chat_history,
                timeout=self._timeout,
            )
            ctx.ledger.record("edit", proposal.usage, proposal.cost)
        except (AgentFailedError, MalformedAgentOutputError) as e:
            ctx.ledger.record("edit", e.usage, e.cost)
            self.logger.exception("Edit proposal failed for %s", ctx.document_id)
            return BranchReply(response=self._edit_failed_text(title))
        except Exception:
            self.logger.exception("Edit proposal failed for %s", ctx.document_id)
            return BranchReply(response=self._edit_failed_text(title))

        return BranchReply(
            response=render_edit_proposal(proposal.result),
            confidence="high",
            pending_action=PendingAction(edit_result=proposal.result),
        )

    @staticmethod
    def _edit_failed_text(title: str) -> str:
        return (
            f"I'm sorry, I couldn't prepare an edit for the {title} section. "
            "Could you rephrase what you'd like to change?"
        )

    async def _explain(self, ctx: TurnContext, intent: ExplainIntent) -> BranchReply:
        blueprint = await self._fetch(self.store.fetch_blueprint, ctx.document_id)
        if not blueprint:
            return BranchReply(
                response=(
                    "I couldn't find this blueprint, so I can't explain its "
                    "recommendations right now."
                )
            )

        try:
            result = await explain(
                self.registry,
                blueprint,
                intent,
                ctx.chat_history,
                timeout=self._timeout,
            )
            ctx.ledger.record("explain", result.usage, result.cost)
        except AgentFailedError as e:
            ctx.ledger.record("explain", e.usage, e.cost)
            self.logger.exception("Explanation failed for %s", ctx.document_id)
            return self._explain_failed()
        except Exception:
            self.logger.exception("Explanation failed for %s", ctx.document_id)
            return self._explain_failed()

        return BranchReply(
            response=result.explanation,
            confidence=result.confidence,
            related_factors=result.related_factors,
            is_explanation=True,
        )

    @staticmethod
    def _explain_failed() -> BranchReply:
        return BranchReply(
            response=(
                "I'm sorry, I couldn't put together an explanation for that. "
                "Please try asking again."
            ),
            confidence="low",
        )

    async def _fetch(
        self, fetch: Callable[..., Awaitable[dict[str, Any] | None]], *args: str
    ) -> dict[str, Any] | None:
        """Read from the store with retries; a failed read counts as not found."""
        try:
            return await safe_execute(
                fetch,
                *args,
                attempts=self.resilience.retry_attempts,
                timeout=self._timeout,
            )
        except Exception:
            self.logger.exception(
                "Store read %s failed for %s",
                getattr(fetch, "__name__", repr(fetch)),
                args[0],
            )
            return None

    @staticmethod
    def _regenerate(intent: RegenerateIntent) -> BranchReply:
        title = SECTION_TITLES.get(intent.section, intent.section)
        with_instructions = (
            f' with instructions: "{intent.instructions}"' if intent.instructions else ""
        )
        return BranchReply(
            response=(
                f"I understand you want to regenerate the {title} section"
                f"{with_instructions}. Regenerating sections from chat isn't "
                "available yet. For now, I can answer questions about your "
                "blueprint, propose edits and explain its recommendations."
            )
        )


def render_edit_proposal(edit: EditResult) -> str:
    """User-facing text for a pending edit, ending with the confirm prompt."""
    title = SECTION_TITLES.get(edit.section, edit.section)
    return (
        f"Here's the change I'd propose to **{title}** (`{edit.field_path}`):\n\n"
        f"```diff\n{edit.diff_preview}\n```\n\n"
        f"{edit.explanation}\n\n"
        f"{CONFIRM_PROMPT}"
    )
