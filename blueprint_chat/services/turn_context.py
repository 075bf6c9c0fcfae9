"""Per-turn execution context passed between orchestrator stages."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from blueprint_chat.models.chat import ChatMessage
from blueprint_chat.models.domain import TokenUsage


@dataclass(frozen=True)
class StageCost:
    """Tokens and dollars charged by one executed stage."""

    stage: str
    tokens: int
    cost: float


@dataclass
class CostLedger:
    """Append-only record of the stages that actually ran on a turn.

    Skipped stages are never recorded, so totals always equal the sum of
    what executed.
    """

    stages: list[StageCost] = field(default_factory=list)

    def record(self, stage: str, usage: TokenUsage | None, cost: float) -> None:
        self.stages.append(
            StageCost(stage=stage, tokens=usage.total_tokens if usage else 0, cost=cost)
        )

    @property
    def total_tokens(self) -> int:
        return sum(s.tokens for s in self.stages)

    @property
    def total_cost(self) -> float:
        return sum(s.cost for s in self.stages)


@dataclass
class TurnContext:
    """Mutable state of one chat turn, discarded after the response is built."""

    document_id: str
    message: str
    conversation_id: str
    chat_history: list[ChatMessage] = field(default_factory=list)
    ledger: CostLedger = field(default_factory=CostLedger)
    started_at: float = field(default_factory=time.perf_counter)

    @property
    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started_at) * 1000)
