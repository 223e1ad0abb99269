"""Read-only score lookup using only the rule engine."""

from __future__ import annotations

import logging
import time
from typing import List

from pydantic import BaseModel, Field

from passport_oracle.errors import ConfigurationError
from passport_oracle.ledger.client import LedgerClient
from passport_oracle.ledger.identifiers import parse_chain_id, parse_owner
from passport_oracle.scoring.context import build_observation_context
from passport_oracle.scoring.models import AchievementEntry
from passport_oracle.scoring.strategy import RuleBasedStrategy, build_rule_strategy
from passport_oracle.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)


class QuickScoreResponse(BaseModel):
    """Freshly computed score for an owner, without any write."""

    owner: str
    score: int
    achievements: List[AchievementEntry] = Field(default_factory=list)
    method: str
    processing_time_ms: int


class QuickScoreService:
    """Score one owner from their home chain activity."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        client: LedgerClient | None = None,
        strategy: RuleBasedStrategy | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client or LedgerClient(settings=self.settings)
        self.strategy = strategy or build_rule_strategy(self.settings)

    def _home_chain(self, owner: str, record_chain: str | None) -> str:
        if record_chain:
            return parse_chain_id(record_chain)
        fallback = self.settings.ledger.operation_chain_id
        if not fallback:
            raise ConfigurationError("ledger.operation_chain_id is required for owners without a passport")
        LOGGER.warning("No passport found for owner %s, using operation_chain_id", owner)
        return parse_chain_id(fallback)

    def score(self, raw_owner: str) -> QuickScoreResponse:
        """Compute the owner's score and achievements.

        Raises:
            ParseError: If ``raw_owner`` is not a valid owner address.
            NetworkError: If the passport list cannot be fetched.
            SchemaError: If the rule document is invalid.
        """

        started = time.perf_counter()
        owner = parse_owner(raw_owner)
        record = self.client.record_by_owner(owner)
        chain_id = self._home_chain(owner, record.owner_chain if record else None)

        try:
            events = self.client.owner_activity(owner, chain_id)
        except Exception as exc:
            LOGGER.warning("Activity unavailable for %s on %s, scoring without it: %s", owner, chain_id, exc)
            events = []

        context = build_observation_context(
            owner=owner,
            events=events,
            token_id=record.token_id if record else None,
        )
        outcome = self.strategy.evaluate(context)
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        LOGGER.info(
            "Quick score calculated for %s: score=%s achievements=%s processing_time_ms=%s",
            owner,
            outcome.result.score,
            len(outcome.result.achievements),
            elapsed_ms,
        )
        return QuickScoreResponse(
            owner=raw_owner,
            score=outcome.result.score,
            achievements=list(outcome.result.achievements),
            method=outcome.method,
            processing_time_ms=elapsed_ms,
        )


__all__ = ["QuickScoreResponse", "QuickScoreService"]
