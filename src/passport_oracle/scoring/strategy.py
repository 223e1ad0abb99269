"""Scoring strategies and the primary/fallback composition."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from passport_oracle.observability import Observability, get_observability
from passport_oracle.settings import Settings, get_settings

from .engine import RuleEngine
from .generative import GenerativeEvaluator
from .models import AchievementResult, ObservationContext

LOGGER = logging.getLogger(__name__)

RULE_BASED = "rule-based"
GENERATIVE = "llm"


@dataclass(frozen=True)
class ScoringOutcome:
    """Result of a strategy together with the method that produced it."""

    result: AchievementResult
    method: str


class ScoringStrategy(Protocol):
    name: str

    def evaluate(self, context: ObservationContext) -> ScoringOutcome: ...


class RuleBasedStrategy:
    """Deterministic scoring from the rule document (reloaded every call)."""

    name = RULE_BASED

    def __init__(self, engine: RuleEngine) -> None:
        self.engine = engine

    def evaluate(self, context: ObservationContext) -> ScoringOutcome:
        return ScoringOutcome(result=self.engine.evaluate(context), method=self.name)


class GenerativeStrategy:
    """Generative-model scoring; the evaluator is built on first use."""

    name = GENERATIVE

    def __init__(
        self,
        *,
        settings: Settings,
        evaluator_factory: Callable[[], GenerativeEvaluator] | None = None,
    ) -> None:
        self.settings = settings
        self._factory = evaluator_factory or (lambda: GenerativeEvaluator(settings=settings))
        self._evaluator: GenerativeEvaluator | None = None

    def evaluate(self, context: ObservationContext) -> ScoringOutcome:
        if self._evaluator is None:
            self._evaluator = self._factory()
        result = self._evaluator.evaluate(context)
        LOGGER.info(
            "LLM scoring successful for %s: score=%s achievements=%s",
            context.record_id,
            result.score,
            len(result.achievements),
        )
        return ScoringOutcome(result=result, method=self.name)


class FallbackStrategy:
    """Try ``primary`` and fall back to ``fallback`` when it fails.

    The fallback applies to a single call; the next call tries ``primary`` again.
    """

    def __init__(
        self,
        primary: ScoringStrategy,
        fallback: ScoringStrategy,
        *,
        observability: Observability | None = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"
        self._obs = observability

    def evaluate(self, context: ObservationContext) -> ScoringOutcome:
        try:
            return self.primary.evaluate(context)
        except Exception as exc:
            LOGGER.warning(
                "%s scoring failed for %s, falling back to %s: %s",
                self.primary.name,
                context.record_id,
                self.fallback.name,
                exc,
            )
            if self._obs:
                self._obs.emit_event(
                    "scoring.fallback",
                    level=logging.WARNING,
                    record_id=context.record_id,
                    primary=self.primary.name,
                    error=str(exc),
                )
                self._obs.increment("scoring.fallback", tags={"primary": self.primary.name})
        return self.fallback.evaluate(context)


def build_rule_strategy(settings: Settings | None = None) -> RuleBasedStrategy:
    resolved = settings or get_settings()
    return RuleBasedStrategy(RuleEngine(resolved.rules_path))


def build_scoring_strategy(
    settings: Settings | None = None,
    *,
    observability: Observability | None = None,
) -> ScoringStrategy:
    """Compose the scoring chain for the configured providers."""

    resolved = settings or get_settings()
    rules = build_rule_strategy(resolved)
    if not resolved.llm.enabled:
        LOGGER.info("Generative scoring disabled; using rule-based scoring")
        return rules
    obs = observability or get_observability(component="scoring", settings=resolved)
    return FallbackStrategy(GenerativeStrategy(settings=resolved), rules, observability=obs)


__all__ = [
    "FallbackStrategy",
    "GENERATIVE",
    "GenerativeStrategy",
    "RULE_BASED",
    "RuleBasedStrategy",
    "ScoringOutcome",
    "ScoringStrategy",
    "build_rule_strategy",
    "build_scoring_strategy",
]
