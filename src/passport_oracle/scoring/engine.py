"""Deterministic rule engine: score formula plus conditional achievements."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Tuple

from .models import AchievementEntry, AchievementResult, ObservationContext, ScoreBreakdown
from .rules import RuleDocument, load_rule_document, parse_condition

LOGGER = logging.getLogger(__name__)


def compute_base_score(total_transactions: int, transactions_per_point: int) -> int:
    """Integer (floor) division of transactions by the per-point ratio."""

    return total_transactions // transactions_per_point


def match_achievements(
    document: RuleDocument, context: ObservationContext, total_transactions: int
) -> List[AchievementEntry]:
    """Return the achievements whose conditions all hold, in document order."""

    matched: List[AchievementEntry] = []
    for rule in document.achievements:
        predicates = parse_condition(rule.condition)
        if all(predicate.matches(context, total_transactions) for predicate in predicates):
            matched.append(AchievementEntry(code=rule.code, explanation=rule.explanation, points=rule.points))
    return matched


def evaluate_document(
    document: RuleDocument, context: ObservationContext
) -> Tuple[AchievementResult, ScoreBreakdown]:
    """Evaluate an already validated rule document against ``context``."""

    params = document.scoring_rules
    total_transactions = context.total_transactions
    achievements = match_achievements(document, context, total_transactions)

    breakdown = ScoreBreakdown(
        total_transactions=total_transactions,
        base=compute_base_score(total_transactions, params.transactions_per_point),
        daily_bonus=context.aggregate("unique_active_days") * params.daily_activity_points,
        age_bonus=context.aggregate("wallet_age_days") * params.wallet_age_points_per_day,
        achievement_points=sum(entry.points or 0 for entry in achievements),
    )
    LOGGER.debug(
        "Score calculation breakdown for %s: transactions=%s base=%s daily=%s age=%s achievements=%s total=%s",
        context.record_id,
        breakdown.total_transactions,
        breakdown.base,
        breakdown.daily_bonus,
        breakdown.age_bonus,
        breakdown.achievement_points,
        breakdown.total,
    )
    return AchievementResult(score=breakdown.total, achievements=achievements), breakdown


class RuleEngine:
    """Load the rule document fresh for each evaluation and apply it."""

    def __init__(self, rules_path: Path | str) -> None:
        self.rules_path = Path(rules_path)

    def load(self) -> RuleDocument:
        return load_rule_document(self.rules_path)

    def evaluate(self, context: ObservationContext) -> AchievementResult:
        """Score ``context``.

        Raises:
            RuleDocumentError: If the document cannot be read or parsed.
            SchemaError: If the document fails validation.
        """

        result, _ = evaluate_document(self.load(), context)
        return result

    def explain(self, context: ObservationContext) -> Tuple[AchievementResult, ScoreBreakdown]:
        """Score ``context`` and return the formula components alongside."""

        return evaluate_document(self.load(), context)
