"""Pydantic models exchanged between the aggregation, scoring, and delta stages."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_RECORD_ID = "unknown"


class ActionSummary(BaseModel):
    """Counter for one activity category key (e.g. ``user_operation:<app>``)."""

    model_config = ConfigDict(frozen=True)

    action_type: str
    count: int = Field(ge=0)
    last_seen: int | None = None


class ObservationContext(BaseModel):
    """Unit of work handed to a scoring strategy for a single owner."""

    model_config = ConfigDict(frozen=True)

    record_id: str = UNKNOWN_RECORD_ID
    owner: str
    actions: Tuple[ActionSummary, ...] = ()
    aggregates: Dict[str, int] = Field(default_factory=dict)

    @property
    def total_transactions(self) -> int:
        return sum(action.count for action in self.actions)

    def aggregate(self, name: str) -> int:
        return int(self.aggregates.get(name, 0))

    def action(self, action_type: str) -> ActionSummary | None:
        for summary in self.actions:
            if summary.action_type == action_type:
                return summary
        return None

    def to_payload(self) -> Dict[str, Any]:
        """JSON-compatible representation sent to generative evaluators."""

        return self.model_dump(mode="json")


class AchievementEntry(BaseModel):
    """A matched achievement with its optional point value."""

    code: str
    explanation: str
    points: int | None = Field(default=None, ge=0)

    @property
    def display(self) -> str:
        """Formatted string stored on-chain: ``"<code>: <explanation>"``."""

        return f"{self.code}: {self.explanation}"


class AchievementResult(BaseModel):
    """Score and ordered achievements produced by one evaluation."""

    score: int = Field(default=0, ge=0)
    achievements: List[AchievementEntry] = Field(default_factory=list)

    def display_strings(self) -> List[str]:
        return [entry.display for entry in self.achievements]


class ScoreBreakdown(BaseModel):
    """Components of the rule-engine score formula."""

    total_transactions: int
    base: int
    daily_bonus: int
    age_bonus: int
    achievement_points: int

    @property
    def total(self) -> int:
        return self.base + self.daily_bonus + self.age_bonus + self.achievement_points


class PriorState(BaseModel):
    """Score and achievement strings already recorded on-chain."""

    score: int = Field(default=0, ge=0)
    achievements: List[str] = Field(default_factory=list)


class UpdateDelta(BaseModel):
    """Minimal additive update for one record."""

    new_achievements: List[str] = Field(default_factory=list)
    score_increase: int = Field(default=0, ge=0)

    @property
    def is_empty(self) -> bool:
        return not self.new_achievements and self.score_increase == 0
