"""Rule document schema, loading, and condition predicates.

A rule document is authored outside the oracle and reloaded on every
evaluation so that edits take effect without a restart::

    {
        "scoring_rules": {"transactions_per_point": 10, "daily_activity_points": 10,
                          "wallet_age_points_per_day": 1},
        "achievements": [
            {"code": "WHALE", "explanation": "10+ transactions", "points": 20,
             "condition": {"total_transactions": {"min_count": 10}}}
        ]
    }

Conditions are parsed into a closed set of predicate variants. Keys that are
not recognised become :class:`UnknownPredicate`, which always matches.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError, ValidationInfo, field_validator

from passport_oracle.errors import RuleDocumentError, SchemaError

from .models import ObservationContext

LOGGER = logging.getLogger(__name__)

DEFAULT_TRANSACTIONS_PER_POINT = 10
DEFAULT_DAILY_ACTIVITY_POINTS = 10
DEFAULT_WALLET_AGE_POINTS_PER_DAY = 1


class ScoringRules(BaseModel):
    """Numeric parameters of the score formula.

    A value that is not a non-negative integer is replaced by its default.
    A ratio of zero is rejected.
    """

    model_config = ConfigDict(extra="allow")

    transactions_per_point: int = Field(default=DEFAULT_TRANSACTIONS_PER_POINT, ge=1)
    daily_activity_points: int = Field(default=DEFAULT_DAILY_ACTIVITY_POINTS, ge=0)
    wallet_age_points_per_day: int = Field(default=DEFAULT_WALLET_AGE_POINTS_PER_DAY, ge=0)

    @field_validator("transactions_per_point", "daily_activity_points", "wallet_age_points_per_day", mode="before")
    @classmethod
    def _default_unless_unsigned(cls, value: Any, info: ValidationInfo) -> Any:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            default = cls.model_fields[info.field_name].default
            LOGGER.warning("Invalid scoring_rules.%s=%r, using default %s", info.field_name, value, default)
            return default
        return value


class AchievementRule(BaseModel):
    """One achievement definition from the rule document."""

    model_config = ConfigDict(extra="allow")

    code: StrictStr
    explanation: StrictStr
    points: StrictInt | None = Field(default=None, ge=0)
    condition: Dict[str, Any] | None = None


class RuleDocument(BaseModel):
    """Validated rule document."""

    model_config = ConfigDict(extra="allow")

    scoring_rules: ScoringRules = Field(default_factory=ScoringRules)
    achievements: List[AchievementRule]


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ActionCountPredicate:
    """An action category with this exact key exists, optionally with a minimum count."""

    action_type: str
    min_count: int | None = None

    def matches(self, context: ObservationContext, total_transactions: int) -> bool:
        summary = context.action(self.action_type)
        if summary is None:
            return False
        return self.min_count is None or summary.count >= self.min_count


@dataclass(frozen=True)
class TotalTransactionsPredicate:
    min_count: int | None = None

    def matches(self, context: ObservationContext, total_transactions: int) -> bool:
        return self.min_count is None or total_transactions >= self.min_count


@dataclass(frozen=True)
class AppCreationPredicate:
    """The owner created at least one application."""

    def matches(self, context: ObservationContext, total_transactions: int) -> bool:
        return context.action("create_application") is not None


@dataclass(frozen=True)
class AggregateMinimumPredicate:
    aggregate: str
    minimum: int | None = None

    def matches(self, context: ObservationContext, total_transactions: int) -> bool:
        return self.minimum is None or context.aggregate(self.aggregate) >= self.minimum


@dataclass(frozen=True)
class UnknownPredicate:
    """Placeholder for a key this oracle does not understand; never blocks a match."""

    key: str

    def matches(self, context: ObservationContext, total_transactions: int) -> bool:
        LOGGER.warning("Unknown condition key: %s", self.key)
        return True


Predicate = Union[
    ActionCountPredicate,
    TotalTransactionsPredicate,
    AppCreationPredicate,
    AggregateMinimumPredicate,
    UnknownPredicate,
]


def _threshold(constraint: Any, name: str) -> int | None:
    if not isinstance(constraint, Mapping):
        return None
    value = constraint.get(name)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def parse_predicate(key: str, constraint: Any) -> Predicate:
    """Map one condition entry onto its predicate variant."""

    if key in ("system_transfer", "user_operation"):
        return ActionCountPredicate(action_type=key, min_count=_threshold(constraint, "min_count"))
    if key == "total_transactions":
        return TotalTransactionsPredicate(min_count=_threshold(constraint, "min_count"))
    if key == "app_creation":
        return AppCreationPredicate()
    if key in ("unique_active_days", "wallet_age_days"):
        return AggregateMinimumPredicate(aggregate=key, minimum=_threshold(constraint, "min"))
    return UnknownPredicate(key=key)


def parse_condition(condition: Mapping[str, Any] | None) -> List[Predicate]:
    """Parse a condition object into predicates that are ANDed together."""

    if not condition:
        return []
    return [parse_predicate(key, constraint) for key, constraint in condition.items()]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "<root>"
        parts.append(f"{location}: {error.get('msg')}")
    return ", ".join(parts)


def validate_rule_document(payload: Any) -> RuleDocument:
    """Validate a decoded rule document.

    Raises:
        SchemaError: If the payload does not conform to the rule schema.
    """

    if not isinstance(payload, Mapping):
        raise SchemaError("rules validation error: document must be a JSON object")
    try:
        return RuleDocument.model_validate(dict(payload))
    except ValidationError as exc:
        raise SchemaError(f"rules validation error: {_format_validation_error(exc)}") from exc


def load_rule_document(path: Path | str) -> RuleDocument:
    """Read, parse, and validate the rule document at ``path``.

    Raises:
        RuleDocumentError: If the file cannot be read or is not valid JSON.
        SchemaError: If the document fails validation.
    """

    rules_path = Path(path)
    try:
        raw = rules_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuleDocumentError(f"unable to read rule document {rules_path}: {exc}") from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RuleDocumentError(f"rule document {rules_path} is not valid JSON: {exc}") from exc
    return validate_rule_document(payload)


__all__ = [
    "AchievementRule",
    "ActionCountPredicate",
    "AggregateMinimumPredicate",
    "AppCreationPredicate",
    "Predicate",
    "RuleDocument",
    "ScoringRules",
    "TotalTransactionsPredicate",
    "UnknownPredicate",
    "load_rule_document",
    "parse_condition",
    "parse_predicate",
    "validate_rule_document",
]
