"""Fold normalized events into per-category counters and scalar aggregates."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from passport_oracle.scoring.models import ActionSummary

from .models import MICROS_PER_SECOND, SECONDS_PER_DAY, NormalizedEvent


@dataclass(frozen=True)
class ActivityAggregates:
    """Derived scalar aggregates for one owner."""

    total_actions: int
    unique_active_days: int
    wallet_age_days: int

    def as_dict(self) -> Dict[str, int]:
        return {
            "total_actions": self.total_actions,
            "unique_active_days": self.unique_active_days,
            "wallet_age_days": self.wallet_age_days,
        }


def categorize_activity(events: Iterable[NormalizedEvent]) -> Tuple[List[ActionSummary], Set[int]]:
    """Count events per category key and collect distinct active days.

    ``last_seen`` is overwritten by every event processed for a category, in
    processing order. Events are not guaranteed to be time ordered, so this
    is not necessarily the chronologically latest timestamp.

    Returns:
        Action summaries in first-seen order and the set of day buckets.
    """

    counts: Dict[str, int] = {}
    last_seen: Dict[str, int | None] = {}
    unique_days: Set[int] = set()

    for event in events:
        day = event.day_bucket
        if day is not None:
            unique_days.add(day)
        for key in event.category_keys():
            counts[key] = counts.get(key, 0) + 1
            last_seen[key] = event.timestamp

    summaries = [
        ActionSummary(action_type=key, count=count, last_seen=last_seen[key]) for key, count in counts.items()
    ]
    return summaries, unique_days


def wallet_age_days(events: Iterable[NormalizedEvent], *, now_micros: int | None = None) -> int:
    """Whole days between the earliest timestamped event and ``now``; 0 if none."""

    timestamps = [event.timestamp for event in events if event.timestamp is not None]
    if not timestamps:
        return 0
    now = now_micros if now_micros is not None else time.time_ns() // 1_000
    age_micros = max(0, now - min(timestamps))
    return age_micros // MICROS_PER_SECOND // SECONDS_PER_DAY


def compute_aggregates(actions: Sequence[ActionSummary], unique_days: int, age_days: int) -> ActivityAggregates:
    """Build the scalar aggregates from categorized actions.

    ``total_actions`` sums category counts, so an event that maps to two
    category keys contributes twice.
    """

    total = sum(action.count for action in actions)
    return ActivityAggregates(total_actions=total, unique_active_days=unique_days, wallet_age_days=age_days)


def aggregate(
    events: Sequence[NormalizedEvent], *, now_micros: int | None = None
) -> Tuple[List[ActionSummary], ActivityAggregates]:
    """Categorize ``events`` and derive their aggregates in one pass."""

    actions, unique_days = categorize_activity(events)
    age = wallet_age_days(events, now_micros=now_micros)
    return actions, compute_aggregates(actions, len(unique_days), age)
