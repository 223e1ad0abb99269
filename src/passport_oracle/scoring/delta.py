"""Minimal on-chain update computed from a fresh evaluation."""

from __future__ import annotations

from typing import List

from .models import AchievementResult, PriorState, UpdateDelta


def compute_delta(prior: PriorState, fresh: AchievementResult) -> UpdateDelta:
    """Return the achievements not yet recorded and the non-negative score increase.

    Achievements are compared by their display string (``"<code>: <explanation>"``)
    and keep the order in which ``fresh`` lists them.
    """

    recorded = set(prior.achievements)
    new_achievements: List[str] = []
    for display in fresh.display_strings():
        if display in recorded:
            continue
        recorded.add(display)
        new_achievements.append(display)
    return UpdateDelta(
        new_achievements=new_achievements,
        score_increase=max(0, fresh.score - prior.score),
    )
