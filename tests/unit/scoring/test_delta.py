"""Unit tests for update delta computation."""

from __future__ import annotations

from passport_oracle.scoring.delta import compute_delta
from passport_oracle.scoring.models import AchievementEntry, AchievementResult, PriorState


def _result(score, *codes):
    return AchievementResult(
        score=score,
        achievements=[AchievementEntry(code=code, explanation=code.lower()) for code in codes],
    )


def test_first_evaluation_records_everything():
    delta = compute_delta(PriorState(), _result(91, "A", "B"))

    assert delta.new_achievements == ["A: a", "B: b"]
    assert delta.score_increase == 91


def test_already_recorded_achievements_are_not_repeated():
    delta = compute_delta(PriorState(score=90, achievements=["A: a"]), _result(95, "A", "B"))

    assert delta.new_achievements == ["B: b"]
    assert delta.score_increase == 5


def test_score_never_decreases():
    delta = compute_delta(PriorState(score=120, achievements=["A: a"]), _result(80, "A"))

    assert delta.score_increase == 0
    assert delta.is_empty


def test_duplicate_fresh_achievements_are_sent_once():
    delta = compute_delta(PriorState(), _result(0, "A", "A"))

    assert delta.new_achievements == ["A: a"]


def test_changed_explanation_counts_as_new_achievement():
    prior = PriorState(score=0, achievements=["A: old wording"])

    assert compute_delta(prior, _result(0, "A")).new_achievements == ["A: a"]
