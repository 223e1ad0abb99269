"""Unit tests for the generative evaluator and reply parsing."""

from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from passport_oracle.errors import ConfigurationError, GenerativeScoringError
from passport_oracle.scoring.generative import (
    SYSTEM_PROMPT,
    GenerativeEvaluator,
    parse_scoring_reply,
    validate_against_contract,
)
from passport_oracle.scoring.models import AchievementEntry, AchievementResult, ActionSummary, ObservationContext
from passport_oracle.settings.config import LLMSettings, Settings


def _settings(provider="mock", **llm):
    return Settings(env="test", llm=LLMSettings(provider=provider, **llm))


def _context(actions):
    return ObservationContext(
        record_id="0a",
        owner="0x" + "11" * 32,
        actions=tuple(ActionSummary(action_type=name, count=count) for name, count in actions),
    )


class _StubChat:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def invoke(self, messages):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return SimpleNamespace(content=self.content)


def test_parse_reply_rounds_score_and_keeps_order():
    reply = json.dumps(
        {
            "score": 110.5,
            "achievements": [
                {"code": "CONWAY_PARTICIPANT", "explanation": "Used apps", "points": 100},
                {"code": "MILESTONE_10", "explanation": "10 tx", "points": 10},
            ],
            "reasoning": "two achievements",
        }
    )

    result = parse_scoring_reply(reply)

    assert result.score == 111
    assert [entry.code for entry in result.achievements] == ["CONWAY_PARTICIPANT", "MILESTONE_10"]


def test_parse_reply_accepts_code_fence_and_clamps_negative_score():
    reply = "```json\n" + json.dumps({"score": -4, "achievements": []}) + "\n```"

    assert parse_scoring_reply(reply).score == 0


@pytest.mark.parametrize(
    "content",
    [
        "",
        "not json",
        json.dumps({"achievements": []}),
        json.dumps({"score": 1, "achievements": [{"code": "X"}]}),
        json.dumps({"score": 1, "achievements": [{"code": "X", "explanation": "y", "points": -1}]}),
    ],
)
def test_parse_reply_rejects_malformed_content(content):
    with pytest.raises(GenerativeScoringError):
        parse_scoring_reply(content)


def test_evaluate_sends_prompt_and_parses_reply():
    stub = _StubChat(content=json.dumps({"score": 100, "achievements": []}))
    evaluator = GenerativeEvaluator(settings=_settings("ollama"), client=stub)

    result = evaluator.evaluate(_context([("user_operation", 1)]))

    assert result.score == 100
    system, human = stub.calls[0]
    assert system.content == SYSTEM_PROMPT
    assert '"total_transactions": 1' in human.content


def test_evaluate_wraps_client_failures():
    evaluator = GenerativeEvaluator(settings=_settings("ollama"), client=_StubChat(error=TimeoutError("slow")))

    with pytest.raises(GenerativeScoringError):
        evaluator.evaluate(_context([]))


def test_strict_validation_rejects_off_contract_scores():
    reply = json.dumps({"score": 500, "achievements": [{"code": "A", "explanation": "b", "points": 10}]})
    evaluator = GenerativeEvaluator(settings=_settings("ollama", strict_validation=True), client=_StubChat(reply))

    with pytest.raises(GenerativeScoringError):
        evaluator.evaluate(_context([("system_transfer", 20)]))


def test_strict_validation_rejects_score_above_base_without_achievements():
    reply = json.dumps({"score": 2 + 5, "achievements": []})
    evaluator = GenerativeEvaluator(settings=_settings("ollama", strict_validation=True), client=_StubChat(reply))

    with pytest.raises(GenerativeScoringError):
        evaluator.evaluate(_context([("system_transfer", 20)]))


def test_lenient_validation_accepts_off_contract_scores():
    reply = json.dumps({"score": 2 + 5, "achievements": []})
    evaluator = GenerativeEvaluator(settings=_settings("ollama"), client=_StubChat(reply))

    assert evaluator.evaluate(_context([("system_transfer", 20)])).score == 7


def test_content_blocks_are_flattened():
    blocks = [{"type": "text", "text": json.dumps({"score": 12, "achievements": []})}]
    evaluator = GenerativeEvaluator(settings=_settings("ollama"), client=_StubChat(content=blocks))

    assert evaluator.evaluate(_context([])).score == 12


@pytest.mark.parametrize("content", [42, {"score": 1}, [{"type": "image_url"}]])
def test_unsupported_content_raises_scoring_error(content):
    with pytest.raises(GenerativeScoringError):
        parse_scoring_reply(content)


def test_validate_against_contract_accepts_consistent_result():
    result = AchievementResult(
        score=2 + 10,
        achievements=[AchievementEntry(code="MILESTONE_10", explanation="10 tx", points=10)],
    )

    validate_against_contract(result, _context([("system_transfer", 25)]))


def test_mock_provider_applies_contract_locally():
    evaluator = GenerativeEvaluator(settings=_settings("mock"))
    context = _context([("user_operation:app", 30), ("user_operation", 30), ("create_application", 1)])

    result = evaluator.evaluate(context)

    codes = [entry.code for entry in result.achievements]
    assert codes == ["CONWAY_PARTICIPANT", "APP_CREATOR", "MILESTONE_10", "MILESTONE_50"]
    assert result.score == 6 + 100 + 100 + 10 + 25


def test_disabled_provider_cannot_build_a_client():
    with pytest.raises(ConfigurationError):
        GenerativeEvaluator(settings=_settings("none"))
