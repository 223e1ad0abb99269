"""Generative-model scoring with a fixed scoring contract embedded in the prompt."""

from __future__ import annotations

import json
import logging
import math
from typing import Any, List

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel, Field, ValidationError

from passport_oracle.errors import ConfigurationError, GenerativeScoringError
from passport_oracle.settings import Settings, get_settings

from .models import AchievementEntry, AchievementResult, ObservationContext

LOGGER = logging.getLogger(__name__)

CONTRACT_TRANSACTIONS_PER_POINT = 10
MILESTONES = (
    (10, "MILESTONE_10", 10),
    (50, "MILESTONE_50", 25),
    (100, "MILESTONE_100", 50),
    (500, "MILESTONE_500", 100),
)

SYSTEM_PROMPT = """Analyze blockchain wallet activity. Follow these EXACT scoring rules:

RULE 1: Base Score (mandatory)
- Formula: total_transactions / 10, rounded down
- Example: 100 tx = 10 points, 500 tx = 50 points

RULE 2: One-time Achievements (award once only):
- CONWAY_PARTICIPANT: +100 points (if any user_operation exists)
- APP_CREATOR: +100 points (if create_application detected)
- NFT_INTERACTION: +50 points (if NFT contract interaction detected)

RULE 3: Transaction Milestones (one-time each):
- MILESTONE_10: +10 points (if total_tx >= 10)
- MILESTONE_50: +25 points (if total_tx >= 50)
- MILESTONE_100: +50 points (if total_tx >= 100)
- MILESTONE_500: +100 points (if total_tx >= 500)

IMPORTANT:
1. Base score MUST be exactly: total_tx / 10, rounded down
2. Each achievement awarded ONCE only
3. Return ONLY JSON, no markdown
4. Explain your reasoning

Return this exact JSON structure:
{
  "score": <base_score + achievement_points>,
  "achievements": [
    {"code": "ACHIEVEMENT_CODE", "explanation": "why awarded", "points": <number>}
  ],
  "reasoning": "Your analysis"
}"""


class _ReplyAchievement(BaseModel):
    code: str
    explanation: str
    points: int = Field(ge=0)


class _ScoringReply(BaseModel):
    score: float
    achievements: List[_ReplyAchievement]
    reasoning: str = ""


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```") and stripped.endswith("```"):
        lines = stripped.splitlines()
        if len(lines) >= 2:
            return "\n".join(lines[1:-1]).strip()
    return stripped


def _round_score(value: float) -> int:
    if not math.isfinite(value) or value <= 0:
        return 0
    return int(math.floor(value + 0.5))


def contract_base_score(context: ObservationContext) -> int:
    return context.total_transactions // CONTRACT_TRANSACTIONS_PER_POINT


def validate_against_contract(result: AchievementResult, context: ObservationContext) -> None:
    """Reject replies whose score does not follow the embedded formula.

    Raises:
        GenerativeScoringError: If the score differs from base plus awarded points.
    """

    expected = contract_base_score(context) + sum(entry.points or 0 for entry in result.achievements)
    if result.score != expected:
        raise GenerativeScoringError(
            f"generative score {result.score} does not match contract total {expected}"
        )


def _message_text(content: Any) -> str:
    """Flatten chat message content (plain text or a list of content blocks)."""

    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and isinstance(block.get("text"), str):
                parts.append(block["text"])
        return "".join(parts)
    raise GenerativeScoringError(f"generative model returned unsupported content type {type(content).__name__}")


def parse_scoring_reply(content: Any) -> AchievementResult:
    """Parse the model's JSON reply into an :class:`AchievementResult`.

    ``content`` may be a string or a list of text content blocks.

    Raises:
        GenerativeScoringError: If the reply is empty, not JSON, or off-schema.
    """

    payload = _strip_code_fence(_message_text(content))
    if not payload:
        raise GenerativeScoringError("generative model returned an empty reply")
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise GenerativeScoringError("generative model returned unparseable JSON") from exc
    try:
        reply = _ScoringReply.model_validate(data)
    except ValidationError as exc:
        raise GenerativeScoringError(f"generative reply does not match schema: {exc.error_count()} errors") from exc

    if reply.reasoning:
        LOGGER.info("LLM analysis complete: score=%s reasoning=%s", reply.score, reply.reasoning)
    return AchievementResult(
        score=_round_score(reply.score),
        achievements=[
            AchievementEntry(code=item.code, explanation=item.explanation, points=item.points)
            for item in reply.achievements
        ],
    )


class GenerativeEvaluator:
    """Execute the scoring prompt using the configured chat model provider."""

    def __init__(self, *, settings: Settings | None = None, client: Any | None = None) -> None:
        self.settings = settings or get_settings()
        self.provider = (self.settings.llm.provider or "none").lower()
        self._client = client if client is not None else self._build_client()

    def _build_client(self):
        if self.provider == "mock":
            return None

        if self.provider == "ollama":
            if not self.settings.llm.base_url:
                raise ConfigurationError("llm.base_url is required for the ollama provider")
            from langchain_ollama import ChatOllama

            client_kwargs: dict[str, Any] = {"timeout": self.settings.llm.timeout_seconds}
            if self.settings.llm.api_key:
                client_kwargs["headers"] = {"Authorization": f"Bearer {self.settings.llm.api_key}"}
            return ChatOllama(
                model=self.settings.llm.chat_model,
                base_url=self.settings.llm.base_url.rstrip("/").removesuffix("/v1"),
                temperature=self.settings.llm.temperature,
                format="json",
                client_kwargs=client_kwargs,
            )
        raise ConfigurationError(f"generative scoring is not configured (provider={self.provider!r})")

    def build_messages(self, context: ObservationContext) -> list:
        observation = {
            "total_transactions": context.total_transactions,
            "context": context.to_payload(),
        }
        human_prompt = f"USER DATA:\n{json.dumps(observation, indent=2)}\n\nReturn the JSON object now."
        return [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=human_prompt)]

    def evaluate(self, context: ObservationContext) -> AchievementResult:
        """Score ``context`` with the generative model.

        Raises:
            GenerativeScoringError: On any transport, parsing, or contract failure.
        """

        if self.provider == "mock":
            result = self._mock_evaluate(context)
        else:
            try:
                response = self._client.invoke(self.build_messages(context))
            except Exception as exc:
                raise GenerativeScoringError(f"generative model call failed: {exc}") from exc
            result = parse_scoring_reply(getattr(response, "content", None))

        if self.settings.llm.strict_validation:
            validate_against_contract(result, context)
        return result

    def _mock_evaluate(self, context: ObservationContext) -> AchievementResult:
        """Apply the prompt contract locally, without a model call."""

        total = context.total_transactions
        achievements: List[AchievementEntry] = []
        if context.action("user_operation") is not None:
            achievements.append(
                AchievementEntry(code="CONWAY_PARTICIPANT", explanation="Used a user application", points=100)
            )
        if context.action("create_application") is not None:
            achievements.append(AchievementEntry(code="APP_CREATOR", explanation="Created an application", points=100))
        for threshold, code, points in MILESTONES:
            if total >= threshold:
                achievements.append(
                    AchievementEntry(code=code, explanation=f"Reached {threshold} transactions", points=points)
                )
        score = contract_base_score(context) + sum(entry.points or 0 for entry in achievements)
        return AchievementResult(score=score, achievements=achievements)


__all__ = [
    "GenerativeEvaluator",
    "SYSTEM_PROMPT",
    "contract_base_score",
    "parse_scoring_reply",
    "validate_against_contract",
]
