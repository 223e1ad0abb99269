"""Models for passport records reported by the ledger node."""

from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from passport_oracle.scoring.models import UNKNOWN_RECORD_ID, PriorState

from .identifiers import decode_token_id


class RecordInfo(BaseModel):
    """Current on-chain passport record.

    The token id is normalized to bytes once, when the record is parsed.
    """

    model_config = ConfigDict(populate_by_name=True)

    token_id: bytes | None = Field(default=None, alias="tokenId")
    owner: str
    owner_chain: str = Field(alias="ownerChain")
    achievements: List[str] = Field(default_factory=list)
    score: int = Field(default=0, ge=0)

    @field_validator("token_id", mode="before")
    @classmethod
    def _decode_token(cls, value: Any) -> bytes | None:
        if isinstance(value, dict):
            value = value.get("id")
        return decode_token_id(value)

    @field_validator("achievements", mode="before")
    @classmethod
    def _default_achievements(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("score", mode="before")
    @classmethod
    def _default_score(cls, value: Any) -> Any:
        return 0 if value is None else value

    @property
    def record_id(self) -> str:
        return self.token_id.hex() if self.token_id else UNKNOWN_RECORD_ID

    def prior_state(self) -> PriorState:
        return PriorState(score=self.score, achievements=list(self.achievements))
