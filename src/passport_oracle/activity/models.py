"""Uniform event representation for owner activity observed on the ledger.

Each :class:`NormalizedEvent` carries the ordering key of the operation on its
origin chain (``height``, ``operation_index``) and one of three activity
variants. Events from different chains are never ordered against each other.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

MICROS_PER_SECOND = 1_000_000
SECONDS_PER_DAY = 86_400


@dataclass(frozen=True, slots=True)
class SystemTransfer:
    """Native token transfer signed by the owner."""

    amount: str
    recipient: str | None

    def category_keys(self) -> tuple[str, ...]:
        return ("system_transfer",)


@dataclass(frozen=True, slots=True)
class UserOperation:
    """Call into a user application with an opaque payload."""

    application_id: str
    payload: bytes = b""

    def category_keys(self) -> tuple[str, ...]:
        # specific key first, then the generic one
        return (f"user_operation:{self.application_id}", "user_operation")


@dataclass(frozen=True, slots=True)
class CreateApplication:
    """Creation of a new application from a published module."""

    module_id: str

    def category_keys(self) -> tuple[str, ...]:
        return ("create_application", f"create_application:{self.module_id}")


ActivityKind = Union[SystemTransfer, UserOperation, CreateApplication]


@dataclass(frozen=True, slots=True)
class NormalizedEvent:
    """One owner operation observed on a single chain.

    Attributes:
        owner: Account identity the event is attributed to.
        chain_id: Origin chain of the operation.
        height: Block height on the origin chain.
        operation_index: Position of the operation within its block.
        kind: Activity variant with its identifying fields.
        timestamp: Block timestamp in microseconds since the epoch, if known.
    """

    owner: str
    chain_id: str
    height: int
    operation_index: int
    kind: ActivityKind
    timestamp: int | None = None

    @property
    def ordering_key(self) -> tuple[int, int]:
        return (self.height, self.operation_index)

    @property
    def timestamp_seconds(self) -> int | None:
        if self.timestamp is None:
            return None
        return self.timestamp // MICROS_PER_SECOND

    @property
    def day_bucket(self) -> int | None:
        seconds = self.timestamp_seconds
        if seconds is None:
            return None
        return seconds // SECONDS_PER_DAY

    def category_keys(self) -> tuple[str, ...]:
        return self.kind.category_keys()
