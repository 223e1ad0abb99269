"""Construction of the :class:`ObservationContext` for one owner."""

from __future__ import annotations

from typing import Sequence

from passport_oracle.activity.aggregator import aggregate
from passport_oracle.activity.models import NormalizedEvent

from .models import UNKNOWN_RECORD_ID, ObservationContext


def build_observation_context(
    *,
    owner: str,
    events: Sequence[NormalizedEvent],
    token_id: bytes | None = None,
    now_micros: int | None = None,
) -> ObservationContext:
    """Aggregate ``events`` into the immutable context handed to scoring.

    Args:
        owner: Account identity being evaluated.
        events: Normalized activity collected for the owner across chains.
        token_id: Binary record identifier; hex encoded into ``record_id``.
        now_micros: Reference time for wallet age, defaults to the current time.
    """

    actions, aggregates = aggregate(events, now_micros=now_micros)
    return ObservationContext(
        record_id=token_id.hex() if token_id else UNKNOWN_RECORD_ID,
        owner=owner,
        actions=tuple(actions),
        aggregates=aggregates.as_dict(),
    )
