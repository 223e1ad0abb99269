"""Fan activity queries out across chains and merge the results."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Protocol, Sequence, Tuple

from passport_oracle.activity.models import NormalizedEvent
from passport_oracle.errors import ParseError
from passport_oracle.observability import Observability

from .identifiers import parse_chain_id

LOGGER = logging.getLogger(__name__)


class ActivitySource(Protocol):
    def owner_activity(self, owner: str, chain_id: str) -> List[NormalizedEvent]: ...


@dataclass
class CollectionResult:
    """Merged events plus the chains whose query failed."""

    events: List[NormalizedEvent] = field(default_factory=list)
    queried_chains: List[str] = field(default_factory=list)
    failed_chains: List[str] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        return bool(self.queried_chains) and len(self.failed_chains) == len(self.queried_chains)


def resolve_chains(home_chain: str, configured: Sequence[str] = ()) -> List[str]:
    """Return the home chain followed by each valid configured chain.

    Malformed configured ids are logged and skipped; duplicates are dropped.
    """

    chains = [home_chain]
    for raw in configured:
        try:
            chain_id = parse_chain_id(raw)
        except ParseError as exc:
            LOGGER.warning("Failed to parse cross-chain ID %r, skipping: %s", raw, exc)
            continue
        if chain_id not in chains:
            chains.append(chain_id)
    return chains


class CrossChainCollector:
    """Collect an owner's activity from several chains concurrently.

    A failing chain contributes no events; the other chains are still returned.
    """

    def __init__(
        self,
        source: ActivitySource,
        *,
        max_workers: int = 4,
        observability: Observability | None = None,
    ) -> None:
        self.source = source
        self.max_workers = max(1, max_workers)
        self._obs = observability

    def _fetch(self, owner: str, chain_id: str) -> Tuple[List[NormalizedEvent], bool]:
        try:
            events = self.source.owner_activity(owner, chain_id)
        except Exception as exc:
            LOGGER.warning(
                "Failed to fetch activity from chain %s for %s, continuing with other chains: %s",
                chain_id,
                owner,
                exc,
            )
            if self._obs:
                self._obs.emit_event(
                    "collector.chain_failed",
                    level=logging.WARNING,
                    owner=owner,
                    chain_id=chain_id,
                    error=str(exc),
                )
                self._obs.increment("collector.chain_failed")
            return [], False
        LOGGER.debug("Fetched %s events from chain %s", len(events), chain_id)
        return events, True

    def collect_detailed(self, owner: str, chain_ids: Sequence[str]) -> CollectionResult:
        """Query every chain and report which ones failed."""

        result = CollectionResult(queried_chains=list(chain_ids))
        if not chain_ids:
            return result
        LOGGER.info("Fetching cross-chain activity for %s across %s chains", owner, len(chain_ids))
        if len(chain_ids) == 1:
            batches = [self._fetch(owner, chain_ids[0])]
        else:
            workers = min(self.max_workers, len(chain_ids))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="collector") as pool:
                batches = list(pool.map(lambda chain: self._fetch(owner, chain), chain_ids))

        for chain_id, (events, ok) in zip(chain_ids, batches):
            if not ok:
                result.failed_chains.append(chain_id)
            result.events.extend(events)
        LOGGER.info("Cross-chain activity aggregated for %s: %s events", owner, len(result.events))
        return result

    def collect(self, owner: str, chain_ids: Sequence[str]) -> List[NormalizedEvent]:
        """Return the concatenation of every chain's events, in chain order."""

        return self.collect_detailed(owner, chain_ids).events


__all__ = ["ActivitySource", "CollectionResult", "CrossChainCollector", "resolve_chains"]
