"""Batch oracle pass: score every passport and submit the changes."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List

from passport_oracle.errors import NetworkError, OracleError, ParseError, RuleDocumentError
from passport_oracle.ledger.client import LedgerClient
from passport_oracle.ledger.collector import CrossChainCollector, resolve_chains
from passport_oracle.ledger.identifiers import parse_chain_id, parse_owner
from passport_oracle.ledger.models import RecordInfo
from passport_oracle.ledger.submitter import RecordUpdater
from passport_oracle.observability import Observability, get_observability
from passport_oracle.scoring.context import build_observation_context
from passport_oracle.scoring.delta import compute_delta
from passport_oracle.scoring.models import UpdateDelta
from passport_oracle.scoring.strategy import ScoringStrategy, build_scoring_strategy
from passport_oracle.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)

STATUS_UPDATED = "updated"
STATUS_UNCHANGED = "unchanged"
STATUS_DRY_RUN = "dry_run"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"
STATUS_WRITE_FAILED = "write_failed"


@dataclass
class RecordOutcome:
    """What happened to one passport during a pass."""

    record_id: str
    owner: str
    status: str
    score: int | None = None
    method: str | None = None
    delta: UpdateDelta | None = None
    error: str | None = None


@dataclass
class OracleRunReport:
    outcomes: List[RecordOutcome] = field(default_factory=list)

    def count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def evaluated(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.score is not None)

    @property
    def updated(self) -> int:
        return self.count(STATUS_UPDATED)

    @property
    def skipped(self) -> int:
        return self.count(STATUS_SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(STATUS_FAILED) + self.count(STATUS_WRITE_FAILED)


class OracleService:
    """Coordinates collection, scoring, delta computation, and submission."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        client: LedgerClient | None = None,
        collector: CrossChainCollector | None = None,
        strategy: ScoringStrategy | None = None,
        updater: RecordUpdater | None = None,
        dry_run: bool | None = None,
        observability: Observability | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.obs = observability or get_observability(component="oracle", settings=self.settings)
        self.client = client or LedgerClient(settings=self.settings)
        self.collector = collector or CrossChainCollector(
            self.client,
            max_workers=self.settings.oracle.max_workers,
            observability=self.obs,
        )
        self.strategy = strategy or build_scoring_strategy(self.settings, observability=self.obs)
        self.dry_run = self.settings.oracle.dry_run if dry_run is None else dry_run
        if updater is None and not self.dry_run:
            updater = RecordUpdater(settings=self.settings)
        self.updater = updater
        self._clock = clock or (lambda: time.time_ns() // 1_000)

    def evaluate_record(self, record: RecordInfo) -> RecordOutcome:
        """Score one record and submit its delta.

        Raises:
            ParseError: If the owner, chain, or token id is malformed.
            NetworkError: If no chain could be queried for activity.
            SchemaError: If the rule document is invalid.
        """

        if not record.token_id:
            raise ParseError("Token ID is empty")
        owner = parse_owner(record.owner)
        home_chain = parse_chain_id(record.owner_chain)

        chains = resolve_chains(home_chain, self.settings.ledger.cross_chain_ids)
        collection = self.collector.collect_detailed(owner, chains)
        if collection.all_failed:
            raise NetworkError(f"activity unavailable on every chain for {owner}")

        context = build_observation_context(
            owner=owner,
            events=collection.events,
            token_id=record.token_id,
            now_micros=self._clock(),
        )
        outcome = self.strategy.evaluate(context)
        delta = compute_delta(record.prior_state(), outcome.result)
        result = RecordOutcome(
            record_id=context.record_id,
            owner=owner,
            status=STATUS_UNCHANGED,
            score=outcome.result.score,
            method=outcome.method,
            delta=delta,
        )
        self.obs.emit_event(
            "oracle.record_evaluated",
            record_id=context.record_id,
            total_score=outcome.result.score,
            existing_score=record.score,
            score_delta=delta.score_increase,
            new_achievement_count=len(delta.new_achievements),
            method=outcome.method,
        )

        if delta.is_empty:
            LOGGER.info("No updates needed for %s - passport is up to date", context.record_id)
            return result
        if self.dry_run or self.updater is None:
            LOGGER.info("Dry run mode - skipping submission for %s", context.record_id)
            result.status = STATUS_DRY_RUN
            return result

        try:
            request_id = self.updater.submit_update(home_chain, record.token_id, delta)
        except OracleError as exc:
            LOGGER.error("Failed to submit update for %s: %s", context.record_id, exc)
            self.obs.emit_event("oracle.update_failed", level=logging.ERROR, record_id=context.record_id, error=str(exc))
            self.obs.increment("oracle.update_failed")
            result.status = STATUS_WRITE_FAILED
            result.error = str(exc)
            return result

        self.obs.emit_event("oracle.update_submitted", record_id=context.record_id, request_id=request_id)
        self.obs.increment("oracle.update_submitted")
        result.status = STATUS_UPDATED
        return result

    def _evaluate_isolated(self, record: RecordInfo) -> RecordOutcome:
        try:
            return self.evaluate_record(record)
        except RuleDocumentError as exc:
            LOGGER.error("Rule document unavailable for %s: %s", record.record_id, exc)
            return RecordOutcome(record_id=record.record_id, owner=record.owner, status=STATUS_FAILED, error=str(exc))
        except ParseError as exc:
            LOGGER.warning("Skipping passport owned by %s: %s", record.owner, exc)
            return RecordOutcome(record_id=record.record_id, owner=record.owner, status=STATUS_SKIPPED, error=str(exc))
        except OracleError as exc:
            LOGGER.warning("Failed to evaluate passport %s: %s", record.record_id, exc)
            return RecordOutcome(record_id=record.record_id, owner=record.owner, status=STATUS_FAILED, error=str(exc))
        except Exception as exc:
            LOGGER.exception("Unexpected error evaluating passport %s", record.record_id)
            return RecordOutcome(record_id=record.record_id, owner=record.owner, status=STATUS_FAILED, error=str(exc))

    def run_once(self) -> OracleRunReport:
        """Evaluate every passport once.

        Raises:
            NetworkError: If the record list itself cannot be fetched.
        """

        started = time.perf_counter()
        records = self.client.all_records()
        LOGGER.info("Fetched %s passports", len(records))

        workers = min(self.settings.oracle.max_workers, max(1, len(records)))
        if workers <= 1:
            outcomes = [self._evaluate_isolated(record) for record in records]
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="oracle") as pool:
                outcomes = list(pool.map(self._evaluate_isolated, records))

        report = OracleRunReport(outcomes=outcomes)
        self.obs.record_timing("oracle.run", (time.perf_counter() - started) * 1000)
        LOGGER.info(
            "Oracle pass complete: records=%s evaluated=%s updated=%s skipped=%s failed=%s",
            len(records),
            report.evaluated,
            report.updated,
            report.skipped,
            report.failed,
        )
        return report

    def run_forever(self, stop_event: threading.Event | None = None) -> None:
        """Run passes every ``poll_interval_secs`` until ``stop_event`` is set."""

        stop = stop_event or threading.Event()
        interval = self.settings.oracle.poll_interval_secs
        while not stop.is_set():
            try:
                self.run_once()
            except NetworkError as exc:
                LOGGER.warning("Oracle pass aborted, retrying next cycle: %s", exc)
            except Exception:
                LOGGER.exception("Oracle pass failed unexpectedly, retrying next cycle")
            stop.wait(interval)


__all__ = [
    "OracleRunReport",
    "OracleService",
    "RecordOutcome",
    "STATUS_DRY_RUN",
    "STATUS_FAILED",
    "STATUS_SKIPPED",
    "STATUS_UNCHANGED",
    "STATUS_UPDATED",
    "STATUS_WRITE_FAILED",
]
