"""Job entrypoint for the passport oracle polling loop."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from passport_oracle.errors import ConfigurationError, NetworkError
from passport_oracle.services.oracle import OracleRunReport, OracleService
from passport_oracle.settings import Settings, get_settings

LOGGER = logging.getLogger("passport_oracle.worker.jobs.oracle")


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Score passports from ledger activity and submit updates.")
    parser.add_argument("--log-level", default=None, help="Logging level (defaults to runtime.log_level).")
    parser.add_argument("--dry-run", action="store_true", help="Evaluate without submitting to the ledger.")
    parser.add_argument("--once", action="store_true", help="Run a single pass instead of polling.")
    return parser.parse_args(argv)


def _build_service(settings: Settings, *, dry_run: bool) -> OracleService:
    return OracleService(settings=settings, dry_run=dry_run)


def _log_report(report: OracleRunReport) -> None:
    LOGGER.info(
        "Pass summary: evaluated=%s updated=%s skipped=%s failed=%s",
        report.evaluated,
        report.updated,
        report.skipped,
        report.failed,
    )
    for outcome in report.outcomes:
        if outcome.error:
            LOGGER.warning("Passport %s %s: %s", outcome.record_id, outcome.status, outcome.error)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the ``passport-oracle`` console script."""

    args = _parse_args(argv)

    try:
        settings = get_settings()
    except Exception:
        _configure_logging(args.log_level or "INFO")
        LOGGER.exception("Unable to load settings for passport oracle")
        return 1

    _configure_logging(args.log_level or settings.log_level)
    dry_run = args.dry_run or settings.oracle.dry_run
    LOGGER.info(
        "Starting passport oracle: env=%s dry_run=%s once=%s llm_provider=%s cross_chains=%s",
        settings.env,
        dry_run,
        args.once,
        settings.llm.provider,
        len(settings.ledger.cross_chain_ids),
    )

    try:
        service = _build_service(settings, dry_run=dry_run)
        if args.once:
            _log_report(service.run_once())
        else:
            service.run_forever()
    except ConfigurationError as exc:
        LOGGER.error("Invalid oracle configuration: %s", exc)
        return 1
    except NetworkError as exc:
        LOGGER.error("Oracle pass aborted: %s", exc)
        return 1
    except KeyboardInterrupt:  # pragma: no cover - interactive shutdown
        LOGGER.info("Interrupted; shutting down")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
