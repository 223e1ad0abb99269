"""Shared fixtures for passport oracle unit tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from passport_oracle.observability import reset_observability_cache
from passport_oracle.settings.config import (
    LedgerSettings,
    LLMSettings,
    OracleSettings,
    ScoringSettings,
    Settings,
)

HOME_CHAIN = "a" * 64


@pytest.fixture(autouse=True)
def _reset_observability():
    reset_observability_cache()
    yield
    reset_observability_cache()


@pytest.fixture
def write_rules(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Write a rule document to a temp file and return its path."""

    def _write(document: dict[str, Any], name: str = "achievements.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Build isolated settings without touching env files or TOML config."""

    def _make(
        *,
        rules_path: Path | None = None,
        llm_provider: str = "none",
        dry_run: bool = False,
        cross_chain_ids: list[str] | None = None,
        max_workers: int = 1,
        **ledger: Any,
    ) -> Settings:
        ledger_values = {
            "graphql_endpoint": "http://node.test/graphql",
            "indexer_endpoint": "http://indexer.test/operations",
            "rpc_endpoint": "http://node.test",
            "application_id": "app-1",
            "operation_chain_id": HOME_CHAIN,
            "cross_chain_ids": cross_chain_ids or [],
        }
        ledger_values.update(ledger)
        return Settings(
            env="test",
            ledger=LedgerSettings(**ledger_values),
            scoring=ScoringSettings(rules_path=rules_path or tmp_path / "missing.json"),
            llm=LLMSettings(provider=llm_provider),
            oracle=OracleSettings(dry_run=dry_run, max_workers=max_workers),
        )

    return _make
