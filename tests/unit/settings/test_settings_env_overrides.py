"""Unit tests covering environment variable overrides for settings."""

from __future__ import annotations

import json
import textwrap

import pytest

from passport_oracle.errors import ConfigurationError
from passport_oracle.settings.config import PROJECT_ROOT, LedgerSettings, Settings, reload_settings

_PREFIXED = (
    "PASSPORT_ORACLE_LLM__PROVIDER",
    "PASSPORT_ORACLE_ORACLE__POLL_INTERVAL_SECS",
    "PASSPORT_ORACLE_LEDGER__CROSS_CHAIN_IDS",
    "PASSPORT_ORACLE_LEDGER__GRAPHQL_ENDPOINT",
    "PASSPORT_ORACLE_SCORING__RULES_PATH",
    "PASSPORT_ORACLE_SETTINGS_FILE",
    "LLM_PROVIDER",
    "POLL_INTERVAL_SECS",
    "CROSS_CHAIN_IDS",
    "GRAPHQL_ENDPOINT",
    "RULES_PATH",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _PREFIXED:
        monkeypatch.delenv(name, raising=False)
    yield
    reload_settings(env="test")


def test_defaults():
    settings = reload_settings(env="test")

    assert settings.llm.provider == "none"
    assert settings.llm.enabled is False
    assert settings.oracle.poll_interval_secs == 30
    assert settings.ledger.cross_chain_ids == []
    assert settings.rules_path == (PROJECT_ROOT / "config" / "achievements.json").resolve()


def test_nested_env_overrides(monkeypatch):
    monkeypatch.setenv("PASSPORT_ORACLE_LLM__PROVIDER", "mock")
    monkeypatch.setenv("PASSPORT_ORACLE_ORACLE__POLL_INTERVAL_SECS", "5")
    monkeypatch.setenv("PASSPORT_ORACLE_LEDGER__CROSS_CHAIN_IDS", json.dumps(["a" * 64, "b" * 64]))

    settings = reload_settings(env="test")

    assert settings.llm.provider == "mock"
    assert settings.llm.enabled is True
    assert settings.oracle.poll_interval_secs == 5
    assert settings.ledger.cross_chain_ids == ["a" * 64, "b" * 64]


def test_flat_alias_accepts_comma_separated_chains(monkeypatch):
    monkeypatch.setenv("CROSS_CHAIN_IDS", "aa, bb ,,cc")

    assert LedgerSettings().cross_chain_ids == ["aa", "bb", "cc"]


def test_settings_file_override(tmp_path, monkeypatch):
    settings_file = tmp_path / "oracle.toml"
    settings_file.write_text(
        textwrap.dedent(
            """
            [ledger]
            graphql_endpoint = "http://toml.test/graphql"

            [scoring]
            rules_path = "rules/custom.json"
            """
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("PASSPORT_ORACLE_SETTINGS_FILE", str(settings_file))

    settings = reload_settings(env="test")

    assert settings.ledger.graphql_endpoint == "http://toml.test/graphql"
    assert settings.rules_path == (PROJECT_ROOT / "rules" / "custom.json").resolve()
    assert settings_file in settings.config_files


def test_local_env_disables_structured_logging():
    assert Settings(env="local").observability.structured_logging is False
    assert Settings(env="prod").observability.structured_logging is True


def test_required_endpoints_raise_configuration_error():
    settings = Settings(env="test", ledger=LedgerSettings(graphql_endpoint=None, rpc_endpoint="http://node"))

    with pytest.raises(ConfigurationError):
        settings.require_graphql_endpoint()
    with pytest.raises(ConfigurationError):
        settings.require_submission_target()
