"""Configuration loader for the passport oracle using Pydantic settings."""

from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, PydanticBaseSettingsSource, SettingsConfigDict

from passport_oracle.errors import ConfigurationError

ENV_VAR_NAME = "PASSPORT_ORACLE_ENV"
DEFAULT_ENV = "local"
PROJECT_ROOT = Path(__file__).resolve().parents[3]
CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "settings.default.toml"
LOCAL_CONFIG_FILE = CONFIG_DIR / "settings.local.toml"
SETTINGS_FILE_ENV_VAR = "PASSPORT_ORACLE_SETTINGS_FILE"


def _resolve_env(explicit_env: str | None = None) -> str:
    """Return the active environment name.

    Args:
        explicit_env: Environment value supplied directly by the caller.

    Returns:
        A stripped environment name, falling back to ``DEFAULT_ENV``.
    """

    env = explicit_env or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV
    return env.strip()


def _env_file_candidates(env: str) -> list[Path]:
    """List candidate ``.env`` files used during settings resolution."""

    return [
        PROJECT_ROOT / ".env",
        PROJECT_ROOT / f".env.{env}",
        PROJECT_ROOT / ".env.local",
    ]


def _resolve_config_path(raw_path: str | None) -> Path | None:
    """Return an absolute config path from user input."""

    if not raw_path:
        return None
    candidate = Path(raw_path).expanduser()
    if not candidate.is_absolute():
        candidate = (PROJECT_ROOT / candidate).resolve()
    return candidate


def _config_file_priority() -> tuple[Path, ...]:
    """Return existing config files in descending precedence order."""

    ordered: list[Path] = []
    env_override = _resolve_config_path(os.getenv(SETTINGS_FILE_ENV_VAR))
    if env_override:
        ordered.append(env_override)
    ordered.append(LOCAL_CONFIG_FILE)
    ordered.append(DEFAULT_CONFIG_FILE)
    return tuple(path for path in ordered if path.exists())


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Pydantic settings source that loads values from a TOML file."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path) -> None:
        super().__init__(settings_cls)
        self.path = path
        self._data: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        if not self.path.exists():
            self._data = {}
            return self._data
        try:
            with self.path.open("rb") as handle:
                self._data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:  # pragma: no cover - invalid files surface immediately
            raise ConfigurationError(f"Invalid TOML syntax in {self.path}") from exc
        return self._data

    def __call__(self) -> dict[str, Any]:  # pragma: no cover - trivial wrapper
        return self._load()

    def get_field_value(self, field_name: str, field):  # pragma: no cover - passthrough helper
        data = self._load()
        return data.get(field_name), field_name in data


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("["):
            return json.loads(stripped)
        return [chunk.strip() for chunk in stripped.split(",") if chunk.strip()]
    return value


class RuntimeSettings(BaseSettings):
    """Process-level runtime controls."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "RUNTIME__LOG_LEVEL"),
    )


class LedgerSettings(BaseSettings):
    """Endpoints and identifiers for the ledger node, indexer, and application."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    graphql_endpoint: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GRAPHQL_ENDPOINT", "LEDGER__GRAPHQL_ENDPOINT"),
    )
    indexer_endpoint: str = Field(
        default="http://127.0.0.1:8000/operations",
        validation_alias=AliasChoices("INDEXER_ENDPOINT", "LEDGER__INDEXER_ENDPOINT"),
    )
    rpc_endpoint: str | None = Field(
        default=None,
        validation_alias=AliasChoices("LEDGER_RPC_ENDPOINT", "LEDGER__RPC_ENDPOINT"),
    )
    application_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("APPLICATION_ID", "LEDGER__APPLICATION_ID"),
    )
    operation_chain_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPERATION_CHAIN_ID", "LEDGER__OPERATION_CHAIN_ID"),
    )
    cross_chain_ids: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        validation_alias=AliasChoices("CROSS_CHAIN_IDS", "LEDGER__CROSS_CHAIN_IDS"),
    )
    page_size: int = Field(
        default=1000,
        ge=1,
        validation_alias=AliasChoices("LEDGER_PAGE_SIZE", "LEDGER__PAGE_SIZE"),
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias=AliasChoices("LEDGER_TIMEOUT_SECONDS", "LEDGER__TIMEOUT_SECONDS"),
    )

    @field_validator("cross_chain_ids", mode="before")
    @classmethod
    def _parse_chain_list(cls, value: Any) -> Any:
        return _split_csv(value)


class ScoringSettings(BaseSettings):
    """Rule document location for deterministic scoring."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    rules_path: Path = Field(
        default=Path("config") / "achievements.json",
        validation_alias=AliasChoices("RULES_PATH", "SCORING__RULES_PATH"),
    )


class LLMSettings(BaseSettings):
    """Generative model provider settings."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    provider: Literal["none", "ollama", "mock"] = Field(
        default="none",
        validation_alias=AliasChoices("LLM_PROVIDER", "LLM__PROVIDER"),
    )
    chat_model: str = Field(
        default="llama3",
        validation_alias=AliasChoices("LLM_CHAT_MODEL", "LLM__CHAT_MODEL"),
    )
    base_url: str | None = Field(
        default="http://127.0.0.1:11434",
        validation_alias=AliasChoices("LLM_BASE_URL", "OLLAMA_BASE_URL", "LLM__BASE_URL"),
    )
    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("LLM_API_KEY", "LLM__API_KEY"),
    )
    temperature: float = Field(
        default=0.0,
        validation_alias=AliasChoices("LLM_TEMPERATURE", "LLM__TEMPERATURE"),
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        validation_alias=AliasChoices("LLM_TIMEOUT_SECONDS", "LLM__TIMEOUT_SECONDS"),
    )
    strict_validation: bool = Field(
        default=False,
        validation_alias=AliasChoices("LLM_STRICT_VALIDATION", "LLM__STRICT_VALIDATION"),
    )

    @property
    def enabled(self) -> bool:
        return self.provider != "none"


class OracleSettings(BaseSettings):
    """Polling loop controls for the batch oracle."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    poll_interval_secs: int = Field(
        default=30,
        ge=1,
        validation_alias=AliasChoices("POLL_INTERVAL_SECS", "ORACLE__POLL_INTERVAL_SECS"),
    )
    dry_run: bool = Field(
        default=False,
        validation_alias=AliasChoices("ORACLE_DRY_RUN", "ORACLE__DRY_RUN"),
    )
    max_workers: int = Field(
        default=4,
        ge=1,
        validation_alias=AliasChoices("ORACLE_MAX_WORKERS", "ORACLE__MAX_WORKERS"),
    )


class APISettings(BaseSettings):
    """Quick-score HTTP surface configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    host: str = Field(
        default="127.0.0.1",
        validation_alias=AliasChoices("QUICK_SCORE_HOST", "API__HOST"),
    )
    port: int = Field(
        default=8001,
        validation_alias=AliasChoices("QUICK_SCORE_PORT", "API__PORT"),
    )


class ObservabilitySettings(BaseSettings):
    """Logging and metrics configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    structured_logging: bool = Field(
        default=True,
        validation_alias=AliasChoices("OBS_STRUCTURED_LOGGING", "OBSERVABILITY__STRUCTURED_LOGGING"),
    )
    statsd_host: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OBS_STATSD_HOST", "OBSERVABILITY__STATSD_HOST"),
    )
    statsd_port: int = Field(
        default=8125,
        validation_alias=AliasChoices("OBS_STATSD_PORT", "OBSERVABILITY__STATSD_PORT"),
    )
    statsd_prefix: str = Field(
        default="passport_oracle",
        validation_alias=AliasChoices("OBS_STATSD_PREFIX", "OBSERVABILITY__STATSD_PREFIX"),
    )
    service_name: str = Field(
        default="passport-oracle",
        validation_alias=AliasChoices("OBS_SERVICE_NAME", "OBSERVABILITY__SERVICE_NAME"),
    )


class Settings(BaseSettings):
    """Top-level configuration model with nested sections for each subsystem."""

    env: str = Field(
        default_factory=lambda: _resolve_env(),
        validation_alias=AliasChoices("ENV", "ENVIRONMENT", "RUNTIME__ENV"),
    )
    project_root: Path = Field(default=PROJECT_ROOT)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    oracle: OracleSettings = Field(default_factory=OracleSettings)
    api: APISettings = Field(default_factory=APISettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    env_files: tuple[Path, ...] = Field(default_factory=tuple, exclude=True)
    config_files: tuple[Path, ...] = Field(default_factory=tuple, exclude=True)

    model_config = SettingsConfigDict(
        env_prefix="PASSPORT_ORACLE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Extend settings sources with TOML-based config files."""

        config_sources = [TomlConfigSettingsSource(settings_cls, path) for path in _config_file_priority()]
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            *config_sources,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Normalize relative paths once the model is initialised."""

        if not self.scoring.rules_path.is_absolute():
            resolved = (self.project_root / self.scoring.rules_path).resolve()
            object.__setattr__(self, "scoring", self.scoring.model_copy(update={"rules_path": resolved}))
        return self

    @model_validator(mode="after")
    def _apply_environment_overrides(self) -> "Settings":
        """Force environment-specific defaults after basic resolution."""

        if self.env.lower() == "local":
            observability_update = {"structured_logging": False}
            object.__setattr__(self, "observability", self.observability.model_copy(update=observability_update))
        return self

    @property
    def log_level(self) -> str:
        """str: Effective logging level for the running process."""

        return self.runtime.log_level

    @property
    def rules_path(self) -> Path:
        """Path: Location of the achievement rule document."""

        return self.scoring.rules_path

    def require_graphql_endpoint(self) -> str:
        """Return the record query endpoint or raise ``ConfigurationError``."""

        endpoint = (self.ledger.graphql_endpoint or "").strip()
        if not endpoint:
            raise ConfigurationError("ledger.graphql_endpoint is not configured")
        return endpoint

    def require_submission_target(self) -> tuple[str, str]:
        """Return ``(rpc_endpoint, application_id)`` needed for writes."""

        rpc = (self.ledger.rpc_endpoint or "").strip()
        app_id = (self.ledger.application_id or "").strip()
        if not rpc:
            raise ConfigurationError("ledger.rpc_endpoint is not configured")
        if not app_id:
            raise ConfigurationError("ledger.application_id is not configured")
        return rpc, app_id


def _load_settings(env: str | None = None) -> Settings:
    """Load settings with optional environment override.

    Args:
        env: Environment name supplied programmatically.

    Returns:
        Fully parsed :class:`Settings` instance with env files applied.
    """

    resolved_env = _resolve_env(env)
    candidate_files = [path for path in _env_file_candidates(resolved_env) if path.exists()]
    config_files = _config_file_priority()
    return Settings(
        _env_file=[str(path) for path in candidate_files],
        _env_file_encoding="utf-8",
        env=resolved_env,
        env_files=tuple(candidate_files),
        config_files=config_files,
    )


@lru_cache(maxsize=1)
def get_settings(env: str | None = None) -> Settings:
    """Return cached settings for the requested environment."""

    return _load_settings(env)


def reload_settings(env: str | None = None) -> Settings:
    """Clear the cached settings and reload from disk."""

    get_settings.cache_clear()
    return get_settings(env)


__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
    "PROJECT_ROOT",
    "ENV_VAR_NAME",
]
