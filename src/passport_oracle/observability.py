"""Observability helpers for structured logging and lightweight metrics."""

from __future__ import annotations

import json
import logging
import socket
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from passport_oracle.settings import Settings, get_settings

_LOGGER = logging.getLogger("passport_oracle.observability")
_METRICS_BACKEND_LOCK = threading.Lock()
_SHARED_METRICS: "_StatsdBackend | None" = None


class Observability:
    """Emit structured pipeline events and StatsD metrics."""

    def __init__(
        self,
        *,
        settings: Settings,
        component: str | None = None,
        metrics_backend: "_StatsdBackend | None" = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings
        self.component = component or "oracle"
        self._logger = logger or _LOGGER
        self._structured_logging = bool(settings.observability.structured_logging)
        self._metrics = metrics_backend

    def emit_event(self, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
        """Emit a structured log line for ``event``."""

        payload = {
            "event": event,
            "component": self.component,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **_sanitize_dict(fields),
        }
        if self._structured_logging:
            self._logger.log(level, json.dumps(payload, default=_serialize))
        else:
            self._logger.log(level, "%s | %s", event, payload)

    def increment(self, metric: str, *, value: float = 1.0, tags: Mapping[str, str] | None = None) -> None:
        """Increment a counter-style metric."""

        if not self._metrics:
            return
        self._metrics.increment(metric, value=value, tags=_normalize_tags(tags))

    def record_timing(self, metric: str, value_ms: float, *, tags: Mapping[str, str] | None = None) -> None:
        """Record a timing metric in milliseconds."""

        if not self._metrics:
            return
        self._metrics.record_timing(metric, value_ms=value_ms, tags=_normalize_tags(tags))


def get_observability(*, component: str | None = None, settings: Settings | None = None) -> Observability:
    """Return an :class:`Observability` instance for the requested component."""

    resolved = settings or get_settings()
    backend = _build_shared_metrics_backend(resolved)
    return Observability(settings=resolved, component=component, metrics_backend=backend, logger=_LOGGER)


def reset_observability_cache() -> None:
    """Reset cached metrics backends (used in tests)."""

    global _SHARED_METRICS
    with _METRICS_BACKEND_LOCK:
        _SHARED_METRICS = None


@dataclass
class _StatsdBackend:
    """Minimal StatsD client using UDP sockets."""

    host: str
    port: int
    prefix: str

    def __post_init__(self) -> None:
        self._address = (self.host, self.port)
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def increment(self, metric: str, *, value: float, tags: Mapping[str, str] | None) -> None:
        self._send(metric, value, metric_type="c", tags=tags)

    def record_timing(self, metric: str, *, value_ms: float, tags: Mapping[str, str] | None) -> None:
        self._send(metric, value_ms, metric_type="ms", tags=tags)

    def _send(self, metric: str, value: float, *, metric_type: str, tags: Mapping[str, str] | None) -> None:
        scoped = f"{self.prefix}.{metric}" if self.prefix else metric
        payload = f"{scoped}:{_format_number(value)}|{metric_type}"
        if tags:
            tag_block = ",".join(f"{key}:{val}" for key, val in sorted(tags.items()))
            if tag_block:
                payload = f"{payload}|#{tag_block}"
        try:
            self._socket.sendto(payload.encode("utf-8"), self._address)
        except OSError:  # pragma: no cover - metrics are best effort
            _LOGGER.debug("StatsD send failed for metric %s", metric, exc_info=True)


def _build_shared_metrics_backend(settings: Settings) -> _StatsdBackend | None:
    global _SHARED_METRICS
    with _METRICS_BACKEND_LOCK:
        if _SHARED_METRICS is not None:
            return _SHARED_METRICS
        statsd_host = settings.observability.statsd_host
        if not statsd_host:
            return None
        _SHARED_METRICS = _StatsdBackend(
            host=statsd_host,
            port=settings.observability.statsd_port,
            prefix=settings.observability.statsd_prefix,
        )
        return _SHARED_METRICS


def _serialize(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _serialize(val) for key, val in value.items()}
    return str(value)


def _normalize_tags(tags: Mapping[str, str] | None) -> Mapping[str, str] | None:
    if not tags:
        return None
    normalized = {str(key): str(value) for key, value in tags.items() if value is not None}
    return normalized or None


def _format_number(value: float) -> str:
    formatted = f"{value:.6f}".rstrip("0").rstrip(".")
    return formatted or "0"


def _sanitize_dict(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    sanitized: dict[str, Any] = {}
    for key, value in payload.items():
        if isinstance(value, Mapping):
            sanitized[str(key)] = _sanitize_dict(value)
        else:
            sanitized[str(key)] = value
    return sanitized


__all__ = ["Observability", "get_observability", "reset_observability_cache"]
