"""Read-only GraphQL client for passport records and the operations indexer."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

import httpx
from pydantic import ValidationError

from passport_oracle.activity.models import NormalizedEvent
from passport_oracle.activity.normalizer import normalize_operations
from passport_oracle.errors import NetworkError, ParseError
from passport_oracle.settings import Settings, get_settings

from .identifiers import owners_match
from .models import RecordInfo

LOGGER = logging.getLogger(__name__)

ALL_PASSPORTS_QUERY = """
{
    allPassports {
        tokenId { id }
        owner
        ownerChain
        achievements
        score
    }
}
"""

OPERATIONS_QUERY = """
query Operations($from: OperationKeyKind!, $limit: Int) {
    operations(from: $from, limit: $limit) {
        key { chain_id height index }
        timestamp
        content
    }
}
"""


def _graphql_errors(body: Mapping[str, Any]) -> str | None:
    errors = body.get("errors")
    if not errors:
        return None
    messages = [str(err.get("message", err)) if isinstance(err, Mapping) else str(err) for err in errors]
    return ", ".join(messages)


class LedgerClient:
    """Query the node's GraphQL service and the indexer over HTTP."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        graphql_endpoint: str | None = None,
        indexer_endpoint: str | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.graphql_endpoint = graphql_endpoint or self.settings.ledger.graphql_endpoint
        self.indexer_endpoint = indexer_endpoint or self.settings.ledger.indexer_endpoint
        self.page_size = self.settings.ledger.page_size
        self._http = http_client or httpx.Client(timeout=self.settings.ledger.timeout_seconds)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "LedgerClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _post_graphql(self, url: str, payload: Dict[str, Any], *, context: str) -> Dict[str, Any]:
        try:
            response = self._http.post(url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            raise NetworkError(f"{context} request to {url} failed: {exc}") from exc
        except ValueError as exc:
            raise NetworkError(f"{context} returned a non-JSON body") from exc
        if not isinstance(body, dict):
            raise NetworkError(f"{context} returned an unexpected payload")
        errors = _graphql_errors(body)
        if errors:
            raise NetworkError(f"{context} query failed: {errors}")
        data = body.get("data")
        if not isinstance(data, dict):
            raise NetworkError(f"{context} response is missing data")
        return data

    def all_records(self) -> List[RecordInfo]:
        """Return every passport record; malformed records are logged and skipped.

        Raises:
            ConfigurationError: If no GraphQL endpoint is configured.
            NetworkError: If the node cannot be queried.
        """

        endpoint = self.graphql_endpoint or self.settings.require_graphql_endpoint()
        data = self._post_graphql(endpoint, {"query": ALL_PASSPORTS_QUERY}, context="allPassports")
        raw_records = data.get("allPassports") or []
        records: List[RecordInfo] = []
        for raw in raw_records:
            try:
                records.append(RecordInfo.model_validate(raw))
            except (ParseError, ValidationError) as exc:
                LOGGER.warning("Skipping malformed passport record: %s", exc)
        return records

    def record_by_token(self, token_id: bytes) -> RecordInfo | None:
        for record in self.all_records():
            if record.token_id is not None and record.token_id == token_id:
                return record
        return None

    def record_by_owner(self, owner: str) -> RecordInfo | None:
        for record in self.all_records():
            if owners_match(record.owner, owner):
                return record
        return None

    def owner_activity(
        self,
        owner: str,
        chain_id: str,
        *,
        cursor: Mapping[str, Any] | None = None,
    ) -> List[NormalizedEvent]:
        """Fetch and normalize the latest operations on ``chain_id`` for ``owner``.

        Args:
            owner: Account whose operations are kept.
            chain_id: Chain to read the operation feed from.
            cursor: Optional operation key ``{"chain_id", "height", "index"}`` to
                page from instead of the chain head.

        Raises:
            NetworkError: If the indexer is unreachable or reports errors.
        """

        start = {"key": dict(cursor)} if cursor else {"last": chain_id}
        payload = {
            "query": OPERATIONS_QUERY,
            "variables": {"from": start, "limit": self.page_size},
        }
        data = self._post_graphql(self.indexer_endpoint, payload, context="operations")
        operations = data.get("operations")
        if operations is None:
            raise NetworkError("missing operations data")
        return normalize_operations(operations, owner)


__all__ = ["LedgerClient", "ALL_PASSPORTS_QUERY", "OPERATIONS_QUERY"]
