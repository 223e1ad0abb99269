"""Submission of computed passport updates to the application's GraphQL service."""

from __future__ import annotations

import json
import logging
from uuid import uuid4

import httpx

from passport_oracle.errors import WriteError
from passport_oracle.scoring.models import UpdateDelta
from passport_oracle.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)


def build_update_mutation(token_id: bytes, delta: UpdateDelta) -> str:
    """Render the ``updateAchievements`` mutation for one record."""

    return (
        "mutation {\n"
        "    updateAchievements(\n"
        f"        tokenId: {{ id: {json.dumps(list(token_id))} }}\n"
        f"        newAchievements: {json.dumps(delta.new_achievements)}\n"
        f"        scoreIncrease: {int(delta.score_increase)}\n"
        "    )\n"
        "}"
    )


class RecordUpdater:
    """Send update operations for passport records.

    Writes are fire-and-forget from the oracle's point of view: failures raise
    :class:`WriteError` for the caller to log, and the next poll recomputes them.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.rpc_endpoint, self.application_id = self.settings.require_submission_target()
        self._http = http_client or httpx.Client(timeout=self.settings.ledger.timeout_seconds)

    def close(self) -> None:
        self._http.close()

    def endpoint_for(self, chain_id: str) -> str:
        base = self.rpc_endpoint.rstrip("/")
        return f"{base}/chains/{chain_id}/applications/{self.application_id}"

    def submit_update(self, chain_id: str, token_id: bytes, delta: UpdateDelta) -> str:
        """Submit ``delta`` for the record ``token_id`` on ``chain_id``.

        Returns:
            The request id used to correlate log lines for this submission.

        Raises:
            WriteError: If the request fails or the service reports errors.
        """

        request_id = str(uuid4())
        LOGGER.info(
            "Submitting update %s: chain=%s application=%s token=%s score_increase=%s achievements=%s",
            request_id,
            chain_id,
            self.application_id,
            token_id.hex(),
            delta.score_increase,
            len(delta.new_achievements),
        )
        url = self.endpoint_for(chain_id)
        try:
            response = self._http.post(url, json={"query": build_update_mutation(token_id, delta)})
        except httpx.HTTPError as exc:
            raise WriteError(f"failed to send update request {request_id}: {exc}") from exc

        if response.status_code >= 400:
            raise WriteError(f"update request {request_id} failed with status {response.status_code}: {response.text}")
        try:
            body = response.json()
        except ValueError as exc:
            raise WriteError(f"update request {request_id} returned an unparseable body") from exc
        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            messages = ", ".join(str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors)
            raise WriteError(f"update request {request_id} rejected: {messages}")

        LOGGER.info("Update %s submitted successfully", request_id)
        return request_id


__all__ = ["RecordUpdater", "build_update_mutation"]
