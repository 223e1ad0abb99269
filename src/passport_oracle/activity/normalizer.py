"""Normalization of raw indexer operations into :class:`NormalizedEvent` entries.

The indexer returns operations in the ledger's generic envelope::

    {
        "key": {"chain_id": "...", "height": 12, "index": 0},
        "timestamp": 1700000000000000,
        "content": {"System": {"Transfer": {"owner": "0x..", "amount": "1.", "recipient": {...}}}}
    }

Only transfers, user-application calls, and application creation are
recognised. Any other shape is skipped so that new operation kinds on the
ledger never abort a run.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping

from passport_oracle.errors import ParseError
from passport_oracle.ledger.identifiers import decode_payload_bytes, owners_match

from .models import ActivityKind, CreateApplication, NormalizedEvent, SystemTransfer, UserOperation

LOGGER = logging.getLogger(__name__)


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ParseError(f"{field} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ParseError(f"{field} must be an integer, got {value!r}")


def _recipient_owner(recipient: Any) -> str | None:
    if isinstance(recipient, Mapping):
        owner = recipient.get("owner")
        return str(owner) if owner is not None else None
    if isinstance(recipient, str):
        return recipient
    return None


def _classify(content: Any, owner: str) -> ActivityKind | None:
    """Return the activity variant for ``content`` or ``None`` when not tracked."""

    if not isinstance(content, Mapping):
        raise ParseError("operation content must be an object")

    system = content.get("System")
    if isinstance(system, Mapping):
        transfer = system.get("Transfer")
        if isinstance(transfer, Mapping):
            signer = transfer.get("owner")
            if not isinstance(signer, str) or not owners_match(signer, owner):
                return None
            return SystemTransfer(
                amount=str(transfer.get("amount", "0")),
                recipient=_recipient_owner(transfer.get("recipient")),
            )
        creation = system.get("CreateApplication")
        if isinstance(creation, Mapping):
            module_id = creation.get("module_id")
            if module_id is None:
                raise ParseError("CreateApplication without module_id")
            return CreateApplication(module_id=str(module_id))
        return None

    user = content.get("User")
    if isinstance(user, Mapping):
        application_id = user.get("application_id")
        if application_id is None:
            raise ParseError("User operation without application_id")
        return UserOperation(
            application_id=str(application_id),
            payload=decode_payload_bytes(user.get("bytes")),
        )
    return None


def normalize_operation(entry: Mapping[str, Any], owner: str) -> NormalizedEvent | None:
    """Normalize one operation envelope for ``owner``.

    Returns:
        The normalized event, or ``None`` if the operation is not tracked or
        does not belong to ``owner``.

    Raises:
        ParseError: If the envelope is malformed.
    """

    if not isinstance(entry, Mapping):
        raise ParseError("operation entry must be an object")
    key = entry.get("key")
    if not isinstance(key, Mapping):
        raise ParseError("operation entry is missing its key")
    chain_id = key.get("chain_id")
    if not isinstance(chain_id, str) or not chain_id:
        raise ParseError("operation key is missing chain_id")
    height = _as_int(key.get("height"), "height")
    index = _as_int(key.get("index"), "index")

    kind = _classify(entry.get("content"), owner)
    if kind is None:
        return None

    raw_timestamp = entry.get("timestamp")
    timestamp = _as_int(raw_timestamp, "timestamp") if raw_timestamp is not None else None
    return NormalizedEvent(
        owner=owner,
        chain_id=chain_id,
        height=height,
        operation_index=index,
        kind=kind,
        timestamp=timestamp,
    )


def normalize_operations(entries: Iterable[Mapping[str, Any]], owner: str) -> List[NormalizedEvent]:
    """Normalize an indexer page, skipping malformed and untracked operations."""

    events: List[NormalizedEvent] = []
    skipped = 0
    for entry in entries:
        try:
            event = normalize_operation(entry, owner)
        except ParseError as exc:
            LOGGER.warning("Skipping malformed operation for %s: %s", owner, exc)
            continue
        if event is None:
            skipped += 1
            continue
        events.append(event)
    if skipped:
        LOGGER.debug("Ignored %s untracked operations for %s", skipped, owner)
    return events
