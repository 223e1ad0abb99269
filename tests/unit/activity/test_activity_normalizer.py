"""Unit tests for passport_oracle.activity.normalizer."""

from __future__ import annotations

import pytest

from passport_oracle.activity.models import CreateApplication, SystemTransfer, UserOperation
from passport_oracle.activity.normalizer import normalize_operation, normalize_operations
from passport_oracle.errors import ParseError

CHAIN = "a" * 64
OWNER = "0x" + "11" * 32
STRANGER = "0x" + "99" * 32


def _entry(content, *, height=1, index=0, timestamp=None):
    entry = {"key": {"chain_id": CHAIN, "height": height, "index": index}, "content": content}
    if timestamp is not None:
        entry["timestamp"] = timestamp
    return entry


def _transfer(owner=OWNER):
    return {"System": {"Transfer": {"owner": owner, "amount": "1.5", "recipient": {"owner": STRANGER}}}}


def test_transfer_from_owner_is_normalized():
    event = normalize_operation(_entry(_transfer(), height=7, index=2, timestamp=5_000_000), OWNER)

    assert event is not None
    assert event.kind == SystemTransfer(amount="1.5", recipient=STRANGER)
    assert event.ordering_key == (7, 2)
    assert event.timestamp_seconds == 5
    assert event.owner == OWNER
    assert event.chain_id == CHAIN


def test_transfer_owner_match_ignores_case():
    event = normalize_operation(_entry(_transfer(owner=OWNER.upper().replace("0X", "0x"))), OWNER)

    assert event is not None


def test_transfer_from_other_owner_is_filtered():
    assert normalize_operation(_entry(_transfer(owner=STRANGER)), OWNER) is None


def test_user_operation_captures_application_and_payload():
    content = {"User": {"application_id": "app-42", "bytes": [1, 2, 255]}}

    event = normalize_operation(_entry(content), OWNER)

    assert event.kind == UserOperation(application_id="app-42", payload=b"\x01\x02\xff")
    assert event.category_keys() == ("user_operation:app-42", "user_operation")


def test_create_application_captures_module():
    content = {"System": {"CreateApplication": {"module_id": "mod-9", "parameters": []}}}

    event = normalize_operation(_entry(content), OWNER)

    assert event.kind == CreateApplication(module_id="mod-9")
    assert event.category_keys() == ("create_application", "create_application:mod-9")


@pytest.mark.parametrize(
    "content",
    [
        {"System": {"OpenChain": {"balance": "1"}}},
        {"Admin": {"CreateCommittee": {}}},
        {},
    ],
)
def test_unknown_operation_shapes_are_skipped(content):
    assert normalize_operation(_entry(content), OWNER) is None


def test_malformed_key_raises_parse_error():
    with pytest.raises(ParseError):
        normalize_operation({"content": _transfer()}, OWNER)
    with pytest.raises(ParseError):
        normalize_operation({"key": {"chain_id": CHAIN, "height": "tall", "index": 0}, "content": _transfer()}, OWNER)


def test_normalize_operations_skips_bad_records_and_keeps_order():
    entries = [
        _entry(_transfer(), height=1),
        {"key": {"height": 2}},
        _entry({"System": {"OpenChain": {}}}, height=3),
        _entry({"User": {"application_id": "app", "bytes": "0a0b"}}, height=4),
    ]

    events = normalize_operations(entries, OWNER)

    assert [event.height for event in events] == [1, 4]
    assert events[1].kind.payload == b"\x0a\x0b"
