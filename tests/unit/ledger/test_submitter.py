"""Unit tests for the passport update submitter."""

from __future__ import annotations

import json

import httpx
import pytest

from passport_oracle.errors import ConfigurationError, WriteError
from passport_oracle.ledger.submitter import RecordUpdater, build_update_mutation
from passport_oracle.scoring.models import UpdateDelta

CHAIN = "a" * 64
DELTA = UpdateDelta(new_achievements=['QUOTE: says "hi"'], score_increase=15)


def _updater(make_settings, handler, **settings_kwargs):
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return RecordUpdater(settings=make_settings(**settings_kwargs), http_client=http)


def test_mutation_embeds_token_bytes_and_escaped_strings():
    mutation = build_update_mutation(b"\x01\xff", DELTA)

    assert "tokenId: { id: [1, 255] }" in mutation
    assert 'newAchievements: ["QUOTE: says \\"hi\\""]' in mutation
    assert "scoreIncrease: 15" in mutation


def test_submit_posts_to_application_endpoint(make_settings):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"data": "0x"})

    request_id = _updater(make_settings, handler, rpc_endpoint="http://node.test/").submit_update(
        CHAIN, b"\x01", DELTA
    )

    assert request_id
    assert str(requests[0].url) == f"http://node.test/chains/{CHAIN}/applications/app-1"
    assert "updateAchievements" in json.loads(requests[0].content)["query"]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="internal"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"errors": [{"message": "not the owner"}]}),
    ],
)
def test_submit_failures_raise_write_error(make_settings, response):
    updater = _updater(make_settings, lambda request: response)

    with pytest.raises(WriteError):
        updater.submit_update(CHAIN, b"\x01", DELTA)


def test_transport_failure_raises_write_error(make_settings):
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(WriteError):
        _updater(make_settings, handler).submit_update(CHAIN, b"\x01", DELTA)


def test_missing_submission_target_is_configuration_error(make_settings):
    with pytest.raises(ConfigurationError):
        RecordUpdater(settings=make_settings(application_id=None))
