"""Unit tests for passport_oracle.activity.aggregator."""

from __future__ import annotations

from passport_oracle.activity.aggregator import aggregate, categorize_activity, wallet_age_days
from passport_oracle.activity.models import CreateApplication, NormalizedEvent, SystemTransfer, UserOperation

CHAIN = "a" * 64
OWNER = "0x" + "11" * 32
DAY = 86_400 * 1_000_000


def _event(kind, *, height=0, timestamp=None):
    return NormalizedEvent(
        owner=OWNER,
        chain_id=CHAIN,
        height=height,
        operation_index=0,
        kind=kind,
        timestamp=timestamp,
    )


def _counts(actions):
    return {action.action_type: action.count for action in actions}


def test_user_operation_increments_specific_and_generic_counters():
    events = [
        _event(UserOperation(application_id="app-a")),
        _event(UserOperation(application_id="app-a")),
        _event(UserOperation(application_id="app-b")),
    ]

    actions, aggregates = aggregate(events, now_micros=0)

    assert _counts(actions) == {
        "user_operation:app-a": 2,
        "user_operation": 3,
        "user_operation:app-b": 1,
    }
    assert aggregates.total_actions == 6


def test_total_actions_equals_sum_of_category_counts():
    events = [
        _event(SystemTransfer(amount="1", recipient=None)),
        _event(CreateApplication(module_id="m1")),
        _event(UserOperation(application_id="x")),
    ]

    actions, aggregates = aggregate(events, now_micros=0)

    assert aggregates.total_actions == sum(action.count for action in actions) == 5


def test_last_seen_follows_processing_order_not_latest_time():
    events = [
        _event(SystemTransfer(amount="1", recipient=None), timestamp=10 * DAY),
        _event(SystemTransfer(amount="1", recipient=None), timestamp=2 * DAY),
    ]

    actions, _ = categorize_activity(events)

    assert actions[0].last_seen == 2 * DAY


def test_last_seen_is_cleared_by_untimestamped_event():
    events = [
        _event(SystemTransfer(amount="1", recipient=None), timestamp=3 * DAY),
        _event(SystemTransfer(amount="1", recipient=None)),
    ]

    actions, _ = categorize_activity(events)

    assert actions[0].last_seen is None


def test_unique_days_bucket_by_calendar_day():
    events = [
        _event(SystemTransfer(amount="1", recipient=None), timestamp=DAY + 1),
        _event(SystemTransfer(amount="1", recipient=None), timestamp=DAY + 5_000_000),
        _event(SystemTransfer(amount="1", recipient=None), timestamp=3 * DAY),
        _event(SystemTransfer(amount="1", recipient=None)),
    ]

    _, days = categorize_activity(events)

    assert days == {1, 3}


def test_wallet_age_uses_earliest_timestamp():
    events = [
        _event(SystemTransfer(amount="1", recipient=None), timestamp=5 * DAY),
        _event(SystemTransfer(amount="1", recipient=None), timestamp=2 * DAY),
    ]

    assert wallet_age_days(events, now_micros=42 * DAY + DAY // 2) == 40


def test_wallet_age_is_zero_without_timestamps_or_for_future_events():
    assert wallet_age_days([_event(SystemTransfer(amount="1", recipient=None))], now_micros=DAY) == 0
    future = [_event(SystemTransfer(amount="1", recipient=None), timestamp=10 * DAY)]
    assert wallet_age_days(future, now_micros=DAY) == 0


def test_empty_activity_aggregates_to_zero():
    actions, aggregates = aggregate([], now_micros=DAY)

    assert actions == []
    assert aggregates.as_dict() == {"total_actions": 0, "unique_active_days": 0, "wallet_age_days": 0}
