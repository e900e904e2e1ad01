from __future__ import annotations

from datetime import datetime, timezone

from pm_command_center.common.time_utils import (
    cycle_time_days,
    parse_iso8601,
    parse_optional_timestamp,
    round_half_up,
)


def test_parse_iso8601_handles_platform_formats() -> None:
    assert parse_iso8601("2024-01-01T00:00:00Z") == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_iso8601("2024-01-10T15:30:00.000+0000") == datetime(
        2024, 1, 10, 15, 30, tzinfo=timezone.utc
    )
    naive = parse_iso8601("2024-02-01T09:00:00")
    assert naive.tzinfo is not None


def test_parse_optional_timestamp_degrades_to_none() -> None:
    assert parse_optional_timestamp(None) is None
    assert parse_optional_timestamp("") is None
    assert parse_optional_timestamp("not a date") is None
    assert parse_optional_timestamp(12345) is None


def test_cycle_time_rounds_partial_days_up() -> None:
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert cycle_time_days(created, datetime(2024, 1, 4, tzinfo=timezone.utc)) == 3
    assert cycle_time_days(created, datetime(2024, 1, 4, 1, tzinfo=timezone.utc)) == 4
    assert cycle_time_days(created, datetime(2024, 1, 1, 0, 5, tzinfo=timezone.utc)) == 1
    assert cycle_time_days(created, None) is None
    assert cycle_time_days(None, created) is None


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2
    assert round_half_up(33.333) == 33


def test_cycle_time_is_none_when_closed_before_created() -> None:
    created = datetime(2024, 1, 10, tzinfo=timezone.utc)
    assert cycle_time_days(created, datetime(2024, 1, 3, tzinfo=timezone.utc)) is None
    assert cycle_time_days(created, created) == 0
