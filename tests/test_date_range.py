from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from storeadmin.date_range import DateRange, filter_records, parse_timestamp, window

# A Wednesday
NOW = datetime(2024, 3, 13, 15, 45)


def test_today_window():
    assert window(DateRange(value="today"), NOW) == (datetime(2024, 3, 13), datetime(2024, 3, 14))


def test_week_window_starts_on_sunday():
    start, end = window(DateRange(label="This Week", value="week"), NOW)
    assert start == datetime(2024, 3, 10)
    assert end == datetime(2024, 3, 14)


def test_week_window_on_a_sunday_starts_that_day():
    start, _ = window(DateRange(value="week"), datetime(2024, 3, 10, 9, 0))
    assert start == datetime(2024, 3, 10)


def test_month_window():
    assert window(DateRange(value="month"), NOW) == (datetime(2024, 3, 1), datetime(2024, 4, 1))
    assert window(DateRange(value="month"), datetime(2024, 12, 31)) == (datetime(2024, 12, 1), datetime(2025, 1, 1))


def test_year_window():
    assert window(DateRange(value="year"), NOW) == (datetime(2024, 1, 1), datetime(2025, 1, 1))


def test_custom_window_includes_the_whole_end_day():
    selected = DateRange(label="Custom", value="custom", start=date(2024, 1, 1), end=date(2024, 1, 31))
    bounds = window(selected, NOW)
    assert bounds == (datetime(2024, 1, 1), datetime(2024, 2, 1))

    records = [
        {"id": 1, "created_at": datetime(2023, 12, 31, 23, 59)},
        {"id": 2, "created_at": datetime(2024, 1, 1, 0, 0)},
        {"id": 3, "created_at": "2024-01-31T23:59:59"},
        {"id": 4, "created_at": datetime(2024, 2, 1, 0, 0)},
    ]
    assert [r["id"] for r in filter_records(records, bounds)] == [2, 3]


def test_custom_range_without_both_bounds_has_no_window():
    assert window(DateRange(value="custom", start=date(2024, 1, 1)), NOW) is None
    records = [{"created_at": datetime(2020, 1, 1)}, {"created_at": None}]
    assert filter_records(records, None) == records


def test_end_before_start_is_rejected():
    with pytest.raises(ValidationError):
        DateRange(value="custom", start=date(2024, 2, 1), end=date(2024, 1, 1))


def test_records_without_usable_timestamp_are_dropped():
    bounds = window(DateRange(value="year"), NOW)
    records = [
        {"id": 1, "created_at": None},
        {"id": 2, "created_at": "not a date"},
        {"id": 3},
        {"id": 4, "created_at": datetime(2024, 6, 1)},
    ]
    assert [r["id"] for r in filter_records(records, bounds)] == [4]


def test_parse_timestamp_converts_aware_values_to_local():
    aware = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert parse_timestamp(aware) == aware.astimezone().replace(tzinfo=None)
    assert parse_timestamp("2024-05-01T12:00:00Z") == aware.astimezone().replace(tzinfo=None)


def test_parse_timestamp_accepts_plain_dates():
    assert parse_timestamp(date(2024, 5, 1)) == datetime(2024, 5, 1)
    assert parse_timestamp(datetime(2024, 5, 1) + timedelta(hours=3)) == datetime(2024, 5, 1, 3)
