# storeadmin/date_range.py

"""
Global date range.

One descriptor is selected for the whole dashboard. Views keep the full
result sets they fetched and narrow them locally with the [from, to)
window computed at read time, so "today" rolls over without a reload.
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple

from pydantic import BaseModel, model_validator

RangeValue = Literal["today", "week", "month", "year", "custom"]

Window = Tuple[datetime, datetime]


class DateRange(BaseModel):
    label: str = "Today"
    value: RangeValue = "today"
    start: Optional[date] = None
    end: Optional[date] = None

    @model_validator(mode="after")
    def _custom_bounds_in_order(self):
        if self.start and self.end and self.end < self.start:
            raise ValueError("end must not be before start")
        return self


PRESETS: List[DateRange] = [
    DateRange(label="Today", value="today"),
    DateRange(label="This Week", value="week"),
    DateRange(label="This Month", value="month"),
    DateRange(label="This Year", value="year"),
]


def _midnight(d: date) -> datetime:
    return datetime(d.year, d.month, d.day)


def window(selected: DateRange, now: Optional[datetime] = None) -> Optional[Window]:
    """
    The [from, to) interval for `selected`, in local time.
    A custom range missing either bound has no window.
    """
    now = now or datetime.now()
    today = now.date()

    if selected.value == "today":
        return _midnight(today), _midnight(today + timedelta(days=1))
    if selected.value == "week":
        # Sunday-based week: isoweekday() is 7 on Sunday
        since_sunday = today.isoweekday() % 7
        return _midnight(today - timedelta(days=since_sunday)), _midnight(today + timedelta(days=1))
    if selected.value == "month":
        start = date(today.year, today.month, 1)
        end = date(today.year + 1, 1, 1) if today.month == 12 else date(today.year, today.month + 1, 1)
        return _midnight(start), _midnight(end)
    if selected.value == "year":
        return datetime(today.year, 1, 1), datetime(today.year + 1, 1, 1)
    if selected.value == "custom" and selected.start and selected.end:
        return _midnight(selected.start), _midnight(selected.end + timedelta(days=1))
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Naive local datetime from a datetime or ISO string, None if unusable"""
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, date):
        ts = _midnight(value)
    elif isinstance(value, str) and value:
        try:
            ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if ts.tzinfo is not None:
        ts = ts.astimezone().replace(tzinfo=None)
    return ts


def in_window(record: Dict[str, Any], bounds: Window, key: str = "created_at") -> bool:
    ts = parse_timestamp(record.get(key))
    return ts is not None and bounds[0] <= ts < bounds[1]


def filter_records(records: Iterable[Dict[str, Any]], bounds: Optional[Window], key: str = "created_at") -> List[Dict[str, Any]]:
    records = list(records)
    if bounds is None:
        return records
    return [r for r in records if in_window(r, bounds, key)]
