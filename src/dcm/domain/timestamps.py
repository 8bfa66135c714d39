from __future__ import annotations

from datetime import date, datetime, time, timedelta

NANOS_PER_MILLI = 1_000_000
END_OF_DAY_OFFSET = timedelta(hours=23, minutes=59, seconds=59, milliseconds=999)


def to_datetime(timestamp_ns: int) -> datetime:
    """Nanoseconds since epoch -> naive local datetime, millisecond precision."""
    millis = int(timestamp_ns) // NANOS_PER_MILLI
    return datetime.fromtimestamp(millis // 1000) + timedelta(milliseconds=millis % 1000)


def from_datetime(value: datetime) -> int:
    return int(round(value.timestamp() * 1000)) * NANOS_PER_MILLI


def now_ns() -> int:
    return from_datetime(datetime.now())


def start_of_day(day: date | datetime) -> datetime:
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time.min)


def end_of_day(day: date | datetime) -> datetime:
    return start_of_day(day) + END_OF_DAY_OFFSET
