from __future__ import annotations

import calendar
from datetime import date, datetime, timezone


_DAY = 86400

# (unit, seconds per unit, first count that rolls over to the next unit)
_RELATIVE_STEPS = (
    ("minute", 60, 60),
    ("hour", 3600, 24),
    ("day", _DAY, 7),
    ("week", 7 * _DAY, 5),
    ("month", 30 * _DAY, 12),
)


class InvalidDay(ValueError):
    pass


def ymd(year: int, month: int, day: int) -> str:
    if not 1 <= month <= 12:
        raise InvalidDay(f"Month must be between 1 and 12, got {month}.")
    last_day = calendar.monthrange(year, month)[1]
    if not 1 <= day <= last_day:
        raise InvalidDay(f"Day must be between 1 and {last_day} for {year}-{month:02d}.")
    return f"{year}-{month:02d}-{day:02d}"


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_label(month: int) -> str:
    return calendar.month_name[month]


def is_current_month(year: int, month: int, today: date) -> bool:
    return today.year == year and today.month == month


def selectable_years(today: date, span: int = 2) -> list[int]:
    return list(range(today.year - span, today.year + span + 1))


def _coerce_datetime(value: datetime | str) -> datetime:
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        candidate = value.strip().replace(" ", "T", 1)
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise ValueError(f"Unsupported datetime value: {value!r}") from exc
    else:
        raise ValueError(f"Unsupported datetime value: {value!r}")

    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def parse_timestamp(value: datetime | str | None) -> datetime | None:
    if value is None or value == "":
        return None
    try:
        return _coerce_datetime(value)
    except ValueError:
        return None


def format_relative_time(value: datetime | str, *, now: datetime | None = None) -> str:
    reference = now or datetime.now(timezone.utc).replace(tzinfo=None)
    total_seconds = int((reference - _coerce_datetime(value)).total_seconds())
    if total_seconds < 60:
        return "just now"

    for unit, size, limit in _RELATIVE_STEPS:
        count = total_seconds // size
        if count < limit:
            break
    else:
        unit, count = "year", total_seconds // (365 * _DAY)

    if unit == "day" and count == 1:
        return "Yesterday"
    if count == 1:
        return f"1 {unit} ago"
    return f"{count} {unit}s ago"
