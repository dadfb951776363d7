from .time import (
    InvalidDay,
    days_in_month,
    format_relative_time,
    is_current_month,
    month_label,
    parse_timestamp,
    selectable_years,
    ymd,
)

__all__ = [
    "InvalidDay",
    "days_in_month",
    "format_relative_time",
    "is_current_month",
    "month_label",
    "parse_timestamp",
    "selectable_years",
    "ymd",
]
