"""State transitions for the attendance month grid.

Every function here takes an immutable :class:`MonthAttendance` snapshot and
returns a value or a new snapshot. Aggregates are always rebuilt from a full
scan of the student's row; nothing is ever incremented in place.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Optional

from school_portal.models.attendance import MonthAttendance, StudentStats

EXCELLENT_THRESHOLD = 90
AT_RISK_THRESHOLD = 70

_STATUS_LETTERS = {"present": "P", "absent": "A", "late": "L"}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _sessioned_values(month: MonthAttendance, student_id: str):
    row = month.matrix.get(student_id)
    if not row:
        return
    for day in range(1, month.days_in_month + 1):
        if day not in month.sessions_by_day:
            continue
        value = row.get(day)
        if value:
            yield value


def recompute_student_stats(month: MonthAttendance, student_id: str) -> StudentStats:
    present = absent = late = total = 0
    for value in _sessioned_values(month, student_id):
        total += 1
        if value == "present":
            present += 1
        elif value == "absent":
            absent += 1
        elif value == "late":
            late += 1
    percent = round_half_up(present / total * 100) if total else 0
    return StudentStats(present=present, absent=absent, late=late, total=total, percent_present=percent)


def count_row_present(month: MonthAttendance, student_id: str) -> int:
    return sum(1 for value in _sessioned_values(month, student_id) if value == "present")


def compute_percent(month: MonthAttendance, student_id: str) -> int:
    return recompute_student_stats(month, student_id).percent_present


def day_for_session(month: MonthAttendance, session_id: str) -> Optional[int]:
    for day, sid in month.sessions_by_day.items():
        if sid == str(session_id):
            return day
    return None


def apply_cell_update(
    month: MonthAttendance,
    student_id: str,
    day: int,
    status: Optional[str],
    *,
    session_id: Optional[str] = None,
    create_row: bool = True,
) -> MonthAttendance:
    """Patch one ``(student, day)`` cell and rebuild that student's stats line.

    ``session_id`` registers the day's session when the day had none yet.
    With ``create_row=False`` an unknown student leaves the snapshot untouched.
    """

    student_id = str(student_id)
    if student_id not in month.matrix and not create_row:
        return month

    row = dict(month.matrix.get(student_id, {}))
    row[day] = status
    matrix = dict(month.matrix)
    matrix[student_id] = row

    sessions = month.sessions_by_day
    if session_id and day not in sessions:
        sessions = {**sessions, day: str(session_id)}

    patched = replace(month, matrix=matrix, sessions_by_day=sessions)

    if patched.stats_per_student is not None:
        stats = dict(patched.stats_per_student)
        stats[student_id] = recompute_student_stats(patched, student_id)
        patched = replace(patched, stats_per_student=stats)

    return patched


def row_summary(month: MonthAttendance, student_id: str) -> tuple[int, int]:
    """Return ``(present_count, percent)`` preferring server stats when present."""

    if month.stats_per_student is not None:
        stats = month.stats_per_student.get(student_id)
        if stats is not None:
            return stats.present, stats.percent_present
    return count_row_present(month, student_id), compute_percent(month, student_id)


@dataclass(frozen=True, slots=True)
class OverallStats:
    avg_present: int
    avg_percent: int
    excellent_students: int
    at_risk_students: int
    total: int


def overall_stats(month: MonthAttendance) -> Optional[OverallStats]:
    if not month.stats_per_student:
        return None
    values = list(month.stats_per_student.values())
    total = len(values)
    return OverallStats(
        avg_present=round_half_up(sum(item.present for item in values) / total),
        avg_percent=round_half_up(sum(item.percent_present for item in values) / total),
        excellent_students=sum(1 for item in values if item.percent_present >= EXCELLENT_THRESHOLD),
        at_risk_students=sum(1 for item in values if item.percent_present < AT_RISK_THRESHOLD),
        total=total,
    )


def attendance_band(percent: int) -> str:
    if percent >= EXCELLENT_THRESHOLD:
        return "excellent"
    if percent >= AT_RISK_THRESHOLD:
        return "fair"
    return "at-risk"


def status_letter(status: Optional[str]) -> str:
    return _STATUS_LETTERS.get(status or "", "—")
