from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

STATUSES = ("present", "absent", "late")
MARKABLE_STATUSES = ("present", "absent")

Row = Mapping[int, Optional[str]]


def normalize_status(value: Any) -> Optional[str]:
    if isinstance(value, str) and value in STATUSES:
        return value
    return None


def _freeze(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True, slots=True)
class Student:
    id: str
    username: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.username or "(no name)"

    @property
    def initial(self) -> str:
        return self.username[0].upper() if self.username else "?"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Student":
        return cls(
            id=str(payload.get("_id") or payload.get("id") or ""),
            username=payload.get("username"),
            email=payload.get("email"),
        )


@dataclass(frozen=True, slots=True)
class StudentStats:
    present: int = 0
    absent: int = 0
    late: int = 0
    total: int = 0
    percent_present: int = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "StudentStats":
        return cls(
            present=int(payload.get("present", 0) or 0),
            absent=int(payload.get("absent", 0) or 0),
            late=int(payload.get("late", 0) or 0),
            total=int(payload.get("total", 0) or 0),
            percent_present=int(math.floor(float(payload.get("percentPresent", 0) or 0) + 0.5)),
        )


@dataclass(frozen=True, slots=True)
class DayStats:
    present: int = 0
    absent: int = 0
    late: int = 0
    total: int = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "DayStats":
        return cls(
            present=int(payload.get("present", 0) or 0),
            absent=int(payload.get("absent", 0) or 0),
            late=int(payload.get("late", 0) or 0),
            total=int(payload.get("total", 0) or 0),
        )


@dataclass(frozen=True, slots=True)
class MonthAttendance:
    """Immutable snapshot of one course instance's attendance for a month.

    ``sessions_by_day`` only holds days on which a session exists. ``matrix``
    maps student id to a day -> status row; a missing day means no record.
    ``stats_per_student`` is ``None`` when the backend did not send stats.
    """

    year: int
    month: int
    days_in_month: int
    students: tuple[Student, ...] = ()
    sessions_by_day: Mapping[int, str] = field(default_factory=dict)
    matrix: Mapping[str, Row] = field(default_factory=dict)
    stats_per_student: Optional[Mapping[str, StudentStats]] = None
    stats_per_day: Optional[Mapping[int, DayStats]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "students", tuple(self.students))
        object.__setattr__(self, "sessions_by_day", _freeze(self.sessions_by_day))
        object.__setattr__(
            self, "matrix", _freeze({sid: _freeze(row) for sid, row in self.matrix.items()})
        )
        if self.stats_per_student is not None:
            object.__setattr__(self, "stats_per_student", _freeze(self.stats_per_student))
        if self.stats_per_day is not None:
            object.__setattr__(self, "stats_per_day", _freeze(self.stats_per_day))

    @property
    def session_count(self) -> int:
        return len(self.sessions_by_day)

    def status(self, student_id: str, day: int) -> Optional[str]:
        return self.matrix.get(student_id, {}).get(day)

    def has_session(self, day: int) -> bool:
        return day in self.sessions_by_day

    def student_at(self, row: int) -> Optional[Student]:
        if 0 <= row < len(self.students):
            return self.students[row]
        return None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "MonthAttendance":
        sessions = {
            int(day): str(session_id)
            for day, session_id in (payload.get("sessionsByDay") or {}).items()
            if session_id
        }
        matrix: dict[str, dict[int, Optional[str]]] = {}
        for student_id, row in (payload.get("matrix") or {}).items():
            matrix[str(student_id)] = {
                int(day): normalize_status(value) for day, value in (row or {}).items()
            }

        stats = payload.get("stats") or {}
        per_student = stats.get("perStudent")
        per_day = stats.get("perDay")

        return cls(
            year=int(payload["year"]),
            month=int(payload["month"]),
            days_in_month=int(payload["daysInMonth"]),
            students=tuple(Student.from_payload(item) for item in payload.get("students") or []),
            sessions_by_day=sessions,
            matrix=matrix,
            stats_per_student=(
                {str(sid): StudentStats.from_payload(value) for sid, value in per_student.items()}
                if per_student is not None
                else None
            ),
            stats_per_day=(
                {int(day): DayStats.from_payload(value) for day, value in per_day.items()}
                if per_day is not None
                else None
            ),
        )


class LiveState(Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    LIVE = "live"


@dataclass(frozen=True, slots=True)
class LiveSession:
    live_day: Optional[int] = None
    live_session_id: str = ""
    qr_value: str = ""

    @property
    def is_active(self) -> bool:
        return bool(self.live_session_id)


def encode_qr_value(session_id: str, token: str) -> str:
    return json.dumps({"sessionId": session_id, "token": token}, separators=(",", ":"))


def decode_qr_value(text: str) -> tuple[str, str]:
    """Parse a scanned QR payload into ``(session_id, token)``."""

    try:
        data = json.loads(text)
    except ValueError as exc:
        raise ValueError("QR code is not an attendance code.") from exc
    if not isinstance(data, dict):
        raise ValueError("QR code is not an attendance code.")
    session_id = str(data.get("sessionId") or "").strip()
    token = str(data.get("token") or "").strip()
    if not session_id or not token:
        raise ValueError("QR code is missing the session or token.")
    return session_id, token
