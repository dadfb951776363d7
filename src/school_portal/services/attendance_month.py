from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date
from functools import partial
from typing import Any, Callable, Optional, Protocol

from school_portal.api.attendance import AttendanceApi
from school_portal.api.errors import ApiError
from school_portal.api.socket import SessionSocket
from school_portal.config.settings import settings
from school_portal.models.attendance import (
    MARKABLE_STATUSES,
    LiveSession,
    LiveState,
    MonthAttendance,
    Student,
    encode_qr_value,
    normalize_status,
)
from school_portal.services.attendance_reducers import (
    apply_cell_update,
    attendance_band,
    day_for_session,
    overall_stats,
    row_summary,
)
from school_portal.services.grid_cursor import (
    ADVANCE_KEY,
    ARROW_KEYS,
    TOGGLE_KEY,
    GridCursor,
    mark_status_for_key,
    toggled_status,
)
from school_portal.services.token_rotator import TokenRotator
from school_portal.utils.time import is_current_month, month_label, ymd

logger = logging.getLogger(__name__)

OPEN_TODAY_GUARD_MESSAGE = "Switch the picker to the current month to open today's session."


class _Closable(Protocol):
    def open(self) -> Any: ...

    def close(self) -> None: ...


class _Rotator(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


SocketFactory = Callable[..., _Closable]
RotatorFactory = Callable[[Callable[[], str], Callable[[str], None]], _Rotator]


@dataclass(frozen=True, slots=True)
class GridCell:
    day: int
    status: Optional[str]
    has_session: bool
    selected: bool
    live: bool


@dataclass(frozen=True, slots=True)
class GridRow:
    index: int
    student: Student
    cells: tuple[GridCell, ...]
    present_count: int
    percent: int

    @property
    def band(self) -> str:
        return attendance_band(self.percent)


class AttendanceMonthViewModel:
    """Client state for the teacher's monthly attendance grid.

    Holds the month snapshot, the keyboard cursor and at most one live session
    (QR token rotation plus one socket room). Socket events and token updates
    arrive on background threads; every state change goes through ``_lock``.
    Resources are always released outside the lock.
    """

    def __init__(
        self,
        api: AttendanceApi,
        course_instance_id: str,
        *,
        year: Optional[int] = None,
        month: Optional[int] = None,
        alert: Optional[Callable[[str], None]] = None,
        on_change: Optional[Callable[["AttendanceMonthViewModel"], None]] = None,
        socket_factory: Optional[SocketFactory] = None,
        rotator_factory: Optional[RotatorFactory] = None,
        today: Callable[[], date] = date.today,
        socket_url: Optional[str] = None,
        rotation_interval: Optional[float] = None,
    ) -> None:
        current = today()
        self._api = api
        self.course_instance_id = course_instance_id
        self.year = year or current.year
        self.month = month or current.month
        self._alert = alert or (lambda message: logger.warning("%s", message))
        self.on_change = on_change
        self._today = today
        self._socket_url = socket_url or settings.socket_url
        self._rotation_interval = rotation_interval or settings.token_rotation_interval
        self._socket_factory = socket_factory or self._default_socket_factory
        self._rotator_factory = rotator_factory or self._default_rotator_factory

        self._lock = threading.RLock()
        self._load_seq = 0
        self._socket: Optional[_Closable] = None
        self._rotator: Optional[_Rotator] = None

        self.data: Optional[MonthAttendance] = None
        self.error = ""
        self.loading = False
        self.live = LiveSession()
        self.state = LiveState.IDLE
        self.cursor = GridCursor()

    # ------------------------------------------------------------------
    # Month loading
    # ------------------------------------------------------------------
    def load_month(self, year: Optional[int] = None, month: Optional[int] = None) -> Optional[MonthAttendance]:
        with self._lock:
            target_year = year or self.year
            target_month = month or self.month
            self._load_seq += 1
            seq = self._load_seq
            self.loading = True
            self.error = ""

        try:
            payload = self._api.month_report(
                self.course_instance_id, target_year, target_month, include_stats=True
            )
        except ApiError as exc:
            with self._lock:
                if seq == self._load_seq:
                    self.error = exc.message or "Failed to load month"
                    self.loading = False
            logger.warning("Loading %s-%02d failed: %s", target_year, target_month, exc)
            self._notify()
            return None
        finally:
            with self._lock:
                if seq == self._load_seq:
                    self.loading = False

        released: tuple = (None, None)
        with self._lock:
            if seq != self._load_seq:
                logger.warning(
                    "Discarding stale month response for %s-%02d", target_year, target_month
                )
                return None
            self.data = payload
            self.loading = False
            self.cursor = self.cursor.clamp(len(payload.students), payload.days_in_month)
            if self.live.live_day is not None and not payload.has_session(self.live.live_day):
                released = self._reset_live_locked()
        self._release(*released)
        self._notify()
        return payload

    def set_period(self, year: int, month: int) -> Optional[MonthAttendance]:
        with self._lock:
            self.year = year
            self.month = month
        return self.load_month(year, month)

    # ------------------------------------------------------------------
    # Live session
    # ------------------------------------------------------------------
    def open_today_session(self) -> bool:
        today = self._today()
        if not is_current_month(self.year, self.month, today):
            self._alert(OPEN_TODAY_GUARD_MESSAGE)
            return False

        try:
            self._api.open_session(self.course_instance_id, rotating=True)
        except ApiError as exc:
            self._alert(exc.message or "Failed to open session")
            return False

        fresh = self.load_month(today.year, today.month)
        if fresh is not None and fresh.has_session(today.day):
            self._activate_live(today.day, fresh.sessions_by_day[today.day])
            return True
        return False

    def join_live_for_day(self, day: int) -> bool:
        with self._lock:
            data = self.data
        if data is None or not data.has_session(day):
            return False
        self._activate_live(day, data.sessions_by_day[day])
        return True

    def select_live_day(self, day: Optional[int]) -> bool:
        """Live-day picker: ``None`` stops broadcasting, a day without a session gets one."""

        if day is None:
            self.stop_live_view()
            return False

        with self._lock:
            data = self.data
        if data is not None and not data.has_session(day):
            try:
                session_id = self.ensure_session_for_day(day)
            except (ApiError, ValueError) as exc:
                self._alert(str(exc) or "Could not prepare session for live")
                return False
            self._activate_live(day, session_id)
            return True
        return self.join_live_for_day(day)

    def ensure_session_for_day(self, day: int) -> str:
        """Return the day's session id, asking the backend to open or reuse one if needed."""

        with self._lock:
            data = self.data
        if data is None:
            raise ApiError("No month data loaded")
        existing = data.sessions_by_day.get(day)
        if existing:
            return existing

        for_date = ymd(data.year, data.month, day)
        session_id = self._api.open_session(
            self.course_instance_id, for_date=for_date, reuse=True, rotating=False
        )
        self.load_month(data.year, data.month)
        return session_id

    def close_live_session(self) -> None:
        with self._lock:
            closing_id = self.live.live_session_id
            if not closing_id:
                return
            released = self._detach_live_locked()
            self.live = replace(self.live, qr_value="", live_session_id="")
            self.state = LiveState.IDLE
        self._release(*released)
        self._notify()

        try:
            self._api.close_session(closing_id)
        except ApiError as exc:
            self._alert(exc.message or "Failed to close session")
        finally:
            self.load_month()

    def stop_live_view(self) -> None:
        """Forget the live day locally without closing the session on the backend."""

        with self._lock:
            released = self._reset_live_locked()
        self._release(*released)
        self._notify()

    def dispose(self) -> None:
        self.stop_live_view()

    # ------------------------------------------------------------------
    # Marking
    # ------------------------------------------------------------------
    def set_status(self, student_id: str, day: int, status: str) -> bool:
        if status not in MARKABLE_STATUSES:
            raise ValueError(f"Cannot mark status {status!r} manually.")

        with self._lock:
            data = self.data
        if data is None:
            return False

        session_id = data.sessions_by_day.get(day)
        if not session_id:
            try:
                session_id = self.ensure_session_for_day(day)
            except (ApiError, ValueError) as exc:
                self._alert(str(exc) or "Could not create session for that date")
                return False

        try:
            saved_student, saved_status = self._api.mark_manual(session_id, student_id, status)
        except ApiError as exc:
            self._alert(exc.message or "Failed to update")
            return False

        with self._lock:
            current = self.data
            if current is None or (current.year, current.month) != (data.year, data.month):
                return False
            self.data = apply_cell_update(
                current, saved_student, day, saved_status, session_id=session_id
            )
        self._notify()
        return True

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------
    def handle_key(self, key: str) -> bool:
        with self._lock:
            data = self.data
            cursor = self.cursor
        if data is None or not data.students:
            return False

        rows = len(data.students)
        if key in ARROW_KEYS or key == ADVANCE_KEY:
            with self._lock:
                self.cursor = self.cursor.move(key, rows, data.days_in_month)
            self._notify()
            return True

        student = data.student_at(cursor.row)
        if key == TOGGLE_KEY:
            status = toggled_status(data.status(student.id, cursor.day)) if student else None
        else:
            status = mark_status_for_key(key)
        if status is None:
            return False
        if student is None:
            return True

        self.set_status(student.id, cursor.day, status)
        with self._lock:
            current_rows = len(self.data.students) if self.data is not None else rows
            self.cursor = self.cursor.advance_row(current_rows)
        self._notify()
        return True

    def select_cell(self, row: int, day: int) -> None:
        with self._lock:
            data = self.data
            if data is None:
                return
            self.cursor = GridCursor(row, day).clamp(len(data.students), data.days_in_month)
        self._notify()

    def toggle_cell(self, row: int, day: int) -> bool:
        with self._lock:
            data = self.data
        if data is None:
            return False
        student = data.student_at(row)
        if student is None:
            return False
        return self.set_status(student.id, day, toggled_status(data.status(student.id, day)))

    # ------------------------------------------------------------------
    # Derived view data
    # ------------------------------------------------------------------
    @property
    def month_name(self) -> str:
        return month_label(self.month)

    def is_today(self, day: int) -> bool:
        today = self._today()
        return is_current_month(self.year, self.month, today) and today.day == day

    def overall(self):
        with self._lock:
            data = self.data
        return overall_stats(data) if data is not None else None

    def grid_rows(self) -> list[GridRow]:
        with self._lock:
            data = self.data
            cursor = self.cursor
            live_day = self.live.live_day
        if data is None:
            return []

        rows: list[GridRow] = []
        for index, student in enumerate(data.students):
            cells = tuple(
                GridCell(
                    day=day,
                    status=data.status(student.id, day),
                    has_session=data.has_session(day),
                    selected=index == cursor.row and day == cursor.day,
                    live=live_day == day,
                )
                for day in range(1, data.days_in_month + 1)
            )
            present, percent = row_summary(data, student.id)
            rows.append(GridRow(index, student, cells, present, percent))
        return rows

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _activate_live(self, day: int, session_id: str) -> None:
        with self._lock:
            if self.live.live_session_id == session_id and self.state is not LiveState.IDLE:
                self.live = replace(self.live, live_day=day)
                return
            released = self._reset_live_locked()
            self.live = LiveSession(live_day=day, live_session_id=session_id)
            self.state = LiveState.PREPARING
        self._release(*released)
        logger.info("Going live for day %s (session %s)", day, session_id)

        socket: Optional[_Closable] = self._socket_factory(
            session_id,
            on_updated=partial(self._on_socket_update, session_id),
            on_closed=partial(self._on_socket_closed, session_id),
        )
        try:
            socket.open()
        except Exception as exc:  # noqa: BLE001 - QR still works without live updates
            logger.warning("Live updates unavailable for session %s: %s", session_id, exc)
            self._alert("Live updates are unavailable; the grid will refresh on reload.")
            socket = None

        rotator = self._rotator_factory(
            partial(self._api.session_token, session_id),
            partial(self._on_token, session_id),
        )

        with self._lock:
            if self.live.live_session_id != session_id:
                stale = socket
            else:
                stale = None
                self._socket = socket
                self._rotator = rotator
                if socket is not None:
                    self.state = LiveState.LIVE
                rotator.start()
        self._release(None, stale)
        self._notify()

    def _detach_live_locked(self) -> tuple[Optional[_Rotator], Optional[_Closable]]:
        released = (self._rotator, self._socket)
        self._rotator = None
        self._socket = None
        return released

    def _reset_live_locked(self) -> tuple[Optional[_Rotator], Optional[_Closable]]:
        released = self._detach_live_locked()
        if self.live.live_day is not None or self.live.live_session_id:
            logger.info("Live session %s stopped", self.live.live_session_id or "-")
        self.live = LiveSession()
        self.state = LiveState.IDLE
        return released

    @staticmethod
    def _release(rotator: Optional[_Rotator], socket: Optional[_Closable]) -> None:
        if rotator is not None:
            rotator.stop()
        if socket is not None:
            socket.close()

    def _on_token(self, session_id: str, token: str) -> None:
        with self._lock:
            if self.live.live_session_id != session_id:
                return
            self.live = replace(self.live, qr_value=encode_qr_value(session_id, token))
        self._notify()

    def _on_socket_update(self, session_id: str, student_id: str, status: Optional[str]) -> None:
        with self._lock:
            data = self.data
            if data is None or self.live.live_session_id != session_id:
                return
            day = day_for_session(data, session_id)
            if day is None:
                return
            self.data = apply_cell_update(
                data, student_id, day, normalize_status(status), create_row=False
            )
        logger.debug("Socket update: %s on day %s -> %s", student_id, day, status)
        self._notify()

    def _on_socket_closed(self, session_id: str, data: Any = None) -> None:
        logger.info("Backend closed attendance session %s", session_id)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self)

    def _default_socket_factory(self, session_id: str, **handlers: Any) -> SessionSocket:
        return SessionSocket(
            self._socket_url,
            session_id,
            headers=self._api.client.headers(),
            **handlers,
        )

    def _default_rotator_factory(
        self, fetch_token: Callable[[], str], on_token: Callable[[str], None]
    ) -> TokenRotator:
        return TokenRotator(fetch_token, on_token, interval=self._rotation_interval)
