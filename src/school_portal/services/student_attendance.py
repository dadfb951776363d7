from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from school_portal.api.attendance import AttendanceApi
from school_portal.api.errors import ApiError
from school_portal.models.attendance import MonthAttendance, StudentStats, decode_qr_value
from school_portal.services.attendance_reducers import recompute_student_stats

logger = logging.getLogger(__name__)


class StudentAttendanceViewModel:
    """A student's own month of attendance plus QR check-in."""

    def __init__(
        self,
        api: AttendanceApi,
        course_instance_id: str,
        student_id: str,
        *,
        alert: Optional[Callable[[str], None]] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        current = today()
        self._api = api
        self.course_instance_id = course_instance_id
        self.student_id = student_id
        self.year = current.year
        self.month = current.month
        self._alert = alert or (lambda message: logger.warning("%s", message))
        self.data: Optional[MonthAttendance] = None
        self.error = ""
        self.last_check_in: Optional[str] = None

    def load(self, year: Optional[int] = None, month: Optional[int] = None) -> Optional[MonthAttendance]:
        self.year = year or self.year
        self.month = month or self.month
        self.error = ""
        try:
            self.data = self._api.my_month(self.course_instance_id, self.year, self.month)
        except ApiError as exc:
            self.error = exc.message or "Failed to load attendance"
            return None
        return self.data

    def summary(self) -> StudentStats:
        if self.data is None:
            return StudentStats()
        return recompute_student_stats(self.data, self.student_id)

    def check_in_from_qr(self, qr_text: str) -> bool:
        try:
            session_id, token = decode_qr_value(qr_text)
        except ValueError as exc:
            self._alert(str(exc))
            return False

        try:
            self.last_check_in = self._api.check_in(session_id, token)
        except ApiError as exc:
            self._alert(exc.message or "Check-in failed")
            return False

        logger.info("Checked in to session %s as %s", session_id, self.last_check_in)
        self.load()
        return True
