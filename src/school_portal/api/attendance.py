from __future__ import annotations

import logging
from typing import Any, Optional

from school_portal.api.errors import ApiError
from school_portal.api.http import ApiClient
from school_portal.models.attendance import MonthAttendance, normalize_status

logger = logging.getLogger(__name__)

BASE_PATH = "/attendance"


class AttendanceApi:
    """Attendance endpoints used by the teacher grid and the student check-in."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    @property
    def client(self) -> ApiClient:
        return self._client

    def open_session(
        self,
        course_instance_id: str,
        *,
        rotating: Optional[bool] = None,
        for_date: Optional[str] = None,
        reuse: Optional[bool] = None,
    ) -> str:
        body: dict[str, Any] = {"courseInstanceId": course_instance_id}
        if for_date is not None:
            body["forDate"] = for_date
        if reuse is not None:
            body["reuse"] = reuse
        if rotating is not None:
            body["rotating"] = rotating
        payload = self._client.post_json(f"{BASE_PATH}/sessions", body)
        session_id = payload.get("sessionId")
        if not session_id:
            raise ApiError("Backend did not return a session id.", payload=payload)
        logger.info("Attendance session %s ready for %s", session_id, for_date or "now")
        return str(session_id)

    def close_session(self, session_id: str) -> None:
        self._client.post_json(f"{BASE_PATH}/sessions/{session_id}/close")
        logger.info("Attendance session %s closed", session_id)

    def session_token(self, session_id: str) -> str:
        payload = self._client.get_json(f"{BASE_PATH}/sessions/{session_id}/token")
        return str(payload.get("token") or "")

    def mark_manual(self, session_id: str, student_id: str, status: str) -> tuple[str, Optional[str]]:
        payload = self._client.post_json(
            f"{BASE_PATH}/sessions/{session_id}/manual",
            {"studentId": student_id, "status": status},
        )
        record = payload.get("record") or {}
        student = record.get("student") or student_id
        return str(student), normalize_status(record.get("status", status))

    def month_report(
        self,
        course_instance_id: str,
        year: int,
        month: int,
        *,
        include_stats: bool = True,
    ) -> MonthAttendance:
        params: dict[str, Any] = {"year": year, "month": month}
        if include_stats:
            params["includeStats"] = 1
        payload = self._client.get_json(
            f"{BASE_PATH}/course-instances/{course_instance_id}/month", params=params
        )
        return _parse_month(payload)

    # ------------------------------------------------------------------
    # Student side
    # ------------------------------------------------------------------
    def my_month(self, course_instance_id: str, year: int, month: int) -> MonthAttendance:
        payload = self._client.get_json(
            f"{BASE_PATH}/course-instances/{course_instance_id}/me/month",
            params={"year": year, "month": month},
        )
        return _parse_month(payload)

    def check_in(self, session_id: str, token: str) -> Optional[str]:
        payload = self._client.post_json(
            f"{BASE_PATH}/check-in", {"sessionId": session_id, "token": token}
        )
        record = payload.get("record") or {}
        return normalize_status(record.get("status", "present"))


def _parse_month(payload: dict[str, Any]) -> MonthAttendance:
    try:
        return MonthAttendance.from_payload(payload)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ApiError(f"Malformed month report: {exc}", payload=payload) from exc
