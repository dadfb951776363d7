from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from school_portal.api.errors import ApiError
from school_portal.api.http import ApiClient, list_payload
from school_portal.models.portal import Faculty, SemesterOrYear

logger = logging.getLogger(__name__)

FACULTY_CODES_PATH = "/faculty-api/facultycode"
SEMESTER_PATH = "/sem-api/semesterOrYear"


class FormInvalid(ValueError):
    pass


@dataclass(slots=True)
class SemesterForm:
    faculty_id: str = ""
    faculty_type: str = ""
    semester_number: str = ""
    year_number: str = ""
    description: str = ""

    def select_faculty(self, faculty: Optional[Faculty]) -> None:
        self.faculty_id = faculty.id if faculty else ""
        self.faculty_type = faculty.type if faculty else ""
        self.semester_number = ""
        self.year_number = ""

    def is_dirty(self) -> bool:
        return any((self.faculty_id, self.semester_number, self.year_number, self.description))

    def reset(self) -> None:
        self.faculty_id = ""
        self.faculty_type = ""
        self.semester_number = ""
        self.year_number = ""
        self.description = ""

    def validate(self) -> None:
        if not self.faculty_id:
            raise FormInvalid("Please select a faculty.")
        if self.faculty_type == "semester":
            self._require_number(self.semester_number, "Please enter semester number.")
        if self.faculty_type == "yearly":
            self._require_number(self.year_number, "Please enter year number.")

    def to_payload(self) -> dict[str, Any]:
        self.validate()
        payload: dict[str, Any] = {"faculty": self.faculty_id, "description": self.description}
        if self.faculty_type == "semester":
            payload["semesterNumber"] = int(self.semester_number)
        if self.faculty_type == "yearly":
            payload["yearNumber"] = int(self.year_number)
        return payload

    @staticmethod
    def _require_number(raw: str, message: str) -> None:
        if not str(raw).strip():
            raise FormInvalid(message)
        try:
            value = int(str(raw).strip())
        except ValueError as exc:
            raise FormInvalid(message) from exc
        if value < 1:
            raise FormInvalid(message)


@dataclass
class SemesterService:
    """Admin screens for semesters and academic years."""

    client: ApiClient
    faculties: list[Faculty] = field(default_factory=list)
    semesters: list[SemesterOrYear] = field(default_factory=list)
    toast: Optional[tuple[str, str]] = None

    def load_faculties(self) -> list[Faculty]:
        try:
            payload = self.client.get_json(FACULTY_CODES_PATH)
        except ApiError as exc:
            self.faculties = []
            self._toast("error", "Failed to load faculties")
            logger.warning("Faculty codes request failed: %s", exc)
            return []
        self.faculties = [Faculty.from_payload(item) for item in list_payload(payload, "faculties")]
        return self.faculties

    def faculty(self, faculty_id: str) -> Optional[Faculty]:
        return next((item for item in self.faculties if item.id == faculty_id), None)

    def load(self) -> list[SemesterOrYear]:
        try:
            payload = self.client.get_json(SEMESTER_PATH)
        except ApiError as exc:
            self._toast("error", exc.message or "Failed to load semesters")
            return self.semesters
        self.semesters = [
            SemesterOrYear.from_payload(item) for item in list_payload(payload, "semesters", "semesterOrYears")
        ]
        return self.semesters

    def get(self, semester_id: str) -> Optional[SemesterOrYear]:
        try:
            payload = self.client.get_json(f"{SEMESTER_PATH}/{semester_id}")
        except ApiError as exc:
            self._toast("error", exc.message or "Failed to load semester/year")
            return None
        return SemesterOrYear.from_payload(payload.get("semesterOrYear") or payload.get("data") or payload)

    def create(self, form: SemesterForm) -> bool:
        try:
            payload = form.to_payload()
        except FormInvalid as exc:
            self._toast("error", str(exc))
            return False
        try:
            self.client.post_json(SEMESTER_PATH, payload)
        except ApiError as exc:
            self._toast("error", exc.message or "Failed to create semester/year.")
            return False
        self._toast("success", "Semester/Year created successfully!")
        form.reset()
        return True

    def update(self, semester_id: str, form: SemesterForm) -> bool:
        try:
            payload = form.to_payload()
        except FormInvalid as exc:
            self._toast("error", str(exc))
            return False
        try:
            self.client.patch_json(f"{SEMESTER_PATH}/{semester_id}", payload)
        except ApiError as exc:
            self._toast("error", exc.message or "Failed to update semester/year.")
            return False
        self._toast("success", "Semester/Year updated successfully!")
        return True

    def delete(self, semester_id: str) -> bool:
        try:
            self.client.delete_json(f"{SEMESTER_PATH}/{semester_id}")
        except ApiError as exc:
            self._toast("error", exc.message or "Failed to delete semester/year.")
            return False
        self.semesters = [item for item in self.semesters if item.id != semester_id]
        self._toast("success", "Semester/Year deleted.")
        return True

    def _toast(self, kind: str, message: str) -> None:
        self.toast = (kind, message)
