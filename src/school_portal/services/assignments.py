from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from school_portal.api.errors import ApiError
from school_portal.api.http import ApiClient, list_payload
from school_portal.models.portal import Assignment, GroupAssignment, Submission

logger = logging.getLogger(__name__)

GRADING_PATH = "/assignmentgrading"


class GradeInvalid(ValueError):
    pass


def parse_grade(raw: str, max_points: float) -> Optional[float]:
    """Blank input clears the grade; anything else must be a number within ``[0, max_points]``."""

    text = str(raw).strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError as exc:
        raise GradeInvalid("Grade must be a valid number") from exc
    if value < 0 or value > max_points:
        raise GradeInvalid(f"Grade must be between 0 and {max_points:g}")
    return value


@dataclass
class AssignmentGrading:
    """Teacher view of one assignment and its submissions."""

    client: ApiClient
    assignment_id: str
    assignment: Optional[Assignment] = None
    submissions: list[Submission] = field(default_factory=list)
    error: Optional[str] = None

    def load(self) -> bool:
        self.error = None
        try:
            detail = self.client.get_json(f"/assignment/{self.assignment_id}")
            listing = self.client.get_json(
                f"{GRADING_PATH}/assignments/{self.assignment_id}/submissions",
                params={"includeDrafts": 1},
            )
        except ApiError as exc:
            self.error = exc.message or "Failed to load assignment"
            return False
        self.assignment = Assignment.from_payload(detail.get("assignment") or detail)
        self.submissions = [Submission.from_payload(item) for item in list_payload(listing, "submissions")]
        return True

    @property
    def max_points(self) -> float:
        return self.assignment.max_points if self.assignment else 0.0

    def submitted(self) -> list[Submission]:
        return [item for item in self.submissions if item.status != "draft"]

    def ungraded(self) -> list[Submission]:
        return [item for item in self.submitted() if item.score is None]

    def grade(self, submission_id: str, raw_grade: str, feedback: str = "") -> Optional[str]:
        """Save a grade; returns the id of the next ungraded submission, if any."""

        try:
            value = parse_grade(raw_grade, self.max_points)
        except GradeInvalid as exc:
            self.error = str(exc)
            return None
        body: dict[str, Any] = {"grade": value, "feedback": feedback}
        try:
            self.client.patch_json(f"{GRADING_PATH}/submissions/{submission_id}/grade", body)
        except ApiError as exc:
            self.error = exc.message or "Failed to save grade"
            return None

        self.error = None
        self.submissions = [
            replace(item, score=value, feedback=feedback) if item.id == submission_id else item
            for item in self.submissions
        ]
        logger.info("Graded submission %s", submission_id)
        following = next((item for item in self.ungraded() if item.id != submission_id), None)
        return following.id if following else None

    def toggle_accepting(self) -> bool:
        if self.assignment is None:
            return False
        return self._set_accepting({"acceptingSubmissions": not self.assignment.accepting})

    def close_now(self) -> bool:
        return self._set_accepting({"closeNow": True})

    def set_close_at(self, iso_timestamp: Optional[str]) -> bool:
        return self._set_accepting({"closeAt": iso_timestamp})

    def _set_accepting(self, body: dict[str, Any]) -> bool:
        try:
            self.client.patch_json(f"{GRADING_PATH}/assignments/{self.assignment_id}/accepting", body)
        except ApiError as exc:
            self.error = exc.message or "Failed to update submission status"
            return False
        return self.load()


def load_group_assignment(client: ApiClient, group_assignment_id: str) -> GroupAssignment:
    payload = client.get_json(f"/group-assignment/{group_assignment_id}")
    return GroupAssignment.from_payload(payload.get("groupAssignment") or payload.get("assignment") or payload)


def load_my_submission(client: ApiClient, assignment_id: str) -> Optional[Submission]:
    """Student's own submission; ``None`` when nothing has been handed in yet."""

    try:
        payload = client.get_json(f"/submission/by-assignment/{assignment_id}/submission")
    except ApiError as exc:
        if exc.status == 404:
            return None
        raise
    record = payload.get("submission", payload)
    if not record:
        return None
    return Submission.from_payload(record)
