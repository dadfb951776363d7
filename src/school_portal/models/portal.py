from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from school_portal.utils.time import parse_timestamp

FACULTY_TYPES = ("semester", "yearly")
USER_ROLES = ("student", "teacher", "admin")


def _id(payload: Mapping[str, Any]) -> str:
    return str(payload.get("_id") or payload.get("id") or "")


def _ref_id(value: Any) -> str:
    if isinstance(value, Mapping):
        return _id(value)
    return str(value or "")


@dataclass(slots=True)
class Faculty:
    id: str
    code: str
    name: str
    type: str
    total_semesters_or_years: int = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Faculty":
        return cls(
            id=_id(payload),
            code=str(payload.get("code") or ""),
            name=str(payload.get("name") or ""),
            type=str(payload.get("type") or "semester"),
            total_semesters_or_years=int(payload.get("totalSemestersOrYears") or 0),
        )


@dataclass(slots=True)
class SemesterOrYear:
    id: str
    faculty_id: str
    semester_number: Optional[int] = None
    year_number: Optional[int] = None
    description: str = ""

    @property
    def label(self) -> str:
        if self.semester_number is not None:
            return f"Semester {self.semester_number}"
        if self.year_number is not None:
            return f"Year {self.year_number}"
        return "(unnumbered)"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SemesterOrYear":
        semester = payload.get("semesterNumber")
        year = payload.get("yearNumber")
        return cls(
            id=_id(payload),
            faculty_id=_ref_id(payload.get("faculty")),
            semester_number=int(semester) if semester is not None else None,
            year_number=int(year) if year is not None else None,
            description=str(payload.get("description") or ""),
        )


@dataclass(slots=True)
class UserRow:
    username: str = ""
    email: str = ""
    password: str = ""
    role: str = "student"
    faculty: Optional[str] = None
    batch: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "username": self.username.strip(),
            "email": self.email.strip(),
            "password": self.password.strip(),
            "role": self.role.strip(),
        }
        if self.faculty and self.faculty.strip():
            payload["faculty"] = self.faculty.strip()
        if self.batch and self.batch.strip():
            payload["batch"] = self.batch.strip()
        return payload


@dataclass(slots=True)
class LeaveTemplate:
    id: str
    label: str
    default_reason: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "LeaveTemplate":
        return cls(
            id=str(payload.get("id") or payload.get("_id") or ""),
            label=str(payload.get("label") or payload.get("name") or payload.get("id") or ""),
            default_reason=str(payload.get("defaultReason") or "").strip(),
        )


@dataclass(slots=True)
class LeaveRequest:
    id: str
    leave_date: str
    type: str
    day_part: str = "full"
    reason: str = ""
    status: str = "pending"
    custom_message_text: str = ""

    @property
    def can_cancel(self) -> bool:
        return self.status == "pending"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "LeaveRequest":
        return cls(
            id=_id(payload),
            leave_date=str(payload.get("leaveDate") or ""),
            type=str(payload.get("type") or ""),
            day_part=str(payload.get("dayPart") or "full"),
            reason=str(payload.get("reason") or ""),
            status=str(payload.get("status") or "pending"),
            custom_message_text=str(payload.get("customMessageText") or ""),
        )


@dataclass(slots=True)
class Notification:
    id: str
    title: str
    message: str = ""
    type: str = "info"
    is_read: bool = False
    is_archived: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Notification":
        return cls(
            id=_id(payload),
            title=str(payload.get("title") or ""),
            message=str(payload.get("message") or ""),
            type=str(payload.get("type") or "info"),
            is_read=bool(payload.get("isRead", False)),
            is_archived=bool(payload.get("isArchived", False)),
            created_at=parse_timestamp(payload.get("createdAt")),
        )


@dataclass(slots=True)
class FeedItem:
    id: str
    kind: str
    title: str
    body: str = ""
    author: str = ""
    created_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], *, kind: Optional[str] = None) -> "FeedItem":
        author = payload.get("author") or payload.get("createdBy") or {}
        return cls(
            id=_id(payload),
            kind=kind or str(payload.get("type") or payload.get("kind") or "announcement"),
            title=str(payload.get("title") or ""),
            body=str(payload.get("content") or payload.get("description") or payload.get("body") or ""),
            author=str(author.get("username") if isinstance(author, Mapping) else author or ""),
            created_at=parse_timestamp(payload.get("createdAt")),
        )


@dataclass(slots=True)
class Assignment:
    id: str
    title: str
    description: str = ""
    max_points: float = 0.0
    due_at: Optional[datetime] = None
    accepting: bool = True
    attachments: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Assignment":
        return cls(
            id=_id(payload),
            title=str(payload.get("title") or ""),
            description=str(payload.get("description") or ""),
            max_points=float(payload.get("maxPoints") or payload.get("points") or 0),
            due_at=parse_timestamp(payload.get("dueDate") or payload.get("dueAt")),
            accepting=bool(payload.get("acceptingSubmissions", payload.get("accepting", True))),
            attachments=[str(item) for item in payload.get("attachments") or []],
        )


@dataclass(slots=True)
class Submission:
    id: str
    student_id: str
    student_name: str = ""
    status: str = "submitted"
    score: Optional[float] = None
    feedback: str = ""
    submitted_at: Optional[datetime] = None
    files: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Submission":
        student = payload.get("student") or {}
        score = payload.get("score", payload.get("grade"))
        return cls(
            id=_id(payload),
            student_id=_ref_id(student),
            student_name=str(student.get("username") or "") if isinstance(student, Mapping) else "",
            status=str(payload.get("status") or "submitted"),
            score=float(score) if score is not None else None,
            feedback=str(payload.get("feedback") or ""),
            submitted_at=parse_timestamp(payload.get("submittedAt")),
            files=[str(item) for item in payload.get("files") or []],
        )


@dataclass(slots=True)
class AssignmentGroup:
    index: int
    name: str
    member_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class GroupAssignment:
    id: str
    title: str
    description: str = ""
    max_points: float = 0.0
    due_at: Optional[datetime] = None
    groups: list[AssignmentGroup] = field(default_factory=list)

    def group_for(self, student_id: str) -> Optional[AssignmentGroup]:
        for group in self.groups:
            if student_id in group.member_ids:
                return group
        return None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "GroupAssignment":
        groups = []
        for index, group in enumerate(payload.get("groups") or []):
            members = group.get("members") or []
            groups.append(
                AssignmentGroup(
                    index=index,
                    name=str(group.get("name") or f"Group {index + 1}"),
                    member_ids=[_ref_id(member) for member in members],
                )
            )
        return cls(
            id=_id(payload),
            title=str(payload.get("title") or ""),
            description=str(payload.get("description") or ""),
            max_points=float(payload.get("maxPoints") or payload.get("points") or 0),
            due_at=parse_timestamp(payload.get("dueDate") or payload.get("dueAt")),
            groups=groups,
        )
