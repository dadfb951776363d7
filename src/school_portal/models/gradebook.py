from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

ITEM_TYPES = ("assignment", "groupAssignment", "question")
CELL_STATUSES = ("missing", "submitted", "graded")


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True, slots=True)
class RosterRow:
    id: str
    username: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RosterRow":
        return cls(
            id=str(payload.get("_id") or payload.get("id") or ""),
            username=payload.get("username"),
            email=payload.get("email"),
        )


@dataclass(frozen=True, slots=True)
class GradebookItem:
    id: str
    type: str
    title: str
    max_points: float
    due_at: Optional[str] = None
    topic: Optional[str] = None

    @property
    def header(self) -> str:
        return f"{self.title} ({format_number(self.max_points)})"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "GradebookItem":
        return cls(
            id=str(payload["id"]),
            type=str(payload.get("type") or "assignment"),
            title=str(payload.get("title") or ""),
            max_points=float(payload.get("maxPoints") or 0),
            due_at=payload.get("dueAt"),
            topic=payload.get("topic"),
        )


@dataclass(frozen=True, slots=True)
class GradeCell:
    """A grade record for one student/item pair.

    The absence of a cell means the item is not assigned to that student,
    which is different from ``status == "missing"``.
    """

    student_id: str
    item_id: str
    type: str
    score: Optional[float]
    max_points: float
    status: str
    graded_at: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == "submitted" or self.score is None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "GradeCell":
        return cls(
            student_id=str(payload["studentId"]),
            item_id=str(payload["itemId"]),
            type=str(payload.get("type") or "assignment"),
            score=_optional_float(payload.get("score")),
            max_points=float(payload.get("maxPoints") or 0),
            status=str(payload.get("status") or "missing"),
            graded_at=payload.get("gradedAt"),
        )


@dataclass(frozen=True, slots=True)
class GradebookPolicies:
    scheme: str = "points"
    treat_missing_as_zero: bool = False


@dataclass(frozen=True, slots=True)
class GradebookSummary:
    class_avg: float = 0.0
    median: float = 0.0
    submitted_rate: float = 0.0
    graded_rate: float = 0.0


@dataclass(frozen=True, slots=True)
class Gradebook:
    roster: tuple[RosterRow, ...] = ()
    items: tuple[GradebookItem, ...] = ()
    grades: tuple[GradeCell, ...] = ()
    policies: GradebookPolicies = field(default_factory=GradebookPolicies)
    summary: Optional[GradebookSummary] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Gradebook":
        policies = payload.get("policies") or {}
        summary = payload.get("summary")
        return cls(
            roster=tuple(RosterRow.from_payload(row) for row in payload.get("roster") or []),
            items=tuple(GradebookItem.from_payload(item) for item in payload.get("items") or []),
            grades=tuple(GradeCell.from_payload(cell) for cell in payload.get("grades") or []),
            policies=GradebookPolicies(
                scheme=str(policies.get("scheme") or "points"),
                treat_missing_as_zero=bool(policies.get("treatMissingAsZero", False)),
            ),
            summary=(
                GradebookSummary(
                    class_avg=float(summary.get("classAvg") or 0),
                    median=float(summary.get("median") or 0),
                    submitted_rate=float(summary.get("submittedRate") or 0),
                    graded_rate=float(summary.get("gradedRate") or 0),
                )
                if summary
                else None
            ),
        )


def format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
