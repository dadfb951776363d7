from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from school_portal.api.errors import ApiError
from school_portal.api.http import ApiClient
from school_portal.models.gradebook import GradeCell, Gradebook, GradebookItem, RosterRow, format_number

logger = logging.getLogger(__name__)

FILTERS = ("all", "ungraded", "missing")


@dataclass(frozen=True, slots=True)
class RowTotal:
    earned: float = 0.0
    possible: float = 0.0

    @property
    def percent(self) -> float:
        return (self.earned / self.possible) * 100 if self.possible > 0 else 0.0


def grade_band(percent: float) -> str:
    if percent >= 90:
        return "excellent"
    if percent >= 80:
        return "good"
    if percent >= 70:
        return "fair"
    if percent >= 60:
        return "poor"
    return "failing"


def star_rating(percent: float) -> int:
    safe = max(0.0, min(100.0, percent or 0.0))
    return int(safe / 20 + 0.5)


def cell_chip(cell: Optional[GradeCell]) -> Optional[str]:
    if cell is None:
        return None
    if cell.status == "missing":
        return "Missing"
    if cell.is_pending:
        return "Pending"
    return "Graded"


class GradebookViewModel:
    """Teacher gradebook: roster x items matrix with filters, totals and CSV export."""

    def __init__(self, client: ApiClient, course_instance_id: str) -> None:
        self._client = client
        self.course_instance_id = course_instance_id
        self.data: Optional[Gradebook] = None
        self.error: Optional[str] = None
        self.loading = False
        self.search = ""
        self._filter = "all"
        self._grade_map: dict[tuple[str, str], GradeCell] = {}

    @property
    def endpoints(self) -> list[str]:
        ci = self.course_instance_id
        return [
            f"/grades/courseInstance/{ci}/gradebook",
            f"/courseInstance/{ci}/gradebook",
            f"/grade/courseInstance/{ci}/gradebook",
        ]

    @property
    def filter(self) -> str:
        return self._filter

    @filter.setter
    def filter(self, value: str) -> None:
        if value not in FILTERS:
            raise ValueError(f"Unknown gradebook filter {value!r}; expected one of {FILTERS}.")
        self._filter = value

    def load(self) -> Optional[Gradebook]:
        if not self.course_instance_id:
            return None
        self.loading = True
        self.error = None
        try:
            payload = self._client.get_with_fallback(self.endpoints)
            gradebook = Gradebook.from_payload(payload)
        except ApiError as exc:
            self.error = exc.message or "Failed to load gradebook"
            logger.warning("Gradebook load failed for %s: %s", self.course_instance_id, exc)
            return None
        except (KeyError, TypeError, ValueError) as exc:
            self.error = f"Failed to load gradebook: {exc}"
            return None
        finally:
            self.loading = False

        self.data = gradebook
        self._grade_map = {(cell.student_id, cell.item_id): cell for cell in gradebook.grades}
        return gradebook

    refresh = load

    # ------------------------------------------------------------------
    # Derived data
    # ------------------------------------------------------------------
    def cell(self, student_id: str, item_id: str) -> Optional[GradeCell]:
        return self._grade_map.get((student_id, item_id))

    def roster(self) -> list[RosterRow]:
        if self.data is None:
            return []
        query = self.search.strip().lower()
        rows = [
            row
            for row in self.data.roster
            if not query
            or query in (row.username or "").lower()
            or query in (row.email or "").lower()
        ]
        return sorted(rows, key=lambda row: (row.username or "").lower())

    def visible_items(self) -> list[GradebookItem]:
        if self.data is None:
            return []
        items = list(self.data.items)
        if self._filter == "all":
            return items
        return [item for item in items if self._item_matches_filter(item)]

    def row_totals(self) -> dict[str, RowTotal]:
        items = self.visible_items()
        totals: dict[str, RowTotal] = {}
        for row in self.roster():
            earned = 0.0
            possible = 0.0
            for item in items:
                cell = self.cell(row.id, item.id)
                if cell is None:
                    continue
                if cell.max_points:
                    possible += cell.max_points
                if cell.score is not None:
                    earned += cell.score
            totals[row.id] = RowTotal(earned, possible)
        return totals

    def export_csv(self, path: Optional[Path] = None) -> str:
        """Build the gradebook CSV; not-assigned and unscored cells are left empty."""

        if self.data is None:
            return ""
        items = self.visible_items()
        totals = self.row_totals()

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(["Student", "Email", *(item.header for item in items), "Total", "Out of", "%"])
        for row in self.roster():
            cells = []
            for item in items:
                cell = self.cell(row.id, item.id)
                cells.append(format_number(cell.score) if cell and cell.score is not None else "")
            total = totals.get(row.id, RowTotal())
            writer.writerow(
                [
                    row.username or "",
                    row.email or "",
                    *cells,
                    format_number(total.earned),
                    format_number(total.possible),
                    f"{total.percent:.1f}%",
                ]
            )

        text = buffer.getvalue().rstrip("\n")
        if path is not None:
            target = Path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
            logger.info("Gradebook exported to %s", target)
        return text

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _item_matches_filter(self, item: GradebookItem) -> bool:
        if self.data is None:
            return False
        for row in self.data.roster:
            cell = self.cell(row.id, item.id)
            if cell is None:
                continue
            if self._filter == "missing" and cell.status == "missing":
                return True
            if self._filter == "ungraded" and cell.is_pending:
                return True
        return False
