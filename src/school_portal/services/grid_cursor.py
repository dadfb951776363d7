from __future__ import annotations

from dataclasses import dataclass

ARROW_KEYS = ("ArrowRight", "ArrowLeft", "ArrowDown", "ArrowUp")
MARK_KEYS = {"p": "present", "a": "absent"}
TOGGLE_KEY = " "
ADVANCE_KEY = "Enter"


@dataclass(frozen=True, slots=True)
class GridCursor:
    """Selected ``(row, day)`` in the attendance grid.

    ``row`` indexes the roster (0-based); ``day`` is a day of month (1-based).
    """

    row: int = 0
    day: int = 1

    def clamp(self, rows: int, days: int) -> "GridCursor":
        last_row = max(0, rows - 1)
        last_day = max(1, days)
        return GridCursor(
            row=min(max(0, self.row), last_row),
            day=min(max(1, self.day), last_day),
        )

    def move(self, key: str, rows: int, days: int) -> "GridCursor":
        last_row = max(0, rows - 1)
        last_day = max(1, days)
        if key == "ArrowRight":
            return GridCursor(self.row, min(last_day, self.day + 1))
        if key == "ArrowLeft":
            return GridCursor(self.row, max(1, self.day - 1))
        if key == "ArrowDown":
            return GridCursor(min(last_row, self.row + 1), self.day)
        if key == "ArrowUp":
            return GridCursor(max(0, self.row - 1), self.day)
        if key == ADVANCE_KEY:
            return self.advance_row(rows)
        return self

    def advance_row(self, rows: int) -> "GridCursor":
        if rows <= 0:
            return GridCursor(0, self.day)
        return GridCursor(0 if self.row >= rows - 1 else self.row + 1, self.day)


def mark_status_for_key(key: str) -> str | None:
    return MARK_KEYS.get(key.lower()) if len(key) == 1 else None


def toggled_status(current: str | None) -> str:
    return "absent" if current == "present" else "present"
