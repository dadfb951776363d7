from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

from school_portal.api.errors import ApiError, FieldError
from school_portal.api.http import ApiClient, list_payload
from school_portal.models.portal import USER_ROLES, UserRow

logger = logging.getLogger(__name__)

BULK_USERS_PATH = "/user-api/users/bulk"
FACULTIES_PATH = "/faculty-api/faculties"
BATCH_CODES_PATH = "/batch-api/batchcode"

ROW_FIELDS = tuple(item.name for item in fields(UserRow))


def _blank_errors() -> dict[str, str]:
    return {name: "" for name in ROW_FIELDS}


@dataclass
class BulkUserForm:
    """Admin bulk user creation: editable rows or a CSV upload."""

    client: ApiClient
    rows: list[UserRow] = field(default_factory=lambda: [UserRow()])
    errors: list[dict[str, str]] = field(default_factory=lambda: [_blank_errors()])
    csv_file: Optional[Path] = None
    batches: dict[str, list[dict]] = field(default_factory=dict)
    faculties: list[dict] = field(default_factory=list)
    toast: Optional[tuple[str, str]] = None
    loading: bool = False

    def add_row(self) -> None:
        self.rows.append(UserRow())
        self.errors.append(_blank_errors())

    def remove_row(self, index: int) -> None:
        del self.rows[index]
        del self.errors[index]

    def update_row(self, index: int, field_name: str, value: str) -> None:
        if field_name not in ROW_FIELDS:
            raise KeyError(field_name)
        row = self.rows[index]
        setattr(row, field_name, value)

        if field_name == "faculty":
            row.batch = ""
            self.load_batches(value)
        if field_name == "role" and value != "student":
            row.faculty = None
            row.batch = None

        self.errors[index][field_name] = ""
        if field_name == "faculty":
            self.errors[index]["batch"] = ""

    def load_faculties(self) -> list[dict]:
        try:
            payload = self.client.get_json(FACULTIES_PATH)
        except ApiError:
            self.faculties = []
            self.toast = ("error", "Error fetching faculties")
            return []
        self.faculties = list_payload(payload, "faculties")
        return self.faculties

    def load_batches(self, faculty_id: str) -> list[dict]:
        if not faculty_id:
            return []
        try:
            payload = self.client.get_json(BATCH_CODES_PATH, params={"faculty": faculty_id})
        except ApiError:
            self.batches[faculty_id] = []
            self.toast = ("error", "Error fetching batches")
            return []
        self.batches[faculty_id] = list_payload(payload, "batches")
        return self.batches[faculty_id]

    def validate(self) -> bool:
        valid = True
        for index, row in enumerate(self.rows):
            errors = self.errors[index]
            if not row.username.strip():
                errors["username"] = "Username is required"
                valid = False
            if "@" not in row.email:
                errors["email"] = "A valid email is required"
                valid = False
            if not row.password.strip():
                errors["password"] = "Password is required"
                valid = False
            if row.role not in USER_ROLES:
                errors["role"] = "Select a role"
                valid = False
        return valid

    def submit(self) -> bool:
        self.errors = [_blank_errors() for _ in self.rows]
        if self.csv_file is None and not self.validate():
            self.toast = ("error", "Fix the highlighted rows before submitting.")
            return False

        self.loading = True
        try:
            if self.csv_file is not None:
                response = self.client.post_multipart(BULK_USERS_PATH, self.csv_file)
            else:
                response = self.client.post_json(
                    BULK_USERS_PATH, {"users": [row.to_payload() for row in self.rows]}
                )
        except FieldError as exc:
            index = exc.row_index if exc.row_index is not None and 0 <= exc.row_index < len(self.rows) else 0
            if self.errors:
                self.errors[index][exc.field] = exc.message
            prefix = f"Row {exc.row_index + 1}: " if exc.row_index is not None else ""
            self.toast = ("error", f"{prefix}{exc.message}")
            return False
        except ApiError as exc:
            self.toast = ("error", exc.message or "Submission failed")
            return False
        except OSError as exc:
            self.toast = ("error", f"Could not read {self.csv_file}: {exc}")
            return False
        finally:
            self.loading = False

        self.toast = ("success", response.get("message") or "Users created successfully")
        logger.info("Bulk user creation accepted (%s rows)", "csv" if self.csv_file else len(self.rows))
        self.reset()
        return True

    def reset(self) -> None:
        self.rows = [UserRow()]
        self.errors = [_blank_errors()]
        self.csv_file = None
