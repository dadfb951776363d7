from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from school_portal.api.errors import ApiError
from school_portal.api.http import ApiClient, list_payload
from school_portal.models.portal import LeaveRequest, LeaveTemplate

logger = logging.getLogger(__name__)

LEAVE_ROLES = ("student", "teacher")
DAY_PARTS = ("full", "first-half", "second-half")

_TAG_RE = re.compile(r"<[^>]+>")


def strip_html(value: str) -> str:
    text = _TAG_RE.sub(" ", value or "")
    return " ".join(html.unescape(text).split())


def html_is_empty(value: str) -> bool:
    return not strip_html(value)


@dataclass(slots=True)
class LeaveForm:
    leave_date: str = field(default_factory=lambda: date.today().isoformat())
    type: str = "sick"
    day_part: str = "full"
    reason: str = ""
    custom_message: str = ""


@dataclass
class LeaveService:
    """Leave requests for the signed-in student or teacher."""

    client: ApiClient
    role: str = "student"
    templates: list[LeaveTemplate] = field(default_factory=list)
    leaves: list[LeaveRequest] = field(default_factory=list)
    form: LeaveForm = field(default_factory=LeaveForm)
    toast: Optional[tuple[bool, str]] = None
    submitting: bool = False

    def __post_init__(self) -> None:
        if self.role not in LEAVE_ROLES:
            raise ValueError(f"Unsupported leave role {self.role!r}")

    def load_templates(self) -> list[LeaveTemplate]:
        try:
            payload = self.client.get_json("/leave/templates", params={"role": self.role})
        except ApiError as exc:
            logger.warning("Failed to fetch leave templates: %s", exc)
            return self.templates
        self.templates = [LeaveTemplate.from_payload(item) for item in list_payload(payload, "templates", "types")]
        return self.templates

    def load_mine(self) -> list[LeaveRequest]:
        try:
            payload = self.client.get_json(f"/leave/{self.role}/mine")
        except ApiError as exc:
            logger.warning("Failed to fetch %s leaves: %s", self.role, exc)
            return self.leaves
        self.leaves = [LeaveRequest.from_payload(item) for item in list_payload(payload, "leaves")]
        return self.leaves

    def default_message(self) -> str:
        template = next((item for item in self.templates if item.id == self.form.type), None)
        return template.default_reason if template else ""

    def build_payload(self) -> dict:
        form = self.form
        default = self.default_message()
        if html_is_empty(form.custom_message):
            custom_message = default
            custom_text = default or form.reason
        else:
            custom_message = form.custom_message
            custom_text = strip_html(form.custom_message)
        return {
            "leaveDate": form.leave_date,
            "type": form.type,
            "dayPart": form.day_part,
            "reason": form.reason,
            "customMessage": custom_message,
            "customMessageText": custom_text,
        }

    def submit(self) -> bool:
        if self.submitting:
            return False
        self.submitting = True
        try:
            self.client.post_json(f"/leave/{self.role}/request", self.build_payload())
        except ApiError as exc:
            self.toast = (False, exc.message or "Request failed")
            return False
        finally:
            self.submitting = False

        self.toast = (True, "Leave requested successfully.")
        self.form = LeaveForm(leave_date=date.today().isoformat())
        self.load_mine()
        return True

    def cancel(self, leave_id: str) -> bool:
        try:
            self.client.patch_json(f"/leave/{self.role}/{leave_id}/cancel")
        except ApiError as exc:
            self.toast = (False, exc.message or "Cancel failed")
            return False
        self.toast = (True, "Leave cancelled.")
        self.load_mine()
        return True
