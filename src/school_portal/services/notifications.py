from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from school_portal.api.errors import ApiError
from school_portal.api.http import ApiClient, list_payload
from school_portal.models.portal import Notification
from school_portal.utils.time import format_relative_time

logger = logging.getLogger(__name__)

NOTIFICATION_PATH = "/notification"
BULK_ACTIONS = ("read", "archive")


@dataclass
class NotificationInbox:
    """Per-course notification inbox; local state is patched after each successful call."""

    client: ApiClient
    course_instance_id: str
    notifications: list[Notification] = field(default_factory=list)
    error: Optional[str] = None
    show_archived: bool = False

    @property
    def unread_count(self) -> int:
        return sum(1 for item in self.notifications if not item.is_read and not item.is_archived)

    def visible(self) -> list[Notification]:
        return [item for item in self.notifications if item.is_archived == self.show_archived]

    @staticmethod
    def age(notification: Notification) -> str:
        return format_relative_time(notification.created_at) if notification.created_at else ""

    def load(self) -> list[Notification]:
        self.error = None
        try:
            payload = self.client.get_json(
                NOTIFICATION_PATH, params={"courseInstance": self.course_instance_id}
            )
        except ApiError as exc:
            self.error = exc.message or "Failed to fetch notifications"
            return self.notifications
        self.notifications = [
            Notification.from_payload(item) for item in list_payload(payload, "notifications")
        ]
        return self.notifications

    def mark_read(self, notification_id: str) -> bool:
        if not self._call(f"{NOTIFICATION_PATH}/{notification_id}/mark-read"):
            return False
        self._patch({notification_id}, is_read=True)
        return True

    def set_archived(self, notification_id: str, archive: bool) -> bool:
        if not self._call(f"{NOTIFICATION_PATH}/{notification_id}/archive", {"archive": archive}):
            return False
        self._patch({notification_id}, is_archived=archive)
        return True

    def mark_all_read(self) -> bool:
        if not self._call(f"{NOTIFICATION_PATH}/mark-all-read", scoped=True):
            return False
        self._patch({item.id for item in self.notifications}, is_read=True)
        return True

    def archive_all(self) -> bool:
        if not self._call(f"{NOTIFICATION_PATH}/mark-all-archived", scoped=True):
            return False
        self._patch({item.id for item in self.notifications}, is_archived=True)
        return True

    def bulk(self, action: str, notification_ids: Iterable[str]) -> int:
        if action not in BULK_ACTIONS:
            raise ValueError(f"Unknown bulk action {action!r}")
        done = 0
        for notification_id in notification_ids:
            ok = self.mark_read(notification_id) if action == "read" else self.set_archived(notification_id, True)
            done += int(ok)
        return done

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _call(self, path: str, body: Optional[dict] = None, *, scoped: bool = False) -> bool:
        params = {"courseInstance": self.course_instance_id} if scoped else None
        try:
            self.client.patch_json(path, body, params=params)
        except ApiError as exc:
            self.error = exc.message or "Notification update failed"
            logger.warning("PATCH %s failed: %s", path, exc)
            return False
        return True

    def _patch(self, ids: set[str], **changes: bool) -> None:
        self.notifications = [
            replace(item, **changes) if item.id in ids else item for item in self.notifications
        ]
