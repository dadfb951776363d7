from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Sequence

from school_portal.api.errors import ApiError
from school_portal.api.http import ApiClient, list_payload
from school_portal.models.portal import FeedItem

logger = logging.getLogger(__name__)

FEED_PATH = "/student/feed"
ANNOUNCEMENT_PATH = "/announcement-routes"

_EPOCH = datetime.min


def newest_first(items: Iterable[FeedItem]) -> list[FeedItem]:
    return sorted(items, key=lambda item: item.created_at or _EPOCH, reverse=True)


@dataclass
class CourseFeed:
    """Stream of a course instance: the student feed plus teacher announcements."""

    client: ApiClient
    course_instance_id: str
    feed: list[FeedItem] = field(default_factory=list)
    announcements: list[FeedItem] = field(default_factory=list)
    error: Optional[str] = None

    # ---- Reads -------------------------------------------------------------
    def load_feed(self, topic: Optional[str] = None) -> list[FeedItem]:
        self.error = None
        params = {"topic": topic} if topic else None
        try:
            payload = self.client.get_json(f"{FEED_PATH}/{self.course_instance_id}", params=params)
        except ApiError as exc:
            self.error = exc.message or "Could not fetch feed"
            return self.feed
        self.feed = newest_first(FeedItem.from_payload(item) for item in list_payload(payload, "feed"))
        return self.feed

    def search(self, term: str, kinds: Optional[Sequence[str]] = None) -> list[FeedItem]:
        needle = term.strip().lower()
        items = [item for item in self.feed if kinds is None or item.kind in kinds]
        if not needle:
            return items
        return [item for item in items if needle in item.title.lower() or needle in item.body.lower()]

    def load_announcements(self) -> list[FeedItem]:
        self.error = None
        try:
            payload = self.client.get_json(f"{ANNOUNCEMENT_PATH}/course/{self.course_instance_id}")
        except ApiError as exc:
            self.error = exc.message or "Failed to load announcements"
            return self.announcements
        self.announcements = newest_first(
            FeedItem.from_payload(item, kind="announcement")
            for item in list_payload(payload, "announcements")
        )
        return self.announcements

    # ---- Writes ------------------------------------------------------------
    def create_announcement(
        self,
        content: str,
        *,
        attachments: Sequence[Path] = (),
        visible_to: Optional[Sequence[str]] = None,
    ) -> bool:
        """Post an announcement; ``visible_to=None`` or an empty list means every student."""

        if not content.strip():
            self.error = "Announcement content is empty"
            return False
        data = {
            "content": content,
            "courseInstance": self.course_instance_id,
            "visibleTo": json.dumps(list(visible_to or [])),
        }
        try:
            self.client.send_form("POST", f"{ANNOUNCEMENT_PATH}/course-announcement", data, attachments=attachments)
        except ApiError as exc:
            self.error = exc.message or "Failed to post"
            return False
        except OSError as exc:
            self.error = f"Could not read attachment: {exc}"
            return False
        logger.info("Announcement posted to %s", self.course_instance_id)
        self.load_announcements()
        return True

    def edit_announcement(self, announcement_id: str, content: str, *, attachments: Sequence[Path] = ()) -> bool:
        try:
            self.client.send_form(
                "PATCH", f"{ANNOUNCEMENT_PATH}/{announcement_id}", {"content": content}, attachments=attachments
            )
        except ApiError as exc:
            self.error = exc.message or "Failed to update"
            return False
        except OSError as exc:
            self.error = f"Could not read attachment: {exc}"
            return False
        self.load_announcements()
        return True

    def delete_announcement(self, announcement_id: str) -> bool:
        try:
            self.client.delete_json(f"{ANNOUNCEMENT_PATH}/{announcement_id}")
        except ApiError as exc:
            self.error = exc.message or "Failed to delete"
            return False
        self.announcements = [item for item in self.announcements if item.id != announcement_id]
        return True
