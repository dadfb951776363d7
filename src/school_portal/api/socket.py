from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import socketio

logger = logging.getLogger(__name__)

JOIN_EVENT = "join-session"
LEAVE_EVENT = "leave-session"
UPDATED_EVENT = "attendance:updated"
CLOSED_EVENT = "attendance:closed"

UpdateHandler = Callable[[str, Optional[str]], None]
ClosedHandler = Callable[[Any], None]


def default_client_factory() -> Any:
    return socketio.Client(reconnection=True, logger=False, engineio_logger=False)


class SessionSocket:
    """One Socket.IO connection joined to a single attendance session room.

    The owner opens it when a live session starts and must close it on every
    exit path. ``close`` is idempotent and never raises.
    """

    def __init__(
        self,
        url: str,
        session_id: str,
        *,
        on_updated: UpdateHandler,
        on_closed: Optional[ClosedHandler] = None,
        client_factory: Callable[[], Any] = default_client_factory,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.url = url
        self.session_id = session_id
        self._on_updated = on_updated
        self._on_closed = on_closed
        self._client_factory = client_factory
        self._headers = headers or {}
        self._client: Any = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def open(self) -> "SessionSocket":
        if self._client is not None:
            return self
        client = self._client_factory()
        client.on(UPDATED_EVENT, self._handle_updated)
        client.on(CLOSED_EVENT, self._handle_closed)
        try:
            client.connect(self.url, headers=self._headers)
            client.emit(JOIN_EVENT, self.session_id)
        except Exception:
            self._safe_disconnect(client)
            raise
        self._client = client
        logger.debug("Joined attendance room %s", self.session_id)
        return self

    def close(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.emit(LEAVE_EVENT, self.session_id)
        except Exception as exc:  # noqa: BLE001 - teardown must finish
            logger.debug("leave-session for %s failed: %s", self.session_id, exc)
        self._safe_disconnect(client)
        logger.debug("Left attendance room %s", self.session_id)

    def __enter__(self) -> "SessionSocket":
        return self.open()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _handle_updated(self, data: Any) -> None:
        record = (data or {}).get("record") if isinstance(data, dict) else None
        if not isinstance(record, dict) or not record.get("student"):
            logger.debug("Ignoring malformed %s payload: %r", UPDATED_EVENT, data)
            return
        self._on_updated(str(record["student"]), record.get("status"))

    def _handle_closed(self, data: Any = None) -> None:
        if self._on_closed is not None:
            self._on_closed(data)

    @staticmethod
    def _safe_disconnect(client: Any) -> None:
        try:
            client.disconnect()
        except Exception as exc:  # noqa: BLE001 - teardown must finish
            logger.debug("Socket disconnect failed: %s", exc)
