from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 15.0
JOIN_TIMEOUT_SECONDS = 1.5


class TokenRotator:
    """Poll a rotating QR token on a fixed interval in a background thread.

    The first fetch happens as soon as the rotator starts. Fetch errors are
    logged and the loop keeps going. A fetch that completes after :meth:`stop`
    is dropped.
    """

    def __init__(
        self,
        fetch_token: Callable[[], str],
        on_token: Callable[[str], None],
        *,
        interval: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._fetch_token = fetch_token
        self._on_token = on_token
        self._interval = interval
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._running = False

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run_loop, name="qr-token-rotator", daemon=True)
            self._running = True
            self._thread.start()

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._stop_event.set()
            thread = self._thread
            self._thread = None

        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=JOIN_TIMEOUT_SECONDS)

    @property
    def is_running(self) -> bool:
        return self._running

    def tick(self) -> Optional[str]:
        """Fetch one token and deliver it; returns the token or ``None`` on failure."""

        try:
            token = self._fetch_token()
        except Exception as exc:  # noqa: BLE001 - a failed poll only skips this refresh
            logger.warning("QR token refresh failed: %s", exc)
            return None

        if not token:
            return None

        if self._stop_event.is_set():
            return None
        self._on_token(token)
        return token

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            if self._stop_event.wait(self._interval):
                break
