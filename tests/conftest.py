from __future__ import annotations

import json
from collections import defaultdict, deque
from datetime import date
from typing import Any, Callable, Optional

import pytest

from school_portal.api.attendance import AttendanceApi
from school_portal.api.http import ApiClient
from school_portal.config.credential_store import CredentialProvider

BASE_URL = "http://api.test"


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, *, text: Optional[str] = None, reason: str = "") -> None:
        self.status_code = status_code
        self.reason = reason or ("OK" if status_code < 400 else "Error")
        if text is None:
            text = "" if body is None else json.dumps(body)
        self.text = text
        self.url = ""

    @property
    def ok(self) -> bool:
        return self.status_code < 400


class FakeSession:
    """Stands in for ``requests.Session``; routes are keyed by ``(METHOD, path)``.

    A route value may be a :class:`FakeResponse`, a list of them (served in
    order, last one repeated) or a callable taking the recorded call.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], deque] = defaultdict(deque)
        self.calls: list[dict[str, Any]] = []

    def add(self, method: str, path: str, *responses: Any) -> None:
        self.routes[(method.upper(), path)].extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        path = url[len(BASE_URL):] if url.startswith(BASE_URL) else url
        body = kwargs.get("data")
        call = {
            "method": method,
            "path": path,
            "params": kwargs.get("params"),
            "headers": kwargs.get("headers") or {},
            "json": json.loads(body) if isinstance(body, str) else None,
            "data": body if not isinstance(body, str) else None,
            "files": kwargs.get("files"),
        }
        self.calls.append(call)
        queue = self.routes.get((method.upper(), path))
        if not queue:
            return FakeResponse(404, {"error": f"no route for {method} {path}"}, reason="Not Found")
        handler = queue.popleft() if len(queue) > 1 else queue[0]
        response = handler(call) if callable(handler) else handler
        response.url = url
        return response

    def calls_to(self, method: str, path: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["method"] == method and call["path"] == path]


class FakeSocket:
    def __init__(self, session_id: str, on_updated: Callable, on_closed: Optional[Callable] = None, fail: bool = False) -> None:
        self.session_id = session_id
        self.on_updated = on_updated
        self.on_closed = on_closed
        self.fail = fail
        self.opened = False
        self.closed = False

    def open(self) -> "FakeSocket":
        if self.fail:
            raise ConnectionError("socket refused")
        self.opened = True
        return self

    def close(self) -> None:
        self.closed = True


class FakeRotator:
    def __init__(self, fetch_token: Callable[[], str], on_token: Callable[[str], None]) -> None:
        self.fetch_token = fetch_token
        self.on_token = on_token
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def tick(self) -> str:
        token = self.fetch_token()
        if not self.stopped:
            self.on_token(token)
        return token


class LiveFactories:
    """Records every socket and rotator a view-model creates."""

    def __init__(self) -> None:
        self.sockets: list[FakeSocket] = []
        self.rotators: list[FakeRotator] = []
        self.fail_socket = False

    def socket(self, session_id: str, *, on_updated: Callable, on_closed: Optional[Callable] = None) -> FakeSocket:
        socket = FakeSocket(session_id, on_updated, on_closed, fail=self.fail_socket)
        self.sockets.append(socket)
        return socket

    def rotator(self, fetch_token: Callable[[], str], on_token: Callable[[str], None]) -> FakeRotator:
        rotator = FakeRotator(fetch_token, on_token)
        self.rotators.append(rotator)
        return rotator


def month_payload(
    year: int = 2025,
    month: int = 3,
    *,
    days: int = 31,
    students: Optional[list[dict]] = None,
    sessions: Optional[dict] = None,
    matrix: Optional[dict] = None,
    stats: bool = True,
) -> dict[str, Any]:
    students = students if students is not None else [
        {"_id": "s1", "username": "alice", "email": "alice@example.com"},
        {"_id": "s2", "username": "bob", "email": "bob@example.com"},
    ]
    payload: dict[str, Any] = {
        "year": year,
        "month": month,
        "daysInMonth": days,
        "students": students,
        "sessionsByDay": {str(day): sid for day, sid in (sessions or {}).items()},
        "matrix": {
            sid: {str(day): status for day, status in row.items()} for sid, row in (matrix or {}).items()
        },
    }
    if stats:
        payload["stats"] = {"perStudent": {}, "perDay": {}}
    return payload


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(fake_session: FakeSession) -> ApiClient:
    return ApiClient(BASE_URL, CredentialProvider.static("token_teacher", "teacher-token"), session=fake_session)


@pytest.fixture
def attendance_api(client: ApiClient) -> AttendanceApi:
    return AttendanceApi(client)


@pytest.fixture
def live_factories() -> LiveFactories:
    return LiveFactories()


@pytest.fixture
def today() -> Callable[[], date]:
    return lambda: date(2025, 3, 14)
