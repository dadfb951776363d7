from __future__ import annotations

import json
import logging
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence

import requests

from school_portal.api.errors import ApiError, EndpointNotFound, error_from_response
from school_portal.config.credential_store import CredentialProvider

logger = logging.getLogger(__name__)

FALLBACK_STATUSES = {404, 405}


class ApiClient:
    """Authorized JSON client for the school backend.

    Every request carries ``Authorization: Bearer <token>``. A missing token is
    sent as an empty bearer value; the backend decides what that means.
    """

    def __init__(
        self,
        base_url: str,
        credentials: CredentialProvider,
        *,
        role_key: str = "token_teacher",
        session: Any = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._credentials = credentials
        self._role_key = role_key
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout

    @property
    def role_key(self) -> str:
        return self._role_key

    def with_role(self, role_key: str) -> "ApiClient":
        return ApiClient(
            self.base_url,
            self._credentials,
            role_key=role_key,
            session=self._session,
            timeout=self._timeout,
        )

    def url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def headers(self, extra: Optional[Mapping[str, str]] = None) -> dict[str, str]:
        headers = dict(extra or {})
        token = self._credentials.token(self._role_key) or ""
        headers["Authorization"] = f"Bearer {token}"
        return headers

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------
    def get_json(self, path: str, *, params: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        return self.request("GET", path, params=params)

    def post_json(self, path: str, body: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        return self.request("POST", path, body=body)

    def patch_json(
        self,
        path: str,
        body: Optional[Mapping[str, Any]] = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> dict[str, Any]:
        return self.request("PATCH", path, params=params, body=body)

    def delete_json(self, path: str) -> dict[str, Any]:
        return self.request("DELETE", path)

    def post_multipart(
        self,
        path: str,
        file_path: Path,
        *,
        field_name: str = "file",
        data: Optional[Mapping[str, str]] = None,
    ) -> dict[str, Any]:
        with Path(file_path).open("rb") as handle:
            files = {field_name: (Path(file_path).name, handle)}
            return self.request("POST", path, files=files, data=data)

    def send_form(
        self,
        method: str,
        path: str,
        data: Mapping[str, str],
        *,
        attachments: Sequence[Path] = (),
        field_name: str = "attachments",
    ) -> dict[str, Any]:
        """Send form fields plus any number of files under one repeated field name."""

        with ExitStack() as stack:
            files = [
                (field_name, (Path(item).name, stack.enter_context(Path(item).open("rb"))))
                for item in attachments
            ]
            return self.request(method, path, files=files, data=data)

    def get_with_fallback(self, paths: Iterable[str]) -> dict[str, Any]:
        """GET the first path that exists; 404/405 moves on to the next candidate."""

        last_error: ApiError | None = None
        for path in paths:
            try:
                return self.get_json(path)
            except ApiError as exc:
                if exc.status not in FALLBACK_STATUSES:
                    raise
                logger.debug("Endpoint %s not available (%s), trying next", path, exc.status)
                last_error = EndpointNotFound(
                    f"Endpoint not found at {self.url(path)}", status=exc.status
                )
        raise last_error or EndpointNotFound("All endpoints failed")

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        body: Optional[Mapping[str, Any]] = None,
        files: Any = None,
        data: Optional[Mapping[str, str]] = None,
    ) -> dict[str, Any]:
        url = self.url(path)
        kwargs: dict[str, Any] = {"timeout": self._timeout}
        if params:
            kwargs["params"] = dict(params)
        if files is not None:
            kwargs["files"] = files
            kwargs["headers"] = self.headers()
            if data:
                kwargs["data"] = dict(data)
        elif body is not None:
            kwargs["data"] = json.dumps(body)
            kwargs["headers"] = self.headers({"Content-Type": "application/json"})
        else:
            kwargs["headers"] = self.headers()

        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            raise ApiError(f"Network error: {exc}") from exc

        payload = self._parse_body(response)
        if not response.ok:
            raise error_from_response(response.status_code, response.reason or "", payload)
        return payload

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _parse_body(response: Any) -> dict[str, Any]:
        text = response.text or ""
        if not text.strip():
            return {}
        try:
            parsed = json.loads(text)
        except ValueError as exc:
            if not response.ok:
                return {"error": text.strip()}
            raise ApiError(
                f"Invalid JSON from {response.url}", status=response.status_code
            ) from exc
        if isinstance(parsed, dict):
            return parsed
        return {"items": parsed}


def list_payload(payload: Mapping[str, Any], *keys: str) -> list[dict[str, Any]]:
    """Pull a list out of a response that may wrap it under one of several keys."""

    for key in (*keys, "items", "data"):
        value = payload.get(key)
        if isinstance(value, list):
            return value
    return []
