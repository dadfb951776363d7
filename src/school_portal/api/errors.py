from __future__ import annotations

from typing import Any, Mapping, Optional


class ApiError(RuntimeError):
    """Raised when the backend rejects a request or cannot be reached."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload: dict[str, Any] = dict(payload or {})


class FieldError(ApiError):
    """Raised when the backend reports a validation error for a specific field."""

    def __init__(
        self,
        message: str,
        *,
        field: str,
        row_index: Optional[int] = None,
        status: Optional[int] = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, status=status, payload=payload)
        self.field = field
        self.row_index = row_index


class EndpointNotFound(ApiError):
    """Raised when every candidate endpoint answered 404/405."""


def error_from_response(status: int, reason: str, body: Mapping[str, Any]) -> ApiError:
    message = body.get("error") or body.get("message") or f"HTTP {status} {reason}".strip()
    field_name = body.get("field")
    if field_name:
        row_index = body.get("rowIndex")
        return FieldError(
            str(message),
            field=str(field_name),
            row_index=row_index if isinstance(row_index, int) else None,
            status=status,
            payload=body,
        )
    return ApiError(str(message), status=status, payload=body)
