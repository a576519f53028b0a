from __future__ import annotations

from typing import Any


class EditorError(Exception):
    """Base class for every failure the engine reports.

    Each error carries a stable ``kind`` discriminant and a human readable
    ``detail`` so callers can branch on the kind instead of parsing text.
    """

    kind: str = "editor_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def extra(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.kind, "message": self.detail}
        data.update({k: v for k, v in self.extra().items() if v is not None})
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.detail!r})"


class LoadError(EditorError):
    kind = "image_load_error"


class SaveError(EditorError):
    kind = "image_save_error"


class UnsupportedFormat(EditorError):
    kind = "unsupported_format"

    def __init__(self, format: str, detail: str | None = None) -> None:
        super().__init__(detail or f"Unsupported image format: {format}")
        self.format = format

    def extra(self) -> dict[str, Any]:
        return {"format": self.format}


class AccessDenied(EditorError):
    kind = "file_access_denied"

    def __init__(self, path: str, detail: str | None = None) -> None:
        super().__init__(detail or f"Access denied: {path}")
        self.path = path

    def extra(self) -> dict[str, Any]:
        return {"path": self.path}


class InvalidOperation(EditorError):
    """Payload failed validation. ``field`` names the offending parameter."""

    kind = "invalid_operation"

    def __init__(self, detail: str, field: str | None = None, bound: str | None = None) -> None:
        super().__init__(detail)
        self.field = field
        self.bound = bound

    def extra(self) -> dict[str, Any]:
        return {"field": self.field, "bound": self.bound}


class ResourceExhausted(EditorError):
    kind = "resource_exhausted"

    def __init__(self, detail: str, required: int | None = None, limit: int | None = None) -> None:
        super().__init__(detail)
        self.required = required
        self.limit = limit

    def extra(self) -> dict[str, Any]:
        return {"required": self.required, "limit": self.limit}


class ProcessingError(EditorError):
    kind = "processing_error"

    def __init__(
        self,
        detail: str,
        operation_id: str | None = None,
        operation_kind: str | None = None,
    ) -> None:
        super().__init__(detail)
        self.operation_id = operation_id
        self.operation_kind = operation_kind

    def extra(self) -> dict[str, Any]:
        return {"operation_id": self.operation_id, "operation_kind": self.operation_kind}


class StateError(EditorError):
    kind = "state_error"
