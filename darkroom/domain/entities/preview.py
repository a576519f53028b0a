from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PreviewResult:
    preview_base64: str
    width: int  # full-resolution width of the rendered state
    height: int
    preview_width: int
    preview_height: int
