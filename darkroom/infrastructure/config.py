from __future__ import annotations

import os
from functools import lru_cache

from darkroom.domain.services.history_manager import DEFAULT_HISTORY_LIMIT
from darkroom.domain.services.render_pipeline import default_worker_count


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


class Settings:
    """Runtime settings read from the environment."""

    def __init__(self) -> None:
        self.env = os.getenv("ENV", "development")
        self.workers = _int_env("DARKROOM_WORKERS", default_worker_count())
        self.history_limit = _int_env("DARKROOM_HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT)
        self.preview_max_width = _int_env("DARKROOM_PREVIEW_MAX_WIDTH", 1024)
        self.preview_max_height = _int_env("DARKROOM_PREVIEW_MAX_HEIGHT", 1024)
        self.preview_format = os.getenv("DARKROOM_PREVIEW_FORMAT", "png").lower()
        self.preview_quality = _int_env("DARKROOM_PREVIEW_QUALITY", 85)
        self.log_level = os.getenv("DARKROOM_LOG_LEVEL", "INFO").upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()
