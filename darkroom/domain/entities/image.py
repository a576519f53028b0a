from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np


@dataclass(frozen=True)
class ImageMetadata:
    width: int
    height: int
    format: str  # upper-case codec name, e.g. "PNG"
    byte_size: int
    path: str | None = None  # None when loaded from raw bytes


@dataclass(frozen=True)
class SourceImage:
    """Read-only handle on a decoded source image.

    ``pixels`` is flagged non-writeable; a new load publishes a new handle
    instead of touching this one. ``version`` increases with every load.
    """

    pixels: np.ndarray
    metadata: ImageMetadata
    version: int

    @classmethod
    def publish(cls, pixels: np.ndarray, metadata: ImageMetadata, version: int) -> SourceImage:
        frozen = np.ascontiguousarray(pixels, dtype=np.float32)
        if frozen is pixels:
            frozen = pixels.copy()
        frozen.setflags(write=False)
        return cls(pixels=frozen, metadata=metadata, version=version)

    @property
    def size(self) -> tuple[int, int]:
        return self.metadata.width, self.metadata.height

    @property
    def path(self) -> Path | None:
        return Path(self.metadata.path) if self.metadata.path else None
