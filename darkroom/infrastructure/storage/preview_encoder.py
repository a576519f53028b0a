from __future__ import annotations

import base64
import binascii
from io import BytesIO

import numpy as np
from PIL import Image, UnidentifiedImageError

from darkroom.domain.errors import LoadError, SaveError, UnsupportedFormat

PREVIEW_FORMATS = {"png": "PNG", "jpeg": "JPEG", "jpg": "JPEG"}


class PreviewEncoder:
    """Encodes rendered previews as base64 data URLs for the UI."""

    def __init__(self, format: str = "png", quality: int = 85) -> None:
        fmt = PREVIEW_FORMATS.get(format.lower())
        if fmt is None:
            raise UnsupportedFormat(format, f"Unsupported preview format: {format}")
        self.format = fmt
        self.quality = quality

    @property
    def mime_type(self) -> str:
        return "image/png" if self.format == "PNG" else "image/jpeg"

    def encode(self, image: np.ndarray) -> str:
        arr = np.rint(np.clip(image[..., :3], 0.0, 1.0) * 255.0).astype("uint8")
        buf = BytesIO()
        try:
            if self.format == "JPEG":
                Image.fromarray(arr).save(buf, format="JPEG", quality=self.quality)
            else:
                Image.fromarray(arr).save(buf, format="PNG")
        except (OSError, ValueError) as exc:
            raise SaveError(f"Failed to encode preview: {exc}") from exc
        payload = base64.b64encode(buf.getvalue()).decode("ascii")
        return f"data:{self.mime_type};base64,{payload}"

    @staticmethod
    def decode(text: str) -> np.ndarray:
        """Inverse of ``encode``; accepts a data URL or bare base64."""
        _, sep, payload = text.partition(",")
        if not sep:
            payload = text
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise LoadError(f"Invalid base64 preview: {exc}") from exc
        try:
            with Image.open(BytesIO(raw)) as img:
                rgb = img.convert("RGB")
        except UnidentifiedImageError as exc:
            raise UnsupportedFormat("unknown", "Preview payload is not an image") from exc
        except OSError as exc:
            raise LoadError(f"Failed to decode preview: {exc}") from exc
        return np.asarray(rgb).astype(np.float32) / 255.0
