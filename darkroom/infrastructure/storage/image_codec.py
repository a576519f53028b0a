from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from darkroom.domain.entities.image import ImageMetadata
from darkroom.domain.errors import (
    AccessDenied,
    InvalidOperation,
    LoadError,
    ResourceExhausted,
    SaveError,
    UnsupportedFormat,
)

logger = logging.getLogger(__name__)

MAX_DIMENSION = 16384
MAX_SOURCE_BYTES = 500 * 1024 * 1024

SOURCE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "bmp", "webp", "tif", "tiff"}

# export name -> Pillow format
EXPORT_FORMATS = {"jpeg": "JPEG", "jpg": "JPEG", "png": "PNG", "webp": "WEBP"}
DEFAULT_QUALITY = 90

# Pillow refuses images above MAX_IMAGE_PIXELS * 2 while opening; raise its
# ceiling to our own limit so dimension checks below decide instead.
Image.MAX_IMAGE_PIXELS = MAX_DIMENSION * MAX_DIMENSION


@dataclass
class DecodedImage:
    pixels: np.ndarray  # float32 (H, W, 3) in [0, 1]
    metadata: ImageMetadata


def normalize_export_format(format: str) -> str:
    fmt = EXPORT_FORMATS.get(str(format).lower().lstrip("."))
    if fmt is None:
        raise UnsupportedFormat(
            str(format), f"Unsupported export format: {format}. Supported: jpeg, png, webp"
        )
    return fmt


def check_quality(quality: int | None) -> int:
    if quality is None:
        return DEFAULT_QUALITY
    if isinstance(quality, bool) or not isinstance(quality, int) or not 1 <= quality <= 100:
        raise InvalidOperation(f"Quality must be 1-100, got {quality}", field="quality", bound="[1, 100]")
    return quality


class PillowImageCodec:
    """Decode/encode adapter around Pillow.

    Decoded images are always RGB float32 arrays normalized to [0, 1]; any
    alpha channel is dropped on load.
    """

    def read_path(self, path: str | Path) -> bytes:
        file_path = Path(path)
        ext = file_path.suffix.lower().lstrip(".")
        if ext not in SOURCE_EXTENSIONS:
            raise UnsupportedFormat(ext or "unknown")
        try:
            size = file_path.stat().st_size
            if not file_path.is_file():
                raise LoadError(f"Path is not a file: {file_path}")
            if size > MAX_SOURCE_BYTES:
                raise ResourceExhausted(
                    f"File size {size // (1024 * 1024)} MB exceeds maximum "
                    f"{MAX_SOURCE_BYTES // (1024 * 1024)} MB",
                    required=size,
                    limit=MAX_SOURCE_BYTES,
                )
            return file_path.read_bytes()
        except FileNotFoundError as exc:
            raise LoadError(f"File not found: {file_path}") from exc
        except PermissionError as exc:
            raise AccessDenied(str(file_path)) from exc
        except IsADirectoryError as exc:
            raise LoadError(f"Path is not a file: {file_path}") from exc
        except OSError as exc:
            raise LoadError(f"Cannot read {file_path}: {exc}") from exc

    def probe(self, data: bytes) -> tuple[int, int, str]:
        """Read width, height and format from the header without decoding pixels."""
        try:
            with Image.open(BytesIO(data)) as img:
                return img.width, img.height, img.format or "UNKNOWN"
        except UnidentifiedImageError as exc:
            raise UnsupportedFormat("unknown", "Data is not a recognised image format") from exc
        except Image.DecompressionBombError as exc:
            raise ResourceExhausted(str(exc), limit=MAX_DIMENSION * MAX_DIMENSION) from exc
        except OSError as exc:
            raise LoadError(f"Cannot read image header: {exc}") from exc

    def decode(self, data: bytes, path: str | None = None) -> DecodedImage:
        if len(data) > MAX_SOURCE_BYTES:
            raise ResourceExhausted(
                f"Source size {len(data)} bytes exceeds maximum {MAX_SOURCE_BYTES} bytes",
                required=len(data),
                limit=MAX_SOURCE_BYTES,
            )
        if not data:
            raise LoadError("Source is empty")
        width, height, fmt = self.probe(data)
        if width > MAX_DIMENSION or height > MAX_DIMENSION:
            raise ResourceExhausted(
                f"Image dimensions {width}x{height} exceed maximum {MAX_DIMENSION}x{MAX_DIMENSION}",
                required=width * height,
                limit=MAX_DIMENSION * MAX_DIMENSION,
            )
        if width == 0 or height == 0:
            raise LoadError("Image dimensions must be greater than 0")
        try:
            with Image.open(BytesIO(data)) as img:
                rgb = img.convert("RGB")
        except (OSError, SyntaxError, ValueError) as exc:
            raise LoadError(f"Failed to decode image: {exc}") from exc
        pixels = np.asarray(rgb).astype(np.float32) / 255.0
        metadata = ImageMetadata(
            width=width, height=height, format=fmt, byte_size=len(data), path=path
        )
        return DecodedImage(pixels=pixels, metadata=metadata)

    def decode_path(self, path: str | Path) -> DecodedImage:
        data = self.read_path(path)
        return self.decode(data, path=str(path))

    def encode(self, image: np.ndarray, format: str, quality: int | None = None) -> bytes:
        fmt = normalize_export_format(format)
        q = check_quality(quality)
        arr = np.rint(np.clip(image[..., :3], 0.0, 1.0) * 255.0).astype("uint8")
        img = Image.fromarray(arr)
        buf = BytesIO()
        try:
            if fmt == "JPEG":
                img.save(buf, format=fmt, quality=q)
            elif fmt == "WEBP":
                img.save(buf, format=fmt, quality=q, lossless=False)
            else:
                img.save(buf, format=fmt)
        except (OSError, ValueError, KeyError) as exc:
            raise SaveError(f"Failed to encode {fmt}: {exc}") from exc
        return buf.getvalue()

    def write(
        self, image: np.ndarray, output_path: str | Path, format: str, quality: int | None = None
    ) -> int:
        """Encode and write ``image``; returns the number of bytes written."""
        out = Path(output_path)
        if not out.parent.exists():
            raise SaveError(f"Parent directory does not exist: {out.parent}")
        data = self.encode(image, format, quality)
        try:
            out.write_bytes(data)
        except PermissionError as exc:
            raise AccessDenied(str(out)) from exc
        except OSError as exc:
            raise SaveError(f"Cannot write {out}: {exc}") from exc
        logger.info("Wrote %s (%d bytes)", out, len(data))
        return len(data)
