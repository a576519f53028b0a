from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from darkroom.domain.entities.operation import EditOperation
from darkroom.domain.services.render_pipeline import RenderPipeline
from darkroom.domain.services.validation import validate_operation
from darkroom.infrastructure.storage.image_codec import (
    PillowImageCodec,
    check_quality,
    normalize_export_format,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportResult:
    path: str
    byte_size: int
    format: str


@dataclass
class ExportImageUseCase:
    """
    Render an edit sequence at full resolution and write it to disk.

    The source is always decoded fresh from ``original_path``; nothing from
    an editing session (current image, preview cache) is used. This keeps
    the written file equal to the original plus exactly the given operations,
    whatever the interactive session is showing.
    """

    pipeline: RenderPipeline
    codec: PillowImageCodec = field(default_factory=PillowImageCodec)

    def execute(
        self,
        original_path: str | Path,
        operations: Sequence[EditOperation],
        output_path: str | Path,
        format: str,
        quality: int | None = None,
    ) -> ExportResult:
        """
        Args:
            original_path: Source image on disk
            operations: Operations to replay, oldest first
            output_path: Destination file; its directory must exist
            format: jpeg (or jpg), png or webp
            quality: 1-100, lossy formats only; defaults to 90

        Raises:
            UnsupportedFormat, InvalidOperation: before any decoding
            LoadError, AccessDenied, ResourceExhausted: reading the source
            ProcessingError: an operation failed during rendering
            SaveError: encoding or writing failed
        """
        fmt = normalize_export_format(format)
        q = check_quality(quality)
        ops = tuple(operations)
        for op in ops:
            validate_operation(op)

        decoded = self.codec.decode_path(original_path)
        rendered = self.pipeline.render(decoded.pixels, ops)
        byte_size = self.codec.write(rendered, output_path, fmt, q)
        logger.info(
            "Exported %s with %d operations to %s (%s, %d bytes)",
            original_path, len(ops), output_path, fmt, byte_size,
        )
        return ExportResult(path=str(output_path), byte_size=byte_size, format=fmt.lower())
