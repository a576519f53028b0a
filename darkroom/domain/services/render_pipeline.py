from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from darkroom.domain.entities.operation import (
    AdjustmentParams,
    CropParams,
    EditOperation,
    FilterKind,
    FilterParams,
    TransformKind,
    TransformParams,
)
from darkroom.domain.errors import ProcessingError
from darkroom.domain.services.processing_service import ProcessingService

logger = logging.getLogger(__name__)

# Below this many rows per block the thread hand-off costs more than it saves
MIN_ROWS_PER_BLOCK = 64

BlockFn = Callable[[np.ndarray], np.ndarray]


def default_worker_count() -> int:
    return max(1, min(4, os.cpu_count() or 1))


class RenderPipeline:
    """Replays operation sequences against a base image.

    Per-pixel work is split into row blocks and run on a small thread pool.
    Blocks share no mutable state: each reads its slice of the input (or of a
    padded copy, for neighbourhood filters) and returns a new array, and the
    blocks are stitched back together in row order. The output therefore does
    not depend on the number of workers.
    """

    def __init__(self, workers: int | None = None, processing: ProcessingService | None = None) -> None:
        self.workers = workers or default_worker_count()
        self.processing = processing or ProcessingService()
        self._executor = ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="darkroom-render"
        )

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> RenderPipeline:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def render(self, base: np.ndarray, ops: Sequence[EditOperation]) -> np.ndarray:
        """Apply ``ops`` in order to ``base`` and return the final image.

        ``base`` is never written to. Any failure aborts the whole pass with a
        ProcessingError naming the operation that failed.
        """
        current = base
        for op in ops:
            current = self.apply_operation(current, op)
        if current is base:
            # Empty sequence: hand out a private copy, never the shared base
            current = base.copy()
        return current

    def apply_operation(self, image: np.ndarray, op: EditOperation) -> np.ndarray:
        try:
            return self._dispatch(image, op)
        except ProcessingError:
            raise
        except Exception as exc:
            logger.error("Operation %s (%s) failed: %s", op.id, op.kind.value, exc)
            raise ProcessingError(
                f"Operation {op.id} ({op.kind.value}) failed: {exc}",
                operation_id=op.id,
                operation_kind=op.kind.value,
            ) from exc

    def _dispatch(self, image: np.ndarray, op: EditOperation) -> np.ndarray:
        params = op.params
        if isinstance(params, FilterParams):
            return self._apply_filter(image, params)
        if isinstance(params, AdjustmentParams):
            return self._map_blocks(image, lambda block: self._adjust_block(block, params))
        if isinstance(params, TransformParams):
            return self._apply_transform(image, params)
        if isinstance(params, CropParams):
            rect = params.rect
            return self.processing.crop(image, rect.x, rect.y, rect.width, rect.height)
        raise ProcessingError(
            f"Unsupported operation params: {type(params).__name__}",
            operation_id=op.id,
        )

    def _apply_filter(self, image: np.ndarray, params: FilterParams) -> np.ndarray:
        ps = self.processing
        kind = params.kind
        if kind is FilterKind.GRAYSCALE:
            filtered = self._map_blocks(image, ps.grayscale)
        elif kind is FilterKind.SEPIA:
            filtered = self._map_blocks(image, ps.sepia)
        elif kind is FilterKind.INVERT:
            filtered = self._map_blocks(image, ps.invert)
        elif kind is FilterKind.BLUR:
            if params.radius is None or params.radius <= 0:
                raise ValueError(f"Blur radius must be positive, got {params.radius}")
            filtered = self._blur(image, params.radius)
        elif kind is FilterKind.SHARPEN:
            blurred = self._blur(image, 1.0)
            filtered = ps.unsharp_combine(image, blurred)
        else:
            raise ValueError(f"Unsupported filter: {kind!r}")
        return ps.blend(image, filtered, params.intensity)

    def _apply_transform(self, image: np.ndarray, params: TransformParams) -> np.ndarray:
        ps = self.processing
        kind = params.kind
        if kind is TransformKind.ROTATE_90:
            return ps.rotate90(image)
        if kind is TransformKind.ROTATE_180:
            return ps.rotate180(image)
        if kind is TransformKind.ROTATE_270:
            return ps.rotate270(image)
        if kind is TransformKind.FLIP_HORIZONTAL:
            return ps.flip_horizontal(image)
        if kind is TransformKind.FLIP_VERTICAL:
            return ps.flip_vertical(image)
        raise ValueError(f"Unsupported transform: {kind!r}")

    def _adjust_block(self, block: np.ndarray, params: AdjustmentParams) -> np.ndarray:
        # Fixed order: brightness, contrast, saturation, hue, gamma
        ps = self.processing
        out = block
        if params.brightness is not None:
            out = ps.adjust_brightness(out, params.brightness)
        if params.contrast is not None:
            out = ps.adjust_contrast(out, params.contrast)
        if params.saturation is not None:
            out = ps.adjust_saturation(out, params.saturation)
        if params.hue is not None:
            out = ps.adjust_hue(out, params.hue)
        if params.gamma is not None:
            if params.gamma <= 0:
                raise ValueError(f"Gamma must be positive, got {params.gamma}")
            out = ps.adjust_gamma(out, params.gamma)
        if out is block:
            out = block.astype(np.float32, copy=True)
        return out

    def _blur(self, image: np.ndarray, radius: float) -> np.ndarray:
        ps = self.processing
        kernel = ps.gaussian_kernel(radius)
        padded = ps.pad_for_kernel(image, len(kernel) // 2)
        padded.setflags(write=False)
        height = image.shape[0]
        blocks = self._row_blocks(height)
        if len(blocks) == 1:
            return ps.convolve_rows(padded, kernel, 0, height)
        futures = [
            self._executor.submit(ps.convolve_rows, padded, kernel, start, stop)
            for start, stop in blocks
        ]
        return np.concatenate([f.result() for f in futures], axis=0)

    def _map_blocks(self, image: np.ndarray, fn: BlockFn) -> np.ndarray:
        blocks = self._row_blocks(image.shape[0])
        if len(blocks) == 1:
            return fn(image)
        futures = [self._executor.submit(fn, image[start:stop]) for start, stop in blocks]
        return np.concatenate([f.result() for f in futures], axis=0)

    def _row_blocks(self, height: int) -> list[tuple[int, int]]:
        count = min(self.workers, max(1, height // MIN_ROWS_PER_BLOCK))
        bounds = np.linspace(0, height, count + 1).astype(int)
        return [(int(a), int(b)) for a, b in zip(bounds[:-1], bounds[1:]) if b > a]
