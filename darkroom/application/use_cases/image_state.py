from __future__ import annotations

import hashlib
import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from darkroom.domain.entities.edit_history import HistoryState
from darkroom.domain.entities.image import ImageMetadata, SourceImage
from darkroom.domain.entities.operation import CropRect, EditOperation
from darkroom.domain.entities.preview import PreviewResult
from darkroom.domain.errors import EditorError, InvalidOperation, StateError
from darkroom.domain.services.history_manager import DEFAULT_HISTORY_LIMIT, HistoryManager
from darkroom.domain.services.render_pipeline import RenderPipeline
from darkroom.domain.services.validation import crop_rect_for_aspect_ratio, validate_operation
from darkroom.infrastructure.storage.image_codec import DecodedImage, PillowImageCodec
from darkroom.infrastructure.storage.preview_encoder import PreviewEncoder

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_SIZE = 1024


def sequence_digest(ops: Sequence[EditOperation]) -> str:
    h = hashlib.sha256()
    for op in ops:
        h.update(op.fingerprint().encode("utf-8"))
        h.update(b"\n")
    return h.hexdigest()


@dataclass(frozen=True)
class PreviewKey:
    version: int  # source image version the render was made from
    ops_digest: str
    max_width: int
    max_height: int


@dataclass(frozen=True)
class CachedRender:
    key: PreviewKey
    image: np.ndarray  # full resolution, read-only
    preview: PreviewResult


class PreviewCache:
    """Single-entry cache of the last rendered state.

    A lookup only hits when every part of the key matches; any other key
    means the entry is stale and it is ignored.
    """

    def __init__(self) -> None:
        self._entry: CachedRender | None = None
        self._lock = threading.Lock()

    def get(self, key: PreviewKey) -> CachedRender | None:
        with self._lock:
            entry = self._entry
        if entry is not None and entry.key == key:
            return entry
        return None

    def put(self, entry: CachedRender) -> None:
        with self._lock:
            self._entry = entry

    def clear(self) -> None:
        with self._lock:
            self._entry = None

    @property
    def key(self) -> PreviewKey | None:
        with self._lock:
            return self._entry.key if self._entry else None


class ImageState:
    """Session state for one image being edited.

    Holds the read-only source image, the history of applied operations and
    the current image, which is always the source with the applied sequence
    replayed on it. Every state change (load, apply, undo, redo, reset) runs
    under one commit lock, so concurrent submissions are applied one at a
    time in the order they acquire it and no caller observes history ahead
    of the current image. ``preview`` does not take the commit lock.
    """

    def __init__(
        self,
        pipeline: RenderPipeline,
        codec: PillowImageCodec | None = None,
        preview_encoder: PreviewEncoder | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        preview_max_width: int = DEFAULT_PREVIEW_SIZE,
        preview_max_height: int = DEFAULT_PREVIEW_SIZE,
    ) -> None:
        self.pipeline = pipeline
        self.codec = codec or PillowImageCodec()
        self.preview_encoder = preview_encoder or PreviewEncoder()
        self.preview_max_width = preview_max_width
        self.preview_max_height = preview_max_height
        self._history = HistoryManager(limit=history_limit)
        self._cache = PreviewCache()
        self._commit_lock = threading.Lock()
        self._source: SourceImage | None = None
        self._current: np.ndarray | None = None
        self._version = 0

    # --------- session ---------

    def load(self, source: bytes | str | Path) -> ImageMetadata:
        """Decode a new source image and start a fresh session on it.

        Decoding happens before anything is touched, so a failed load leaves
        the previous image, history and cache exactly as they were.
        """
        decoded = self._decode(source)
        with self._commit_lock:
            self._install(decoded)
        self._log_loaded(decoded.metadata)
        return decoded.metadata

    def open(
        self,
        source: bytes | str | Path,
        max_width: int | None = None,
        max_height: int | None = None,
    ) -> tuple[ImageMetadata, PreviewResult]:
        """Like ``load``, also returning the preview of the unedited image.

        Install and preview render share one commit, so no concurrent edit
        can appear in the returned preview.
        """
        self._bounds(max_width, max_height)
        decoded = self._decode(source)
        with self._commit_lock:
            published = self._install(decoded)
            entry = self._render(published, (), max_width, max_height)
        self._log_loaded(decoded.metadata)
        return decoded.metadata, entry.preview

    def reset(
        self, max_width: int | None = None, max_height: int | None = None
    ) -> PreviewResult:
        """Drop all edits and go back to the source image."""
        with self._commit_lock:
            source = self._require_source()
            self._history.clear()
            self._cache.clear()
            entry = self._render(source, (), max_width, max_height)
            self._current = entry.image
        logger.info("Session reset to source image")
        return entry.preview

    # --------- edits ---------

    def apply(
        self, op: EditOperation, max_width: int | None = None, max_height: int | None = None
    ) -> PreviewResult:
        with self._commit_lock:
            source = self._require_source()
            snapshot = self._history.snapshot()
            applied = self._history.push(op, image_size=self._current_size())
            entry = self._commit(source, applied, snapshot, max_width, max_height)
        logger.info("Applied %s operation %s (%d in history)", op.kind.value, op.id, len(applied))
        return entry.preview

    def undo(self, max_width: int | None = None, max_height: int | None = None) -> PreviewResult:
        with self._commit_lock:
            source = self._require_source()
            snapshot = self._history.snapshot()
            applied = self._history.undo()
            entry = self._commit(source, applied, snapshot, max_width, max_height)
        logger.info("Undo: %d operations applied", len(applied))
        return entry.preview

    def redo(self, max_width: int | None = None, max_height: int | None = None) -> PreviewResult:
        with self._commit_lock:
            source = self._require_source()
            snapshot = self._history.snapshot()
            applied = self._history.redo()
            entry = self._commit(source, applied, snapshot, max_width, max_height)
        logger.info("Redo: %d operations applied", len(applied))
        return entry.preview

    # --------- read side ---------

    def preview(
        self,
        ops: Sequence[EditOperation],
        max_width: int | None = None,
        max_height: int | None = None,
    ) -> PreviewResult:
        """Render ``ops`` against the source without touching history.

        The result is only cached if no new image was loaded meanwhile.
        """
        source = self._require_source()
        ops = tuple(ops)
        for op in ops:
            validate_operation(op)
        entry = self._render(source, ops, max_width, max_height, store=False)
        if entry.key.version == self._version:
            self._cache.put(entry)
        else:
            logger.debug("Discarding preview made from superseded source v%d", entry.key.version)
        return entry.preview

    def current_preview(
        self, max_width: int | None = None, max_height: int | None = None
    ) -> PreviewResult:
        with self._commit_lock:
            source = self._require_source()
            entry = self._render(source, self._history.applied, max_width, max_height)
        return entry.preview

    def history_state(self) -> HistoryState:
        snap = self._history.snapshot()
        return HistoryState(
            can_undo=bool(snap.applied),
            can_redo=bool(snap.undone),
            history_count=len(snap.applied),
            redo_count=len(snap.undone),
            applied=snap.applied,
        )

    def suggest_crop(self, aspect_ratio: float, from_center: bool = True) -> CropRect:
        size = self._current_size()
        if size is None:
            raise StateError("No image loaded")
        return crop_rect_for_aspect_ratio(size[0], size[1], aspect_ratio, from_center)

    def export_snapshot(self) -> tuple[tuple[EditOperation, ...], Path | None]:
        """Applied operations and source path, read as one consistent pair."""
        with self._commit_lock:
            source = self._source
            return self._history.applied, source.path if source else None

    @property
    def applied(self) -> tuple[EditOperation, ...]:
        return self._history.applied

    @property
    def metadata(self) -> ImageMetadata | None:
        source = self._source
        return source.metadata if source else None

    @property
    def source_path(self) -> Path | None:
        source = self._source
        return source.path if source else None

    @property
    def current_size(self) -> tuple[int, int] | None:
        return self._current_size()

    @property
    def current_image(self) -> np.ndarray | None:
        return self._current

    # --------- internals ---------

    def _decode(self, source: bytes | str | Path) -> DecodedImage:
        if isinstance(source, (bytes, bytearray, memoryview)):
            return self.codec.decode(bytes(source))
        return self.codec.decode_path(source)

    def _install(self, decoded: DecodedImage) -> SourceImage:
        # caller holds the commit lock
        self._version += 1
        published = SourceImage.publish(decoded.pixels, decoded.metadata, self._version)
        self._source = published
        self._current = published.pixels
        self._history.clear()
        self._cache.clear()
        return published

    @staticmethod
    def _log_loaded(meta: ImageMetadata) -> None:
        logger.info(
            "Loaded %s image %dx%d (%d bytes) from %s",
            meta.format, meta.width, meta.height, meta.byte_size, meta.path or "memory",
        )

    def _require_source(self) -> SourceImage:
        source = self._source
        if source is None:
            raise StateError("No image loaded")
        return source

    def _current_size(self) -> tuple[int, int] | None:
        current = self._current
        if current is None:
            return None
        return int(current.shape[1]), int(current.shape[0])

    def _commit(self, source, applied, snapshot, max_width, max_height) -> CachedRender:
        # caller holds the commit lock
        try:
            entry = self._render(source, applied, max_width, max_height)
        except EditorError:
            self._history.restore(snapshot)
            logger.warning("Render failed, history rolled back to %d operations", len(snapshot.applied))
            raise
        self._current = entry.image
        return entry

    def _bounds(self, max_width: int | None, max_height: int | None) -> tuple[int, int]:
        w = self.preview_max_width if max_width is None else max_width
        h = self.preview_max_height if max_height is None else max_height
        for name, value in (("max_width", w), ("max_height", h)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidOperation(f"{name} must be a positive integer, got {value!r}", field=name, bound=">= 1")
        return w, h

    def _render(
        self,
        source: SourceImage,
        ops: Sequence[EditOperation],
        max_width: int | None,
        max_height: int | None,
        store: bool = True,
    ) -> CachedRender:
        w, h = self._bounds(max_width, max_height)
        key = PreviewKey(source.version, sequence_digest(ops), w, h)
        hit = self._cache.get(key)
        if hit is not None:
            logger.debug("Preview cache hit (v%d, %d ops)", key.version, len(ops))
            return hit
        logger.debug("Preview cache miss (v%d, %d ops), rendering", key.version, len(ops))

        full = self.pipeline.render(source.pixels, ops)
        full.setflags(write=False)
        small = self.pipeline.processing.resize_to_fit(full, w, h)
        preview = PreviewResult(
            preview_base64=self.preview_encoder.encode(small),
            width=int(full.shape[1]),
            height=int(full.shape[0]),
            preview_width=int(small.shape[1]),
            preview_height=int(small.shape[0]),
        )
        entry = CachedRender(key=key, image=full, preview=preview)
        if store:
            self._cache.put(entry)
        return entry
