from __future__ import annotations

import logging
import threading

from darkroom.domain.entities.edit_history import HistorySnapshot, HistoryStatus
from darkroom.domain.entities.operation import EditOperation
from darkroom.domain.errors import InvalidOperation, StateError
from darkroom.domain.services.validation import validate_operation

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class HistoryManager:
    """Undo/redo stacks of edit operations.

    ``applied`` holds the operations in effect, oldest first; ``undone`` holds
    operations removed by undo, most recently undone last. Every public method
    runs as one critical section, so no reader ever sees an operation halfway
    between the two sequences or one sequence cleared without the other.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.limit = limit
        self._applied: list[EditOperation] = []
        self._undone: list[EditOperation] = []
        # ids stay reserved until clear(), including ids of evicted operations
        self._seen_ids: set[str] = set()
        self._lock = threading.Lock()

    def push(
        self, op: EditOperation, image_size: tuple[int, int] | None = None
    ) -> tuple[EditOperation, ...]:
        """Validate and append ``op``; clears the redo sequence.

        Returns the new applied sequence. When the sequence grows past
        ``limit`` the oldest operation is dropped.
        """
        validate_operation(op, image_size)
        with self._lock:
            if op.id in self._seen_ids:
                raise InvalidOperation(
                    f"Operation id already used in this session: {op.id}", field="id"
                )
            self._seen_ids.add(op.id)
            self._undone.clear()
            self._applied.append(op)
            if len(self._applied) > self.limit:
                evicted = self._applied.pop(0)
                logger.debug("History full, evicted oldest operation %s", evicted.id)
            return tuple(self._applied)

    def undo(self) -> tuple[EditOperation, ...]:
        with self._lock:
            if not self._applied:
                raise StateError("Nothing to undo")
            self._undone.append(self._applied.pop())
            return tuple(self._applied)

    def redo(self) -> tuple[EditOperation, ...]:
        with self._lock:
            if not self._undone:
                raise StateError("Nothing to redo")
            self._applied.append(self._undone.pop())
            return tuple(self._applied)

    def clear(self) -> None:
        with self._lock:
            self._applied.clear()
            self._undone.clear()
            self._seen_ids.clear()

    def snapshot(self) -> HistorySnapshot:
        with self._lock:
            return HistorySnapshot(
                applied=tuple(self._applied),
                undone=tuple(self._undone),
                reserved_ids=frozenset(self._seen_ids),
            )

    def restore(self, snapshot: HistorySnapshot) -> None:
        """Reinstall a previously taken snapshot.

        Ids first pushed after the snapshot was taken become available again.
        """
        with self._lock:
            self._applied = list(snapshot.applied)
            self._undone = list(snapshot.undone)
            self._seen_ids = set(snapshot.reserved_ids)
            self._seen_ids.update(op.id for op in snapshot.applied)
            self._seen_ids.update(op.id for op in snapshot.undone)

    @property
    def applied(self) -> tuple[EditOperation, ...]:
        with self._lock:
            return tuple(self._applied)

    @property
    def undone(self) -> tuple[EditOperation, ...]:
        with self._lock:
            return tuple(self._undone)

    @property
    def status(self) -> HistoryStatus:
        return self.snapshot().status

    @property
    def can_undo(self) -> bool:
        with self._lock:
            return bool(self._applied)

    @property
    def can_redo(self) -> bool:
        with self._lock:
            return bool(self._undone)

    @property
    def redo_count(self) -> int:
        with self._lock:
            return len(self._undone)

    def __len__(self) -> int:
        with self._lock:
            return len(self._applied)
