from __future__ import annotations

import threading

import pytest

from darkroom.domain.entities.edit_history import HistoryStatus
from darkroom.domain.entities.operation import AdjustmentParams, EditOperation
from darkroom.domain.errors import InvalidOperation, StateError
from darkroom.domain.services.history_manager import HistoryManager


def op(i: int) -> EditOperation:
    return EditOperation(id=f"op-{i}", params=AdjustmentParams(brightness=1.0 + i / 1000))


def test_push_undo_redo():
    h = HistoryManager()
    assert h.status is HistoryStatus.EMPTY
    h.push(op(1))
    h.push(op(2))
    assert [o.id for o in h.undo()] == ["op-1"]
    assert h.status is HistoryStatus.BOTH
    assert [o.id for o in h.redo()] == ["op-1", "op-2"]
    assert h.status is HistoryStatus.HAS_APPLIED


def test_push_clears_redo():
    h = HistoryManager()
    h.push(op(1))
    h.undo()
    assert h.can_redo
    h.push(op(2))
    assert not h.can_redo
    with pytest.raises(StateError):
        h.redo()


def test_undo_on_empty_raises():
    with pytest.raises(StateError):
        HistoryManager().undo()


def test_limit_evicts_oldest():
    h = HistoryManager(limit=50)
    for i in range(51):
        h.push(op(i))
    assert len(h) == 50
    assert h.applied[0].id == "op-1"
    for _ in range(50):
        h.undo()
    with pytest.raises(StateError):
        h.undo()
    assert h.redo_count == 50


def test_evicted_ids_stay_reserved():
    h = HistoryManager(limit=2)
    for i in range(3):
        h.push(op(i))
    assert [o.id for o in h.applied] == ["op-1", "op-2"]
    with pytest.raises(InvalidOperation):
        h.push(op(0))
    h.clear()
    h.push(op(0))


def test_invalid_op_leaves_history_untouched():
    h = HistoryManager()
    h.push(op(1))
    h.undo()
    with pytest.raises(InvalidOperation):
        h.push(EditOperation(id="bad", params=AdjustmentParams(brightness=2.5)))
    assert h.can_redo
    assert len(h) == 0


def test_duplicate_id_rejected():
    h = HistoryManager()
    h.push(op(1))
    with pytest.raises(InvalidOperation) as info:
        h.push(op(1))
    assert info.value.field == "id"


def test_clear_resets_ids():
    h = HistoryManager()
    h.push(op(1))
    h.clear()
    assert h.status is HistoryStatus.EMPTY
    h.push(op(1))


def test_restore_snapshot_releases_later_ids():
    h = HistoryManager()
    h.push(op(1))
    snap = h.snapshot()
    h.push(op(2))
    h.restore(snap)
    assert [o.id for o in h.applied] == ["op-1"]
    h.push(op(2))
    with pytest.raises(InvalidOperation):
        h.push(op(1))


def test_concurrent_pushes_keep_every_operation():
    h = HistoryManager(limit=1000)

    def worker(start: int) -> None:
        for i in range(start, start + 100):
            h.push(op(i))

    threads = [threading.Thread(target=worker, args=(n * 100,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(h) == 400
    assert len({o.id for o in h.applied}) == 400
