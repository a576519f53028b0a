from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from darkroom.domain.entities.operation import EditOperation


class HistoryStatus(str, Enum):
    EMPTY = "empty"
    HAS_APPLIED = "has_applied"
    HAS_UNDONE = "has_undone"
    BOTH = "both"


@dataclass(frozen=True)
class HistorySnapshot:
    applied: tuple[EditOperation, ...]  # oldest first
    undone: tuple[EditOperation, ...]  # most recently undone last
    reserved_ids: frozenset[str] = field(default=frozenset(), repr=False, compare=False)

    @property
    def status(self) -> HistoryStatus:
        if self.applied and self.undone:
            return HistoryStatus.BOTH
        if self.applied:
            return HistoryStatus.HAS_APPLIED
        if self.undone:
            return HistoryStatus.HAS_UNDONE
        return HistoryStatus.EMPTY


@dataclass(frozen=True)
class HistoryState:
    can_undo: bool
    can_redo: bool
    history_count: int
    redo_count: int
    applied: tuple[EditOperation, ...]
