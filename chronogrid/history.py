# chronogrid/history.py
from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from .model import CalendarEvent, strip_virtual

Snapshot = Tuple[CalendarEvent, ...]


class History:
    """Undo/redo over whole-collection snapshots.

    `record(before)` is called with the collection as it was *before* a commit.
    Snapshots never contain virtual occurrences.
    """

    def __init__(self, limit: Optional[int] = 100):
        self.limit = limit if limit is None else max(1, int(limit))
        self._undo: List[Snapshot] = []
        self._redo: List[Snapshot] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def __len__(self) -> int:
        return len(self._undo)

    def record(self, before: Iterable[CalendarEvent]) -> None:
        self._undo.append(strip_virtual(before))
        if self.limit is not None and len(self._undo) > self.limit:
            del self._undo[: len(self._undo) - self.limit]
        self._redo.clear()

    def undo(self, current: Iterable[CalendarEvent]) -> Optional[Snapshot]:
        """Previous snapshot, or None when there is nothing to undo."""
        if not self._undo:
            return None
        self._redo.append(strip_virtual(current))
        return self._undo.pop()

    def redo(self, current: Iterable[CalendarEvent]) -> Optional[Snapshot]:
        if not self._redo:
            return None
        self._undo.append(strip_virtual(current))
        return self._redo.pop()

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()


__all__ = ["History", "Snapshot"]
