# chronogrid/model.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Optional, Tuple

KIND_BASE = "base"
KIND_VIRTUAL = "virtual"
KIND_EXCEPTION = "exception"


def has_rule(recurrence: Optional[str]) -> bool:
    return isinstance(recurrence, str) and bool(recurrence.strip()) and recurrence.strip().lower() != "none"


@dataclass(frozen=True)
class CalendarEvent:
    """One calendar entry: a stored base/exception event or a generated virtual occurrence.

    `kind` is the tag of the {base | virtual | exception} variant. Times are UTC
    epoch milliseconds; `excluded_dates` holds day keys (YYYY-MM-DD).
    """

    id: str
    start_ms: Optional[int]
    end_ms: Optional[int]
    title: str = ""
    description: str = ""

    recurrence: Optional[str] = None
    excluded_dates: Tuple[str, ...] = ()
    recurrence_group_id: Optional[str] = None
    is_recurrence_base: bool = False

    kind: str = KIND_BASE
    parent_id: Optional[str] = None

    # Host fields the core does not interpret (color, timezone, reminders, ...).
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_virtual(self) -> bool:
        return self.kind == KIND_VIRTUAL

    @property
    def is_exception(self) -> bool:
        return self.kind == KIND_EXCEPTION

    @property
    def is_recurring(self) -> bool:
        return has_rule(self.recurrence)

    @property
    def has_valid_span(self) -> bool:
        return (
            isinstance(self.start_ms, int)
            and isinstance(self.end_ms, int)
            and self.end_ms >= self.start_ms
        )

    @property
    def duration_ms(self) -> int:
        if not self.has_valid_span:
            return 0
        return int(self.end_ms) - int(self.start_ms)  # type: ignore[arg-type]

    def with_times(self, start_ms: int, end_ms: int) -> "CalendarEvent":
        return replace(self, start_ms=int(start_ms), end_ms=int(end_ms))


@dataclass(frozen=True)
class ViewWindow:
    """Finite range bounding expansion; both bounds are inclusive."""

    start_ms: int
    end_ms: int

    def contains(self, ms: Optional[int]) -> bool:
        return ms is not None and self.start_ms <= ms <= self.end_ms


@dataclass(frozen=True)
class Geometry:
    """Per-day pixel placement of one occurrence on the time grid."""

    event_id: str
    day_key: str
    top_px: float
    height_px: float
    left_pct: float
    width_pct: float
    column: int
    columns: int
    visible_start_ms: int
    visible_end_ms: int
    continues_from_previous_day: bool = False
    continues_to_next_day: bool = False

    @property
    def is_conflicting(self) -> bool:
        return self.columns > 1


@dataclass(frozen=True)
class Intent:
    """What a commit did, for the renderer to animate ("created", "moved", ...)."""

    kind: str
    event_ids: Tuple[str, ...] = ()


def infer_kind(*, is_virtual: bool, recurrence: Optional[str], recurrence_group_id: Optional[str]) -> str:
    if is_virtual:
        return KIND_VIRTUAL
    if not has_rule(recurrence) and recurrence_group_id:
        return KIND_EXCEPTION
    return KIND_BASE


def strip_virtual(events: Iterable[CalendarEvent]) -> Tuple[CalendarEvent, ...]:
    """Drop generated occurrences; what remains is safe to persist or snapshot."""
    return tuple(e for e in events if not e.is_virtual)


__all__ = [
    "KIND_BASE",
    "KIND_VIRTUAL",
    "KIND_EXCEPTION",
    "CalendarEvent",
    "ViewWindow",
    "Geometry",
    "Intent",
    "has_rule",
    "infer_kind",
    "strip_virtual",
]
