# chronogrid/layout.py
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .config import DEFAULT_CONFIG, GridConfig
from .model import CalendarEvent, Geometry, ViewWindow
from .util.tz import local_from_ms, midnight_epoch_ms


@dataclass(frozen=True)
class DaySlice:
    """The part of an occurrence that falls on one day."""

    event: CalendarEvent
    start_ms: int
    end_ms: int
    continues_from_previous_day: bool
    continues_to_next_day: bool

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms


def day_bounds(day: dt.date, tz: dt.tzinfo) -> Tuple[int, int]:
    """[midnight, next midnight) of `day` in epoch ms."""
    return midnight_epoch_ms(day, tz), midnight_epoch_ms(day + dt.timedelta(days=1), tz)


def window_for_days(start: dt.date, days: int, tz: dt.tzinfo) -> ViewWindow:
    """Inclusive window covering `days` whole days from `start`."""
    first, _ = day_bounds(start, tz)
    last = midnight_epoch_ms(start + dt.timedelta(days=max(1, int(days))), tz)
    return ViewWindow(first, last - 1)


def visible_slice(ev: CalendarEvent, day_start: int, day_end: int) -> Optional[DaySlice]:
    if not ev.has_valid_span:
        return None
    start = int(ev.start_ms)  # type: ignore[arg-type]
    end = int(ev.end_ms)  # type: ignore[arg-type]

    starts_today = day_start <= start < day_end
    runs_through = start < day_start < end
    if not (starts_today or runs_through):
        return None

    return DaySlice(
        event=ev,
        start_ms=max(start, day_start),
        end_ms=min(end, day_end),
        continues_from_previous_day=start < day_start,
        continues_to_next_day=end > day_end,
    )


def _overlaps(a: DaySlice, b: DaySlice) -> bool:
    return a.start_ms < b.end_ms and b.start_ms < a.end_ms


def conflict_groups(slices: Iterable[DaySlice]) -> List[List[DaySlice]]:
    """Greedy first-fit grouping of overlapping slices.

    Sorted by (start asc, duration desc, id); each slice joins the first group
    holding a member it overlaps. Same input, same columns, every time.
    """
    ordered = sorted(slices, key=lambda s: (s.start_ms, -s.duration_ms, s.event.id))
    groups: List[List[DaySlice]] = []
    for s in ordered:
        for group in groups:
            if any(_overlaps(m, s) for m in group):
                group.append(s)
                break
        else:
            groups.append([s])
    return groups


def _hour_of_day(ms: int, day_end: int, tz: dt.tzinfo) -> float:
    if ms >= day_end:
        return 24.0
    t = local_from_ms(ms, tz)
    return t.hour + t.minute / 60.0 + t.second / 3600.0


def _geometry(s: DaySlice, day_key: str, column: int, columns: int, day_end: int, cfg: GridConfig) -> Geometry:
    tz = cfg.tzinfo
    start_h = _hour_of_day(s.start_ms, day_end, tz)
    end_h = _hour_of_day(s.end_ms, day_end, tz)

    top = start_h * cfg.px_per_hour + cfg.inset_px
    height = max((end_h - start_h) * cfg.px_per_hour - 2 * cfg.inset_px, cfg.min_height_px)

    available = 100.0 - 2 * cfg.side_gap_pct
    if columns > 1:
        col_width = available / columns
        left = cfg.side_gap_pct + column * col_width
        width = col_width - cfg.column_gap_pct / columns
    else:
        left = cfg.side_gap_pct
        width = available

    return Geometry(
        event_id=s.event.id,
        day_key=day_key,
        top_px=top,
        height_px=height,
        left_pct=left,
        width_pct=width,
        column=column,
        columns=columns,
        visible_start_ms=s.start_ms,
        visible_end_ms=s.end_ms,
        continues_from_previous_day=s.continues_from_previous_day,
        continues_to_next_day=s.continues_to_next_day,
    )


def layout_day(
    occurrences: Iterable[CalendarEvent],
    day: dt.date,
    cfg: GridConfig = DEFAULT_CONFIG,
) -> List[Geometry]:
    """Pixel geometry for every occurrence visible on `day`, ordered by column placement."""
    tz = cfg.tzinfo
    day_start, day_end = day_bounds(day, tz)
    slices = [s for s in (visible_slice(ev, day_start, day_end) for ev in occurrences) if s is not None]

    out: List[Geometry] = []
    day_key = day.isoformat()
    for group in conflict_groups(slices):
        for i, s in enumerate(group):
            out.append(_geometry(s, day_key, i, len(group), day_end, cfg))
    return out


def event_geometry(
    ev: CalendarEvent,
    day: dt.date,
    occurrences: Iterable[CalendarEvent],
    cfg: GridConfig = DEFAULT_CONFIG,
) -> Optional[Geometry]:
    """Geometry of one occurrence among the day's occurrences; None when not drawable that day."""
    for g in layout_day(occurrences, day, cfg):
        if g.event_id == ev.id:
            return g
    return None


def layout_days(
    occurrences: Iterable[CalendarEvent],
    start: dt.date,
    days: int,
    cfg: GridConfig = DEFAULT_CONFIG,
) -> Dict[str, List[Geometry]]:
    occ = list(occurrences)
    out: Dict[str, List[Geometry]] = {}
    for i in range(max(0, int(days))):
        d = start + dt.timedelta(days=i)
        out[d.isoformat()] = layout_day(occ, d, cfg)
    return out


__all__ = [
    "DaySlice",
    "day_bounds",
    "window_for_days",
    "visible_slice",
    "conflict_groups",
    "layout_day",
    "layout_days",
    "event_geometry",
]
