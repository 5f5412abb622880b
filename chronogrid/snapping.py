# chronogrid/snapping.py
from __future__ import annotations

import datetime as dt
import math
from typing import Optional, Tuple

from .config import DEFAULT_CONFIG, STEP_MIN, GridConfig
from .util.tz import local_from_ms, ms_from_local

MIN_MS = 60_000
MINUTES_PER_DAY = 24 * 60

SNAP_FLOOR = "floor"
SNAP_CEIL = "ceil"
SNAP_ROUND = "round"
SNAP_MODES = (SNAP_FLOOR, SNAP_CEIL, SNAP_ROUND)


def _quantize(minutes: int, mode: str, step: int) -> int:
    if mode == SNAP_FLOOR:
        return (minutes // step) * step
    if mode == SNAP_CEIL:
        return -((-minutes) // step) * step
    if mode == SNAP_ROUND:
        # half-up, not banker's rounding
        return int(math.floor(minutes / step + 0.5)) * step
    raise ValueError(f"Unknown snap mode: {mode!r}")


def snap(ms: int, mode: str = SNAP_ROUND, step_min: int = STEP_MIN, tz: dt.tzinfo = dt.timezone.utc) -> int:
    """Quantize the minute-of-day of `ms` to a multiple of `step_min`.

    Seconds are dropped; the result stays on the same day (23:59 at the latest).
    """
    step = max(1, int(step_min))
    t = local_from_ms(ms, tz)
    snapped = _quantize(t.hour * 60 + t.minute, mode, step)
    snapped = max(0, min(MINUTES_PER_DAY - 1, snapped))
    return ms_from_local(t.date(), dt.time(snapped // 60, snapped % 60), tz)


def enforce_min_duration(start_ms: int, end_ms: int, step_min: int = STEP_MIN) -> Tuple[int, int]:
    """Extend the end so the span is at least `step_min` long."""
    min_ms = max(1, int(step_min)) * MIN_MS
    if end_ms - start_ms < min_ms:
        end_ms = start_ms + min_ms
    return int(start_ms), int(end_ms)


class SnapClock:
    """Pointer position <-> calendar time on a grid of `days` columns starting at `view_start`."""

    def __init__(self, view_start: dt.date, cfg: GridConfig = DEFAULT_CONFIG):
        self.view_start = view_start
        self.cfg = cfg
        self._tz = cfg.tzinfo

    @property
    def step_min(self) -> int:
        return int(self.cfg.step_min)

    def day_for_index(self, day_index: int) -> dt.date:
        return self.view_start + dt.timedelta(days=int(day_index))

    def position_to_time(self, y: float, day_index: int, scroll_offset: float = 0) -> int:
        """Exact (unsnapped, millisecond) time for a pixel row, clamped to [00:00, 23:59] of that day."""
        hours = (float(y) + float(scroll_offset)) / float(self.cfg.px_per_hour)
        offset = int(round(hours * 3_600_000))
        offset = max(0, min((MINUTES_PER_DAY - 1) * MIN_MS, offset))
        secs, ms = divmod(offset, 1000)
        wall = dt.time(secs // 3600, secs % 3600 // 60, secs % 60, ms * 1000)
        return ms_from_local(self.day_for_index(day_index), wall, self._tz)

    def time_to_position(self, ms: int) -> float:
        t = local_from_ms(ms, self._tz)
        return (t.hour + t.minute / 60.0) * float(self.cfg.px_per_hour)

    def snap(self, ms: int, mode: str = SNAP_ROUND, step_min: Optional[int] = None) -> int:
        return snap(ms, mode, self.step_min if step_min is None else step_min, self._tz)

    def snap_create_span(self, press_ms: int, release_ms: int) -> Tuple[int, int]:
        """Floor the earlier point, ceil the later one, then enforce the minimum duration."""
        lo, hi = min(press_ms, release_ms), max(press_ms, release_ms)
        start = self.snap(lo, SNAP_FLOOR)
        end = self.snap(hi, SNAP_CEIL)
        return enforce_min_duration(start, end, self.step_min)


__all__ = [
    "SNAP_FLOOR",
    "SNAP_CEIL",
    "SNAP_ROUND",
    "SNAP_MODES",
    "snap",
    "enforce_min_duration",
    "SnapClock",
]
