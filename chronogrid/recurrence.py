# chronogrid/recurrence.py
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import replace
from typing import Iterator, List, Optional, Tuple, Union

from .model import KIND_VIRTUAL, CalendarEvent, ViewWindow
from .rules import (
    FREQ_DAILY,
    FREQ_MONTHLY,
    FREQ_WEEKLY,
    RecurrenceRule,
    add_months,
    add_years,
    parse_rule,
)
from .util.tz import local_from_ms, ms_from_local, resolve_tz

logger = logging.getLogger(__name__)

TzLike = Union[str, dt.tzinfo, None]


def as_tzinfo(tz: TzLike) -> dt.tzinfo:
    if isinstance(tz, dt.tzinfo):
        return tz
    return resolve_tz(tz)


def virtual_id(parent_id: str, start_ms: int) -> str:
    return f"{parent_id}-virtual-{int(start_ms)}"


def _first_index(rule: RecurrenceRule, anchor: dt.date, window_start: dt.date) -> int:
    """Index of the first candidate on or before the window's start day.

    Whole elapsed periods are skipped by integer division, so a series anchored
    years ago costs the same as one anchored yesterday.
    """
    if window_start <= anchor:
        return 0
    n = rule.interval
    if rule.freq in (FREQ_DAILY, FREQ_WEEKLY):
        step_days = n if rule.freq == FREQ_DAILY else 7 * n
        return (window_start - anchor).days // step_days
    if rule.freq == FREQ_MONTHLY:
        months = (window_start.year - anchor.year) * 12 + (window_start.month - anchor.month)
        return months // n
    return (window_start.year - anchor.year) // n


def _candidate_date(rule: RecurrenceRule, anchor: dt.date, k: int) -> Optional[dt.date]:
    n = rule.interval * k
    if rule.freq == FREQ_DAILY:
        return anchor + dt.timedelta(days=n)
    if rule.freq == FREQ_WEEKLY:
        return anchor + dt.timedelta(days=7 * n)
    if rule.freq == FREQ_MONTHLY:
        return add_months(anchor, n)
    return add_years(anchor, n)


def iter_candidates(
    rule: RecurrenceRule,
    anchor_ms: int,
    window: ViewWindow,
    tz: dt.tzinfo,
) -> Iterator[Tuple[dt.date, int]]:
    """Yield (local date, epoch ms) of every rule step from the fast-forward point on.

    Steps keep the anchor's wall-clock time. Months/years lacking the anchor's
    day are skipped rather than clamped. The caller decides where to stop.
    """
    anchor = local_from_ms(anchor_ms, tz)
    anchor_date = anchor.date()
    anchor_time = anchor.time()
    window_start = local_from_ms(window.start_ms, tz).date()

    k = _first_index(rule, anchor_date, window_start)
    misses = 0
    while misses < 400:
        try:
            d = _candidate_date(rule, anchor_date, k)
        except OverflowError:
            return
        k += 1
        if d is None:
            misses += 1
            continue
        misses = 0
        yield d, ms_from_local(d, anchor_time, tz)


def expand(base: CalendarEvent, window: ViewWindow, tz: TzLike = "UTC") -> List[CalendarEvent]:
    """Virtual occurrences of `base` inside `window`, in chronological order.

    The anchor itself is never emitted (it is the stored event). Returns [] for
    virtual input, a missing/unrecognized rule, or an event without a valid span.
    """
    if base.is_virtual or not base.has_valid_span:
        return []
    rule = parse_rule(base.recurrence)
    if rule is None:
        return []
    if window.end_ms < window.start_ms:
        return []

    tzinfo = as_tzinfo(tz)
    anchor_ms = int(base.start_ms)  # type: ignore[arg-type]
    duration = base.duration_ms
    excluded = set(base.excluded_dates)
    until_s = rule.until_ms // 1000 if rule.until_ms is not None else None

    out: List[CalendarEvent] = []
    for day, cand_ms in iter_candidates(rule, anchor_ms, window, tzinfo):
        if cand_ms > window.end_ms:
            break
        if until_s is not None and cand_ms // 1000 > until_s:
            break
        if cand_ms < window.start_ms or cand_ms <= anchor_ms:
            continue
        if not rule.allows_weekday(day.weekday()):
            continue
        if day.isoformat() in excluded:
            continue
        out.append(
            replace(
                base,
                id=virtual_id(base.id, cand_ms),
                start_ms=cand_ms,
                end_ms=cand_ms + duration,
                kind=KIND_VIRTUAL,
                parent_id=base.id,
                is_recurrence_base=False,
            )
        )

    logger.debug("expanded %s (%s) into %d occurrences", base.id, rule.freq, len(out))
    return out


__all__ = ["expand", "iter_candidates", "virtual_id", "as_tzinfo"]
