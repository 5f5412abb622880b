# chronogrid/resolver.py
from __future__ import annotations

import logging
from typing import Iterable, List, Set

from .model import CalendarEvent, ViewWindow
from .recurrence import TzLike, as_tzinfo, expand
from .util.tz import day_key_from_ms

logger = logging.getLogger(__name__)


def resolve(events: Iterable[CalendarEvent], window: ViewWindow, tz: TzLike = "UTC") -> List[CalendarEvent]:
    """Flatten stored events into what is visible in `window`.

    Output order: stored entries in input order, each recurring one followed by
    its virtual occurrences (chronological). Virtual inputs are never
    re-expanded; duplicate ids are processed once.
    """
    tzinfo = as_tzinfo(tz)
    out: List[CalendarEvent] = []
    processed: Set[str] = set()
    emitted: Set[str] = set()

    for ev in events:
        if ev.is_virtual:
            continue
        if ev.id in processed:
            continue
        processed.add(ev.id)

        if ev.start_ms is None:
            logger.debug("skipping %s: no start", ev.id)
            continue

        if not ev.is_recurring:
            if window.contains(ev.start_ms) and ev.id not in emitted:
                out.append(ev)
                emitted.add(ev.id)
            continue

        # The anchor hides when its own day is excluded; the series still expands.
        if window.contains(ev.start_ms) and ev.id not in emitted:
            if day_key_from_ms(ev.start_ms, tzinfo) not in set(ev.excluded_dates):
                out.append(ev)
                emitted.add(ev.id)

        for occ in expand(ev, window, tzinfo):
            if occ.id in emitted:
                continue
            out.append(occ)
            emitted.add(occ.id)

    return out


__all__ = ["resolve"]
