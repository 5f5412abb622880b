# chronogrid/edits.py
"""Series mutation strategies for edits and deletes touching a recurring occurrence.

Every function is pure: it takes the stored (virtual-free) collection and
returns a new tuple. Scopes follow the usual calendar prompt:

  - "single":    only this occurrence (exclusion + exception event)
  - "following": this and every later occurrence (split / truncate the series)
  - "all":       the whole recurrence group
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence, Tuple

from .model import KIND_BASE, KIND_EXCEPTION, CalendarEvent, strip_virtual
from .recurrence import TzLike, as_tzinfo
from .rules import (
    FREQ_DAILY,
    FREQ_MONTHLY,
    FREQ_WEEKLY,
    parse_rule,
    period_before,
    strip_until,
    with_until,
)
from .util.tz import day_key_from_ms, local_from_ms, minute_of_day

logger = logging.getLogger(__name__)

SCOPE_SINGLE = "single"
SCOPE_FOLLOWING = "following"
SCOPE_ALL = "all"
SCOPES = (SCOPE_SINGLE, SCOPE_FOLLOWING, SCOPE_ALL)

Events = Tuple[CalendarEvent, ...]


def is_recurring_occurrence(ev: CalendarEvent) -> bool:
    """Virtual occurrence, recurring base, or a stored event that belongs to a group."""
    if ev.is_virtual:
        return bool(ev.parent_id)
    return ev.is_recurring or bool(ev.recurrence_group_id)


def group_id_of(ev: CalendarEvent) -> str:
    return ev.recurrence_group_id or ev.parent_id or ev.id


def _find(events: Sequence[CalendarEvent], event_id: Optional[str]) -> Optional[CalendarEvent]:
    if not event_id:
        return None
    for e in events:
        if e.id == event_id and not e.is_virtual:
            return e
    return None


def owner_of(events: Sequence[CalendarEvent], occ: CalendarEvent) -> Optional[CalendarEvent]:
    """The stored recurring series `occ` was generated from (or is the anchor of)."""
    if occ.is_virtual:
        parent = _find(events, occ.parent_id)
        return parent if parent is not None and parent.is_recurring else None
    if occ.is_recurring:
        return _find(events, occ.id) or occ
    return None


def _in_group(e: CalendarEvent, gid: str) -> bool:
    return e.id == gid or e.recurrence_group_id == gid or e.parent_id == gid


def _is_split(e: CalendarEvent, gid: str) -> bool:
    return e.is_recurring and e.recurrence_group_id == gid and e.id != gid


def _swap(events: Iterable[CalendarEvent], updated: CalendarEvent) -> List[CalendarEvent]:
    return [updated if e.id == updated.id else e for e in events]


def _add_exclusion(ev: CalendarEvent, day_key: Optional[str]) -> CalendarEvent:
    if not day_key or day_key in ev.excluded_dates:
        return ev
    return replace(ev, excluded_dates=ev.excluded_dates + (day_key,))


def move_event(events: Iterable[CalendarEvent], event_id: str, new_start: int, new_end: int) -> Events:
    """Direct start/end rewrite of one stored event."""
    return tuple(e.with_times(new_start, new_end) if e.id == event_id else e for e in strip_virtual(events))


def apply_single(
    events: Iterable[CalendarEvent],
    occ: CalendarEvent,
    new_start: int,
    new_end: int,
    *,
    new_id: str,
    tz: TzLike = "UTC",
) -> Events:
    """Detach one occurrence: exclude its day on the series and move an exception event instead."""
    tzinfo = as_tzinfo(tz)
    stored = list(strip_virtual(events))

    if not occ.is_virtual and not occ.is_recurring:
        return move_event(stored, occ.id, new_start, new_end)

    owner = owner_of(stored, occ)
    if owner is None:
        logger.debug("no owning series for %s; moving it directly", occ.id)
        return move_event(stored, occ.id, new_start, new_end)

    gid = owner.recurrence_group_id or owner.id
    day = day_key_from_ms(occ.start_ms, tzinfo)
    stored = _swap(stored, _add_exclusion(replace(owner, recurrence_group_id=gid), day))

    existing = next(
        (
            e
            for e in stored
            if e.recurrence_group_id == gid
            and not e.is_recurring
            and e.id != owner.id
            and day_key_from_ms(e.start_ms, tzinfo) == day
        ),
        None,
    )
    if existing is not None:
        return tuple(_swap(stored, existing.with_times(new_start, new_end)))

    exception = replace(
        occ,
        id=new_id,
        start_ms=int(new_start),
        end_ms=int(new_end),
        kind=KIND_EXCEPTION,
        parent_id=None,
        recurrence=None,
        excluded_dates=(),
        recurrence_group_id=gid,
        is_recurrence_base=False,
    )
    stored.append(exception)
    return tuple(stored)


def _would_generate_on(series: CalendarEvent, day: dt.date, tz: dt.tzinfo) -> bool:
    rule = parse_rule(series.recurrence)
    if rule is None or series.start_ms is None:
        return False
    start = local_from_ms(series.start_ms, tz).date()
    if day < start:
        return False
    if rule.freq == FREQ_DAILY:
        return rule.allows_weekday(day.weekday())
    if rule.freq == FREQ_WEEKLY:
        return day.weekday() == start.weekday()
    if rule.freq == FREQ_MONTHLY:
        return day.day == start.day
    return (day.month, day.day) == (start.month, start.day)


def find_merge_target(
    events: Sequence[CalendarEvent],
    owner: CalendarEvent,
    occ: CalendarEvent,
    new_start: int,
    tz: dt.tzinfo,
) -> Optional[CalendarEvent]:
    """Another series of the group that already runs at the new time on the occurrence's date.

    The candidate must have started on or before that date; its UNTIL is ignored
    since merging lifts it. Matching is by wall-clock time-of-day plus day
    alignment only, so an unrelated series sharing the clock time is
    indistinguishable from a real continuation.
    """
    gid = owner.recurrence_group_id or owner.id
    new_tod = minute_of_day(new_start, tz)
    occ_day = local_from_ms(occ.start_ms, tz).date()  # type: ignore[arg-type]
    for s in events:
        if s.id == owner.id or not s.is_recurring or s.start_ms is None:
            continue
        if (s.recurrence_group_id or s.id) != gid:
            continue
        if minute_of_day(s.start_ms, tz) == new_tod and _would_generate_on(s, occ_day, tz):
            return s
    return None


def _truncate(owner: CalendarEvent, occ: CalendarEvent, gid: str, tz: dt.tzinfo) -> CalendarEvent:
    rule = parse_rule(owner.recurrence)
    out = replace(owner, recurrence_group_id=gid)
    if rule is not None:
        until = period_before(int(occ.start_ms), rule, tz)  # type: ignore[arg-type]
        out = replace(out, recurrence=with_until(owner.recurrence, until))
    if occ.id == owner.id:
        # The anchor is shown regardless of UNTIL; hide it explicitly.
        out = _add_exclusion(out, day_key_from_ms(owner.start_ms, tz))
    return out


def apply_following(
    events: Iterable[CalendarEvent],
    occ: CalendarEvent,
    new_start: int,
    new_end: int,
    *,
    new_id: str,
    tz: TzLike = "UTC",
) -> Events:
    """Split the series at `occ`: the old one ends a period before, a new one starts at the new time.

    When another series of the group already runs at the new time on that date,
    the two are merged instead of leaving a redundant boundary.
    """
    tzinfo = as_tzinfo(tz)
    stored = list(strip_virtual(events))

    owner = owner_of(stored, occ)
    if owner is None or occ.start_ms is None:
        logger.debug("no owning series for %s; moving it directly", occ.id)
        return move_event(stored, occ.id, new_start, new_end)

    gid = owner.recurrence_group_id or owner.id
    occ_start = int(occ.start_ms)
    occ_day = day_key_from_ms(occ_start, tzinfo) or ""
    target = find_merge_target(stored, owner, occ, new_start, tzinfo)

    if target is not None:
        merged = replace(
            target,
            recurrence=strip_until(target.recurrence),
            excluded_dates=tuple(d for d in target.excluded_dates if d < occ_day),
        )
        owner_is_split = owner.id != gid
        out: List[CalendarEvent] = []
        for e in stored:
            if e.id == target.id:
                out.append(merged)
            elif e.id == owner.id:
                if not owner_is_split:
                    out.append(_truncate(owner, occ, gid, tzinfo))
            elif _is_split(e, gid) and e.start_ms is not None and e.start_ms >= occ_start:
                continue
            else:
                out.append(e)
        logger.debug("merged %s into series %s", owner.id, target.id)
        return tuple(out)

    new_series = replace(
        owner,
        id=new_id,
        start_ms=int(new_start),
        end_ms=int(new_end),
        kind=KIND_BASE,
        parent_id=None,
        recurrence=strip_until(owner.recurrence),
        recurrence_group_id=gid,
        # days already excluded after the split stay excluded
        excluded_dates=tuple(d for d in owner.excluded_dates if d > occ_day),
        is_recurrence_base=False,
    )
    truncated = _truncate(owner, occ, gid, tzinfo)
    out = []
    for e in stored:
        if e.id == owner.id:
            out.append(truncated)
        elif _is_split(e, gid) and e.start_ms is not None and e.start_ms >= occ_start:
            logger.debug("dropping split %s superseded by %s", e.id, new_id)
        else:
            out.append(e)
    out.append(new_series)
    return tuple(out)


def apply_all(
    events: Iterable[CalendarEvent],
    occ: CalendarEvent,
    new_start: int,
    new_end: int,
) -> Events:
    """Shift the group's anchor by the gesture delta and fold splits/exceptions back into it."""
    stored = list(strip_virtual(events))
    gid = group_id_of(occ)
    delta = int(new_start) - int(occ.start_ms)  # type: ignore[arg-type]
    size_delta = (int(new_end) - int(new_start)) - occ.duration_ms

    members = [e for e in stored if _in_group(e, gid)]
    series = [e for e in members if e.is_recurring and e.start_ms is not None]
    anchor = next((e for e in series if e.id == gid), None)
    if anchor is None and series:
        anchor = min(series, key=lambda e: (e.start_ms, e.id))

    if anchor is None:
        shifted = {
            e.id: e.with_times(e.start_ms + delta, e.end_ms + delta + size_delta)  # type: ignore[operator]
            for e in members
            if e.has_valid_span
        }
        return tuple(shifted.get(e.id, e) for e in stored)

    consolidated = replace(
        anchor,
        start_ms=int(anchor.start_ms) + delta,  # type: ignore[arg-type]
        end_ms=int(anchor.end_ms) + delta + size_delta,  # type: ignore[arg-type]
        recurrence=strip_until(anchor.recurrence),
        excluded_dates=(),
        recurrence_group_id=anchor.recurrence_group_id or gid,
        is_recurrence_base=True,
    )
    member_ids = {e.id for e in members}
    out: List[CalendarEvent] = []
    for e in stored:
        if e.id == anchor.id:
            out.append(consolidated)
        elif e.id not in member_ids:
            out.append(e)
    return tuple(out)


def apply_edit(
    events: Iterable[CalendarEvent],
    occ: CalendarEvent,
    scope: str,
    new_start: int,
    new_end: int,
    *,
    new_id: str,
    tz: TzLike = "UTC",
) -> Events:
    if scope == SCOPE_SINGLE:
        return apply_single(events, occ, new_start, new_end, new_id=new_id, tz=tz)
    if scope == SCOPE_FOLLOWING:
        return apply_following(events, occ, new_start, new_end, new_id=new_id, tz=tz)
    if scope == SCOPE_ALL:
        return apply_all(events, occ, new_start, new_end)
    raise ValueError(f"Unknown edit scope: {scope!r}")


def delete_event(
    events: Iterable[CalendarEvent],
    occ: CalendarEvent,
    scope: Optional[str] = None,
    *,
    tz: TzLike = "UTC",
) -> Events:
    """Remove an event; recurring occurrences honour `scope` (single/following/all)."""
    tzinfo = as_tzinfo(tz)
    stored = list(strip_virtual(events))

    if not is_recurring_occurrence(occ):
        return tuple(e for e in stored if e.id != occ.id)

    if scope == SCOPE_ALL:
        gid = group_id_of(occ)
        return tuple(e for e in stored if not _in_group(e, gid))

    if scope == SCOPE_SINGLE:
        owner = owner_of(stored, occ)
        if owner is None:
            return tuple(e for e in stored if e.id != occ.id)
        return tuple(_swap(stored, _add_exclusion(owner, day_key_from_ms(occ.start_ms, tzinfo))))

    if scope == SCOPE_FOLLOWING:
        if occ.start_ms is None:
            return tuple(stored)
        occ_start = int(occ.start_ms)
        owner = owner_of(stored, occ)
        gid = (owner.recurrence_group_id or owner.id) if owner is not None else group_id_of(occ)
        out: List[CalendarEvent] = []
        for e in stored:
            if owner is not None and e.id == owner.id:
                if occ_start > int(owner.start_ms):  # type: ignore[arg-type]
                    out.append(_truncate(owner, occ, gid, tzinfo))
                continue
            later = e.start_ms is not None and e.start_ms >= occ_start
            if later and (_is_split(e, gid) or (e.recurrence_group_id == gid and not e.is_recurring)):
                continue
            out.append(e)
        return tuple(out)

    raise ValueError(f"Unknown delete scope: {scope!r}")


def copy_event(ev: CalendarEvent, new_id: str, start_ms: int, title: Optional[str] = None) -> CalendarEvent:
    """A stored copy of `ev` at `start_ms` with the same duration, detached from any group.

    A recurring base stays recurring as a series of its own; occurrences and
    exceptions become one-off events.
    """
    recurrence = strip_until(ev.recurrence) if ev.is_recurring and not ev.is_virtual else None
    return replace(
        ev,
        id=new_id,
        title=ev.title if title is None else title,
        start_ms=int(start_ms),
        end_ms=int(start_ms) + ev.duration_ms,
        kind=KIND_BASE,
        parent_id=None,
        recurrence=recurrence or None,
        excluded_dates=(),
        recurrence_group_id=None,
        is_recurrence_base=bool(recurrence),
        extra=dict(ev.extra),
    )


def duplicate_event(events: Iterable[CalendarEvent], ev: CalendarEvent, *, new_id: str) -> Events:
    """Append "<title> (copy)" placed right after `ev` ends."""
    if not ev.has_valid_span:
        raise ValueError(f"Cannot duplicate {ev.id!r}: no valid start/end")
    dup = copy_event(ev, new_id, int(ev.end_ms), title=f"{ev.title} (copy)")  # type: ignore[arg-type]
    return strip_virtual(events) + (dup,)


def paste_event(
    events: Iterable[CalendarEvent],
    clip: CalendarEvent,
    at_ms: int,
    *,
    new_id: str,
    cut: bool = False,
    tz: TzLike = "UTC",
) -> Events:
    """Insert a copy of `clip` starting at `at_ms`.

    A cut also removes the source: a whole series when `clip` is a stored
    recurring base, otherwise just that occurrence.
    """
    if not clip.has_valid_span:
        raise ValueError(f"Cannot paste {clip.id!r}: no valid start/end")
    stored: Events = strip_virtual(events)
    if cut:
        scope = None
        if clip.is_recurring and not clip.is_virtual:
            scope = SCOPE_ALL
        elif is_recurring_occurrence(clip):
            scope = SCOPE_SINGLE
        stored = delete_event(stored, clip, scope, tz=tz)
    return stored + (copy_event(clip, new_id, at_ms),)


__all__ = [
    "SCOPE_SINGLE",
    "SCOPE_FOLLOWING",
    "SCOPE_ALL",
    "SCOPES",
    "is_recurring_occurrence",
    "group_id_of",
    "owner_of",
    "find_merge_target",
    "move_event",
    "apply_single",
    "apply_following",
    "apply_all",
    "apply_edit",
    "delete_event",
    "copy_event",
    "duplicate_event",
    "paste_event",
]
