# chronogrid/payload.py
"""JSON boundary: host event dicts (camelCase, ISO instants) <-> CalendarEvent.

Payload shape:

    {"schema_version": 1, "cfg": {...GridConfig keys...}, "events": [{...}, ...]}

Keys the core does not interpret are kept in `CalendarEvent.extra` and written
back unchanged. Virtual occurrences are never persisted.
"""

from __future__ import annotations

import datetime as dt
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .config import GridConfig
from .model import KIND_VIRTUAL, CalendarEvent, infer_kind, strip_virtual
from .util.timeparse import day_key_from_value, format_iso_ms, parse_iso_ms
from .validate import SCHEMA_VERSION, assert_valid_payload

JsonPath = Union[str, Path]
Payload = Dict[str, Any]

_KNOWN_KEYS = (
    "id",
    "title",
    "description",
    "start",
    "end",
    "recurrence",
    "excludedDates",
    "recurrenceGroupId",
    "isRecurrenceBase",
    "isVirtual",
    "parentId",
)


def _opt_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def event_from_dict(d: Mapping[str, Any], tz: dt.tzinfo = dt.timezone.utc) -> CalendarEvent:
    """Build a CalendarEvent from one host dict.

    Unparseable start/end become None (such events are skipped by resolve/layout).
    Excluded dates may be day keys, ISO instants or epoch ms; they are stored as day keys in `tz`.
    """
    if not isinstance(d, Mapping):
        raise ValueError(f"event must be an object; got {type(d).__name__}")
    ev_id = _opt_str(d.get("id"))
    if ev_id is None:
        raise ValueError("event.id must be a non-empty string")

    excluded: List[str] = []
    raw_ex = d.get("excludedDates")
    if isinstance(raw_ex, list):
        for v in raw_ex:
            k = day_key_from_value(v, tz)
            if k and k not in excluded:
                excluded.append(k)

    recurrence = _opt_str(d.get("recurrence"))
    group_id = _opt_str(d.get("recurrenceGroupId"))
    is_virtual = d.get("isVirtual") is True

    return CalendarEvent(
        id=ev_id,
        start_ms=parse_iso_ms(d.get("start")),
        end_ms=parse_iso_ms(d.get("end")),
        title=str(d.get("title") or ""),
        description=str(d.get("description") or ""),
        recurrence=recurrence,
        excluded_dates=tuple(excluded),
        recurrence_group_id=group_id,
        is_recurrence_base=d.get("isRecurrenceBase") is True,
        kind=infer_kind(is_virtual=is_virtual, recurrence=recurrence, recurrence_group_id=group_id),
        parent_id=_opt_str(d.get("parentId")),
        extra={k: v for k, v in d.items() if k not in _KNOWN_KEYS},
    )


def event_to_dict(ev: CalendarEvent) -> Dict[str, Any]:
    out: Dict[str, Any] = dict(ev.extra)
    out["id"] = ev.id
    out["title"] = ev.title
    if ev.description:
        out["description"] = ev.description
    out["start"] = format_iso_ms(ev.start_ms) if ev.start_ms is not None else None
    out["end"] = format_iso_ms(ev.end_ms) if ev.end_ms is not None else None
    if ev.recurrence:
        out["recurrence"] = ev.recurrence
    if ev.excluded_dates:
        out["excludedDates"] = list(ev.excluded_dates)
    if ev.recurrence_group_id:
        out["recurrenceGroupId"] = ev.recurrence_group_id
    if ev.is_recurrence_base:
        out["isRecurrenceBase"] = True
    if ev.kind == KIND_VIRTUAL:
        out["isVirtual"] = True
        out["parentId"] = ev.parent_id
    return out


def load_events(payload: Mapping[str, Any], tz: Optional[dt.tzinfo] = None) -> Tuple[CalendarEvent, ...]:
    """Events of a payload; the time zone defaults to the payload's cfg.tz."""
    tzinfo = tz if tz is not None else GridConfig.from_cfg(payload.get("cfg")).tzinfo
    raw = payload.get("events")
    if not isinstance(raw, list):
        return ()
    return tuple(event_from_dict(d, tzinfo) for d in raw)


def dump_events(events: Iterable[CalendarEvent]) -> List[Dict[str, Any]]:
    """Persistence adapter: virtual occurrences are always dropped."""
    return [event_to_dict(ev) for ev in strip_virtual(events)]


def build_payload(events: Iterable[CalendarEvent], cfg: Optional[GridConfig] = None) -> Payload:
    cfg = cfg or GridConfig()
    return {
        "schema_version": SCHEMA_VERSION,
        "cfg": cfg.to_cfg(),
        "events": dump_events(events),
    }


def load_payload_from_json(path: JsonPath, *, validate: bool = True) -> Payload:
    """Load a payload JSON file; raises PayloadValidationError when `validate` and it is invalid."""
    p = Path(path)
    obj = json.loads(p.read_text(encoding="utf-8"))
    if validate:
        assert_valid_payload(obj)
    elif not isinstance(obj, dict):
        raise ValueError(f"payload must be a JSON object; got {type(obj).__name__}")
    return obj


__all__ = [
    "event_from_dict",
    "event_to_dict",
    "load_events",
    "dump_events",
    "build_payload",
    "load_payload_from_json",
]
