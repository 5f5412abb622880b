"""chronogrid.api

Stable *library* entrypoint for chronogrid.

Policy:
  - Only names listed in __all__ are considered public API.
  - Everything else is internal and may change without notice.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict
from typing import Any, Dict, List, Mapping, Optional

from chronogrid.config import DEFAULT_CONFIG, GridConfig
from chronogrid.edits import (
    SCOPE_ALL,
    SCOPE_FOLLOWING,
    SCOPE_SINGLE,
    apply_all,
    apply_edit,
    apply_following,
    apply_single,
    delete_event,
    duplicate_event,
    is_recurring_occurrence,
    paste_event,
)
from chronogrid.history import History
from chronogrid.interaction import InteractionError, InteractionStateMachine
from chronogrid.layout import event_geometry, layout_day, layout_days, window_for_days
from chronogrid.model import CalendarEvent, Geometry, Intent, ViewWindow
from chronogrid.payload import (
    build_payload,
    dump_events,
    event_from_dict,
    event_to_dict,
    load_events,
    load_payload_from_json,
)
from chronogrid.recurrence import expand
from chronogrid.resolver import resolve
from chronogrid.rules import RecurrenceRule, parse_rule
from chronogrid.snapping import SnapClock, snap
from chronogrid.validate import PayloadValidationError, assert_valid_payload, validate_payload


def geometry_to_dict(g: Geometry) -> Dict[str, Any]:
    return asdict(g)


def resolve_payload(
    payload: Mapping[str, Any],
    start: dt.date,
    days: int,
    *,
    cfg: Optional[GridConfig] = None,
) -> List[CalendarEvent]:
    """Occurrences of a payload visible in `days` whole days from `start`."""
    cfg = cfg or GridConfig.from_cfg(payload.get("cfg"))
    tz = cfg.tzinfo
    events = load_events(payload, tz)
    return resolve(events, window_for_days(start, days, tz), tz)


def layout_payload(
    payload: Mapping[str, Any],
    start: dt.date,
    days: int,
    *,
    cfg: Optional[GridConfig] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    """Per-day geometry (JSON-ready dicts) keyed by day key."""
    cfg = cfg or GridConfig.from_cfg(payload.get("cfg"))
    occurrences = resolve_payload(payload, start, days, cfg=cfg)
    grid = layout_days(occurrences, start, days, cfg)
    return {day: [geometry_to_dict(g) for g in geoms] for day, geoms in grid.items()}


# --- Public API exports (locked by contract tests) ------------------------
# Keep changes intentional and reviewable.
# Prefer append-only unless you are intentionally reshaping the public surface.
_PUBLIC_EXPORTS = (
    "CalendarEvent",
    "DEFAULT_CONFIG",
    "Geometry",
    "GridConfig",
    "History",
    "Intent",
    "InteractionError",
    "InteractionStateMachine",
    "PayloadValidationError",
    "RecurrenceRule",
    "SCOPE_ALL",
    "SCOPE_FOLLOWING",
    "SCOPE_SINGLE",
    "SnapClock",
    "ViewWindow",
    "apply_all",
    "apply_edit",
    "apply_following",
    "apply_single",
    "assert_valid_payload",
    "build_payload",
    "delete_event",
    "dump_events",
    "duplicate_event",
    "event_from_dict",
    "event_geometry",
    "event_to_dict",
    "expand",
    "geometry_to_dict",
    "is_recurring_occurrence",
    "layout_day",
    "layout_days",
    "layout_payload",
    "load_events",
    "load_payload_from_json",
    "parse_rule",
    "paste_event",
    "resolve",
    "resolve_payload",
    "snap",
    "validate_payload",
    "window_for_days",
)

__all__ = [n for n in _PUBLIC_EXPORTS if n in globals()]
# --- /Public API exports --------------------------------------------------
