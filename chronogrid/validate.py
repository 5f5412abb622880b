"""Payload validation helpers (library-facing)."""

from __future__ import annotations

from typing import Any, Dict, List

from .model import has_rule
from .rules import parse_rule
from .util.timeparse import parse_iso_ms

SCHEMA_VERSION = 1


class PayloadValidationError(ValueError):
    """Raised when a payload fails validation."""


def _require(cond: bool, msg: str, errs: List[str]) -> None:
    if not cond:
        errs.append(msg)


def _validate_event(ev: Dict[str, Any], *, where: str, errs: List[str]) -> None:
    ev_id = ev.get("id")
    _require(isinstance(ev_id, str) and bool(ev_id.strip()), f"{where}.id must be non-empty string", errs)

    start = parse_iso_ms(ev.get("start"))
    end = parse_iso_ms(ev.get("end"))
    _require(start is not None, f"{where}.start must be an ISO-8601 instant", errs)
    _require(end is not None, f"{where}.end must be an ISO-8601 instant", errs)
    if start is not None and end is not None:
        _require(end >= start, f"{where}: end is before start", errs)

    rec = ev.get("recurrence")
    if rec is not None:
        _require(isinstance(rec, str), f"{where}.recurrence must be string or null", errs)
        if isinstance(rec, str) and has_rule(rec):
            _require(parse_rule(rec) is not None, f"{where}.recurrence has no supported FREQ: {rec!r}", errs)

    ex = ev.get("excludedDates")
    if ex is not None:
        _require(isinstance(ex, list), f"{where}.excludedDates must be list", errs)

    for k in ("recurrenceGroupId", "parentId"):
        v = ev.get(k)
        if v is not None:
            _require(isinstance(v, str), f"{where}.{k} must be string or null", errs)

    for k in ("isRecurrenceBase", "isVirtual"):
        v = ev.get(k)
        if v is not None:
            _require(isinstance(v, bool), f"{where}.{k} must be bool", errs)

    # Generated occurrences are a view concern and must never be persisted.
    _require(ev.get("isVirtual") is not True, f"{where}: virtual occurrences must not be stored", errs)


def validate_payload(payload: Dict[str, Any], *, label: str = "payload") -> List[str]:
    if not isinstance(payload, dict):
        return [f"{label}: payload must be a dict/object"]
    sv = payload.get("schema_version")
    if isinstance(sv, int) and not isinstance(sv, bool) and sv != SCHEMA_VERSION:
        return [f"Unsupported schema_version: {sv} (latest={SCHEMA_VERSION})"]

    errs: List[str] = []
    _require(sv == SCHEMA_VERSION, f"{label}: schema_version must be {SCHEMA_VERSION}", errs)

    cfg = payload.get("cfg")
    events = payload.get("events")
    if cfg is not None:
        _require(isinstance(cfg, dict), f"{label}: cfg must be dict", errs)
    _require(isinstance(events, list), f"{label}: events must be list", errs)

    if isinstance(events, list):
        seen: Dict[str, int] = {}
        for i, ev in enumerate(events):
            where = f"{label}: events[{i}]"
            if not isinstance(ev, dict):
                errs.append(f"{where} must be dict")
                continue
            _validate_event(ev, where=where, errs=errs)
            ev_id = ev.get("id")
            if isinstance(ev_id, str) and ev_id:
                if ev_id in seen:
                    errs.append(f"{where}.id duplicates events[{seen[ev_id]}]: {ev_id!r}")
                else:
                    seen[ev_id] = i

    return errs


def assert_valid_payload(payload: Dict[str, Any]) -> None:
    if not isinstance(payload, dict):
        raise PayloadValidationError("payload must be a JSON object")
    errs = validate_payload(payload, label="payload")
    if errs:
        raise PayloadValidationError(errs[0])


__all__ = [
    "SCHEMA_VERSION",
    "PayloadValidationError",
    "assert_valid_payload",
    "validate_payload",
]
