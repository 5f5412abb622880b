# chronogrid/rules.py
"""Recurrence rule subset: FREQ / INTERVAL / BYDAY / UNTIL.

Rules are matched by substring, not parsed as full RFC 5545: unknown tokens
are ignored and anything without a recognized FREQ means "no recurrence".
"""

from __future__ import annotations

import calendar
import datetime as dt
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from .model import has_rule
from .util.tz import local_from_ms, ms_from_local

FREQ_DAILY = "daily"
FREQ_WEEKLY = "weekly"
FREQ_MONTHLY = "monthly"
FREQ_YEARLY = "yearly"

_FREQS = (
    ("FREQ=DAILY", FREQ_DAILY),
    ("FREQ=WEEKLY", FREQ_WEEKLY),
    ("FREQ=MONTHLY", FREQ_MONTHLY),
    ("FREQ=YEARLY", FREQ_YEARLY),
)

# Python weekday numbers (Monday=0).
WEEKDAY_CODES = {"MO": 0, "TU": 1, "WE": 2, "TH": 3, "FR": 4, "SA": 5, "SU": 6}

_INTERVAL_RE = re.compile(r"INTERVAL=(\d+)")
_BYDAY_RE = re.compile(r"BYDAY=([A-Za-z0-9,+-]+)")
_UNTIL_RE = re.compile(r"UNTIL=(\d{8}T\d{6})Z?")
_UNTIL_STRIP_RE = re.compile(r";?UNTIL=[^;]*")


@dataclass(frozen=True)
class RecurrenceRule:
    freq: str
    interval: int = 1
    by_day: Tuple[int, ...] = ()
    until_ms: Optional[int] = None

    def allows_weekday(self, weekday: int) -> bool:
        return not self.by_day or weekday in self.by_day


def parse_rule(text: Optional[str]) -> Optional[RecurrenceRule]:
    """Parse the supported subset; None for absent, "none" or unrecognized rules."""
    if not has_rule(text):
        return None
    up = str(text).upper()

    freq = None
    for token, name in _FREQS:
        if token in up:
            freq = name
            break
    if freq is None:
        return None

    interval = 1
    m = _INTERVAL_RE.search(up)
    if m:
        interval = max(1, int(m.group(1)))

    by_day: Tuple[int, ...] = ()
    m = _BYDAY_RE.search(up)
    if m:
        days = []
        for code in m.group(1).split(","):
            # Ordinal prefixes ("1MO", "-1FR") are outside the subset; keep the weekday.
            wd = WEEKDAY_CODES.get(code.strip()[-2:])
            if wd is not None and wd not in days:
                days.append(wd)
        by_day = tuple(sorted(days))

    until_ms = None
    m = _UNTIL_RE.search(up)
    if m:
        until_ms = parse_until(m.group(1))

    return RecurrenceRule(freq=freq, interval=interval, by_day=by_day, until_ms=until_ms)


def parse_until(s: str) -> Optional[int]:
    """YYYYMMDDTHHMMSS[Z] (always UTC) -> epoch ms."""
    try:
        t = dt.datetime.strptime(s.rstrip("Zz"), "%Y%m%dT%H%M%S").replace(tzinfo=dt.timezone.utc)
    except ValueError:
        return None
    return int(t.timestamp() * 1000)


def format_until(ms: int) -> str:
    t = dt.datetime.fromtimestamp(int(ms) / 1000.0, tz=dt.timezone.utc)
    return t.strftime("%Y%m%dT%H%M%SZ")


def strip_until(text: Optional[str]) -> str:
    return _UNTIL_STRIP_RE.sub("", text or "").strip(";")


def with_until(text: Optional[str], until_ms: int) -> str:
    base = strip_until(text)
    token = f"UNTIL={format_until(until_ms)}"
    return f"{base};{token}" if base else token


def add_months(d: dt.date, months: int) -> Optional[dt.date]:
    """Same day-of-month `months` later; None when that day does not exist (no clamping)."""
    idx = d.year * 12 + (d.month - 1) + int(months)
    year, month0 = divmod(idx, 12)
    if year < dt.MINYEAR or year > dt.MAXYEAR:
        return None
    if d.day > calendar.monthrange(year, month0 + 1)[1]:
        return None
    return dt.date(year, month0 + 1, d.day)


def add_years(d: dt.date, years: int) -> Optional[dt.date]:
    year = d.year + int(years)
    if year < dt.MINYEAR or year > dt.MAXYEAR:
        return None
    if d.month == 2 and d.day == 29 and not calendar.isleap(year):
        return None
    return dt.date(year, d.month, d.day)


def _shift_months_clamped(d: dt.date, months: int) -> dt.date:
    idx = d.year * 12 + (d.month - 1) + int(months)
    year, month0 = divmod(idx, 12)
    last = calendar.monthrange(year, month0 + 1)[1]
    return dt.date(year, month0 + 1, min(d.day, last))


def period_before(ms: int, rule: RecurrenceRule, tz: dt.tzinfo) -> int:
    """The instant one period (the rule's own step) before `ms`, in wall-clock terms.

    Used as the UNTIL bound when a series is truncated at `ms`: every occurrence
    before `ms` stays at or before the bound, `ms` itself falls after it. Month
    arithmetic clamps here since any instant between the two occurrences will do.
    """
    local = local_from_ms(ms, tz)
    d = local.date()
    n = rule.interval
    if rule.freq == FREQ_DAILY:
        prev = d - dt.timedelta(days=n)
    elif rule.freq == FREQ_WEEKLY:
        prev = d - dt.timedelta(days=7 * n)
    elif rule.freq == FREQ_MONTHLY:
        prev = _shift_months_clamped(d, -n)
    else:
        prev = _shift_months_clamped(d, -12 * n)
    return ms_from_local(prev, local.time(), tz)


__all__ = [
    "FREQ_DAILY",
    "FREQ_WEEKLY",
    "FREQ_MONTHLY",
    "FREQ_YEARLY",
    "RecurrenceRule",
    "parse_rule",
    "parse_until",
    "format_until",
    "strip_until",
    "with_until",
    "add_months",
    "add_years",
    "period_before",
]
