# chronogrid/util/timeparse.py
from __future__ import annotations

import datetime as dt
import re
from typing import Optional

from .tz import day_key_from_ms

_DAY_KEY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def parse_date_yyyy_mm_dd(s: str) -> dt.date:
    return dt.datetime.strptime(s, "%Y-%m-%d").date()


def parse_iso_ms(s: object) -> Optional[int]:
    """Parse an ISO-8601 instant ("2024-01-01T10:00:00.000Z") to epoch ms.

    Naive timestamps are read as UTC. Returns None for anything unparseable.
    """
    if isinstance(s, bool):
        return None
    if isinstance(s, int):
        return s
    if not isinstance(s, str) or not s.strip():
        return None
    txt = s.strip()
    if txt.endswith("Z") or txt.endswith("z"):
        txt = txt[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(txt)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return int(round(parsed.timestamp() * 1000))


def format_iso_ms(ms: int) -> str:
    """Epoch ms -> "YYYY-MM-DDTHH:MM:SS.mmmZ" (UTC)."""
    t = dt.datetime.fromtimestamp(int(ms) / 1000.0, tz=dt.timezone.utc)
    return t.strftime("%Y-%m-%dT%H:%M:%S.") + f"{t.microsecond // 1000:03d}Z"


def day_key_from_value(v: object, tz: dt.tzinfo) -> Optional[str]:
    """Normalize an excluded-date entry (day key, ISO instant or epoch ms) to a day key."""
    if isinstance(v, str):
        m = _DAY_KEY_RE.match(v.strip())
        if m:
            try:
                return dt.date(int(m.group(1)), int(m.group(2)), int(m.group(3))).isoformat()
            except ValueError:
                return None
    return day_key_from_ms(parse_iso_ms(v), tz)
