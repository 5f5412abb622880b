# chronogrid/util/tz.py
from __future__ import annotations

import datetime as dt
import re
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


def normalize_tz_name(name: Optional[str]) -> str:
    """Normalize a timezone identifier.

    Supported forms:
      - None/"" -> "UTC"
      - "local" / "system" -> "local" (resolve to the machine's local timezone)
      - "UTC" / "Z" / "GMT" -> "UTC"
      - IANA names, e.g. "Europe/Bucharest"
      - Fixed offsets: "+02:00", "+0200", "-05:00"

    Calendar arithmetic defaults to UTC so that layouts are reproducible
    regardless of the host machine.
    """
    if name is None:
        return "UTC"
    s = str(name).strip()
    if not s:
        return "UTC"

    low = s.lower()
    if low in {"local", "system", "native"}:
        return "local"
    if low in {"utc", "z", "gmt", "utc0", "utc+0"}:
        return "UTC"

    return s


def resolve_tz(name: Optional[str]) -> dt.tzinfo:
    """Resolve a timezone name into a tzinfo.

    Raises ValueError for invalid timezone identifiers.
    """
    tz_name = normalize_tz_name(name)

    if tz_name == "UTC":
        return dt.timezone.utc

    if tz_name == "local":
        tz = dt.datetime.now().astimezone().tzinfo
        return tz or dt.timezone.utc

    m = _OFFSET_RE.match(tz_name)
    if m:
        sign_s, hh_s, mm_s = m.groups()
        hh = int(hh_s)
        mm = int(mm_s)
        if hh > 23 or mm > 59:
            raise ValueError(f"Invalid timezone offset: {tz_name!r}")
        sign = 1 if sign_s == "+" else -1
        return dt.timezone(dt.timedelta(minutes=sign * (hh * 60 + mm)))

    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as ex:
        raise ValueError(f"Invalid timezone identifier: {tz_name!r}") from ex


def local_from_ms(ms: int, tz: dt.tzinfo) -> dt.datetime:
    return dt.datetime.fromtimestamp(int(ms) / 1000.0, tz=tz)


def ms_from_local(d: dt.date, t: dt.time, tz: dt.tzinfo) -> int:
    """Epoch ms for wall-clock time `t` on date `d` in `tz`."""
    aware = dt.datetime(d.year, d.month, d.day, t.hour, t.minute, t.second, t.microsecond, tzinfo=tz)
    return int(round(aware.timestamp() * 1000))


def midnight_epoch_ms(d: dt.date, tz: dt.tzinfo) -> int:
    return ms_from_local(d, dt.time(0, 0), tz)


def day_key_from_ms(ms: Optional[int], tz: dt.tzinfo) -> Optional[str]:
    if ms is None:
        return None
    try:
        return local_from_ms(ms, tz).date().isoformat()
    except (OverflowError, OSError, ValueError):
        return None


def minute_of_day(ms: int, tz: dt.tzinfo) -> int:
    t = local_from_ms(ms, tz)
    return t.hour * 60 + t.minute


def today_date(tz: dt.tzinfo) -> dt.date:
    return dt.datetime.now(tz=tz).date()
