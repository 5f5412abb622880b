#!/usr/bin/env python3
"""Print the occurrences a payload resolves to in a date window (one JSON list)."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import List

from chronogrid.api import event_to_dict, resolve_payload
from chronogrid.config import GridConfig
from chronogrid.payload import load_payload_from_json
from chronogrid.util.console import setup_logging
from chronogrid.util.timeparse import parse_date_yyyy_mm_dd
from chronogrid.util.tz import normalize_tz_name, resolve_tz


def _die(msg: str, rc: int = 2) -> int:
    print(f"[chronogrid-expand-events] ERROR: {msg}", file=sys.stderr)
    return rc


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="chronogrid-expand-events",
        description="Resolve a payload's events (recurrences expanded) for a window of whole days.",
    )
    ap.add_argument("--in", dest="in_json", required=True, help="Input payload JSON path")
    ap.add_argument("--start", required=True, help="Window start date YYYY-MM-DD")
    ap.add_argument("--days", type=int, default=7, help="Number of days (default: 7)")
    ap.add_argument("--tz", default=None, help="Timezone for day boundaries (default: payload cfg.tz)")
    ap.add_argument("--out", default=None, help="Output JSON path (default: stdout)")
    ap.add_argument("--verbose", action="store_true", help="Debug logging on stderr")
    ns = ap.parse_args(argv)

    setup_logging(ns.verbose)

    if ns.days < 1:
        return _die("--days must be >= 1")
    try:
        start = parse_date_yyyy_mm_dd(ns.start)
    except ValueError:
        return _die(f"Invalid --start (expected YYYY-MM-DD): {ns.start!r}")

    p = Path(ns.in_json)
    if not p.exists():
        return _die(f"Missing JSON file: {p}")
    try:
        payload = load_payload_from_json(p)
    except Exception as e:
        return _die(f"Failed to load payload: {p} ({e})")

    cfg = GridConfig.from_cfg(payload.get("cfg"))
    if ns.tz:
        cfg = replace(cfg, tz=normalize_tz_name(ns.tz))
    try:
        resolve_tz(cfg.tz)
    except ValueError as e:
        return _die(f"Invalid --tz value: {e}")

    occurrences = resolve_payload(payload, start, ns.days, cfg=cfg)
    text = json.dumps([event_to_dict(ev) for ev in occurrences], ensure_ascii=False, indent=2) + "\n"

    if ns.out:
        outp = Path(ns.out)
        outp.parent.mkdir(parents=True, exist_ok=True)
        outp.write_text(text, encoding="utf-8", newline="\n")
        print(f"[chronogrid-expand-events] wrote: {outp} ({len(occurrences)} occurrences)", file=sys.stderr)
    else:
        sys.stdout.write(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
