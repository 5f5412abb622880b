from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from .api import layout_payload
from .config import ENV_TZ, GridConfig
from .payload import load_payload_from_json
from .util.console import setup_logging
from .util.timeparse import parse_date_yyyy_mm_dd
from .util.tz import normalize_tz_name, resolve_tz, today_date

logger = logging.getLogger(__name__)


def _die(msg: str, rc: int = 2) -> int:
    print(f"[chronogrid] ERROR: {msg}", file=sys.stderr)
    return rc


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        prog="chronogrid",
        description="Resolve recurring calendar events and lay them out on a day/time grid (JSON out).",
    )
    ap.add_argument("--in", dest="in_json", required=True, help="Input payload JSON path")
    ap.add_argument("--start", default=None, help="View start date YYYY-MM-DD (default: today in --tz)")
    ap.add_argument("--days", type=int, default=7, help="Number of days to lay out (default: 7)")
    ap.add_argument(
        "--tz",
        default=None,
        help=f"Timezone for day boundaries (default: env {ENV_TZ}, then payload cfg.tz, then UTC)",
    )
    ap.add_argument("--out", default=None, help="Output JSON path (default: stdout)")
    ap.add_argument("--verbose", action="store_true", help="Debug logging on stderr")
    args = ap.parse_args(argv)

    setup_logging(args.verbose)

    if args.days < 1:
        return _die("--days must be >= 1")

    p = Path(args.in_json)
    if not p.exists():
        return _die(f"Missing JSON file: {p}")
    try:
        payload = load_payload_from_json(p)
    except Exception as e:
        return _die(f"Failed to load payload: {p} ({e})")

    cfg = GridConfig.from_env(payload.get("cfg"))
    if args.tz:
        cfg = replace(cfg, tz=normalize_tz_name(args.tz))
    try:
        tz = resolve_tz(cfg.tz)
    except ValueError as e:
        return _die(f"Invalid --tz value: {e}")

    if args.start:
        try:
            start = parse_date_yyyy_mm_dd(args.start)
        except ValueError:
            return _die(f"Invalid --start (expected YYYY-MM-DD): {args.start!r}")
    else:
        start = today_date(tz)

    logger.debug("layout %s: start=%s days=%d tz=%s", p, start, args.days, cfg.tz)
    out = {
        "start": start.isoformat(),
        "days": int(args.days),
        "tz": cfg.tz,
        "grid": layout_payload(payload, start, args.days, cfg=cfg),
    }
    text = json.dumps(out, ensure_ascii=False, indent=2, sort_keys=True) + "\n"

    if args.out:
        outp = Path(args.out)
        outp.parent.mkdir(parents=True, exist_ok=True)
        outp.write_text(text, encoding="utf-8", newline="\n")
        print(f"[chronogrid] wrote: {outp}", file=sys.stderr)
    else:
        sys.stdout.write(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
