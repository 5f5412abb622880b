#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from chronogrid.util.console import setup_logging
from chronogrid.validate import validate_payload


def _die(msg: str, rc: int = 2) -> int:
    print(f"[chronogrid-validate-events] ERROR: {msg}", file=sys.stderr)
    return rc


def _load_payload_from_json(p: Path) -> Dict[str, Any]:
    obj = json.loads(p.read_text(encoding="utf-8", errors="replace"))
    if not isinstance(obj, dict):
        raise ValueError(f"payload must be a JSON object; got {type(obj).__name__}")
    return obj


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="chronogrid-validate-events",
        description="Validate one or more chronogrid event payload JSON files.",
    )
    ap.add_argument("--in", dest="in_json", action="append", default=[], help="Input payload JSON path (repeatable)")
    ap.add_argument("--verbose", action="store_true", help="Debug logging on stderr")
    ns = ap.parse_args(argv)

    setup_logging(ns.verbose)

    if not ns.in_json:
        return _die("Provide --in")

    all_errs: List[str] = []
    for raw in ns.in_json:
        p = Path(raw)
        if not p.exists():
            return _die(f"Missing JSON file: {p}")
        try:
            payload = _load_payload_from_json(p)
        except Exception as e:
            return _die(f"Failed to load JSON payload: {p} ({e})")
        all_errs.extend(f"json:{p}: {e}" for e in validate_payload(payload))

    if all_errs:
        print("[chronogrid-validate-events] FAIL", file=sys.stderr)
        for e in all_errs:
            print(f"  - {e}", file=sys.stderr)
        return 3

    print("[chronogrid-validate-events] OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
