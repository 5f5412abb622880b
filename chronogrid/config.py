# chronogrid/config.py
from __future__ import annotations

import datetime as dt
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

from .util.tz import normalize_tz_name, resolve_tz

ENV_TZ = "CHRONOGRID_TZ"

# Grid defaults (pixels per hour row, snap step, gesture threshold).
PX_PER_HOUR = 64
STEP_MIN = 15
DRAG_THRESHOLD_PX = 5
DELETE_DELAY_MS = 250


@dataclass(frozen=True)
class GridConfig:
    """Calendar grid settings shared by layout, snapping and interaction."""

    tz: str = "UTC"
    px_per_hour: float = float(PX_PER_HOUR)
    step_min: int = STEP_MIN
    drag_threshold_px: float = float(DRAG_THRESHOLD_PX)

    # Layout insets: px on top/bottom edges, percent on the sides / between columns.
    inset_px: float = 1.0
    min_height_px: float = 10.0
    side_gap_pct: float = 2.0
    column_gap_pct: float = 2.0

    delete_delay_ms: int = DELETE_DELAY_MS
    history_limit: Optional[int] = 100

    @property
    def tzinfo(self) -> dt.tzinfo:
        return resolve_tz(self.tz)

    @classmethod
    def from_cfg(cls, cfg: Optional[Mapping[str, Any]]) -> "GridConfig":
        """Build from a payload `cfg` dict; missing or ill-typed keys fall back to defaults."""
        base = cls()
        if not isinstance(cfg, Mapping):
            return base

        vals: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in cfg:
                continue
            raw = cfg[f.name]
            cur = getattr(base, f.name)
            if f.name == "tz":
                vals["tz"] = normalize_tz_name(raw if isinstance(raw, str) else None)
            elif f.name == "history_limit":
                if raw is None or (isinstance(raw, int) and not isinstance(raw, bool) and raw > 0):
                    vals[f.name] = raw
            elif isinstance(raw, (int, float)) and not isinstance(raw, bool) and raw >= 0:
                vals[f.name] = int(raw) if isinstance(cur, int) else float(raw)

        if int(vals.get("step_min", base.step_min)) < 1:
            vals["step_min"] = base.step_min
        if float(vals.get("px_per_hour", base.px_per_hour)) <= 0:
            vals["px_per_hour"] = base.px_per_hour
        return replace(base, **vals)

    @classmethod
    def from_env(cls, cfg: Optional[Mapping[str, Any]] = None) -> "GridConfig":
        """Like from_cfg, but CHRONOGRID_TZ (when set) wins over cfg.tz."""
        out = cls.from_cfg(cfg)
        env_tz = os.getenv(ENV_TZ)
        if env_tz:
            out = replace(out, tz=normalize_tz_name(env_tz))
        return out

    def to_cfg(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_CONFIG = GridConfig()
