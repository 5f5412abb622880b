# chronogrid/interaction.py
"""Pointer gestures (create / move / resize) and timed deletes as one explicit state machine.

The machine owns the stored collection and its undo history. It never touches
the screen: each commit returns an `Intent` telling the renderer what changed.

    idle --down--> pending_* --move > threshold--> creating|moving|resizing
      ^                |                                   |
      |               up (click, no mutation)             up
      |                                                    v
      +------------- commit <--- choose_scope <--- awaiting_scope (recurring target)

    idle --request_delete--> [awaiting_scope] --> deleting(deadline) --tick--> commit
"""

from __future__ import annotations

import datetime as dt
import logging
import math
import time
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Tuple

from .config import DEFAULT_CONFIG, GridConfig
from .edits import (
    SCOPE_ALL,
    SCOPE_FOLLOWING,
    SCOPE_SINGLE,
    SCOPES,
    apply_edit,
    delete_event,
    duplicate_event,
    is_recurring_occurrence,
    move_event,
    paste_event,
)
from .history import History
from .model import CalendarEvent, Intent, ViewWindow, strip_virtual
from .resolver import resolve as resolve_events
from .snapping import MIN_MS, SNAP_ROUND, SnapClock, enforce_min_duration
from .util.tz import today_date

logger = logging.getLogger(__name__)

IDLE = "idle"
PENDING_CREATE = "pending_create"
PENDING_MOVE = "pending_move"
PENDING_RESIZE = "pending_resize"
CREATING = "creating"
MOVING = "moving"
RESIZING = "resizing"
AWAITING_SCOPE = "awaiting_scope"
DELETING = "deleting"

GESTURE_CREATE = "create"
GESTURE_MOVE = "move"
GESTURE_RESIZE = "resize"
GESTURE_DELETE = "delete"

EDGE_START = "start"
EDGE_END = "end"

_PENDING = {PENDING_CREATE: CREATING, PENDING_MOVE: MOVING, PENDING_RESIZE: RESIZING}
_ACTIVE = (CREATING, MOVING, RESIZING)

INTENT_CREATED = "created"
INTENT_MOVED = "moved"
INTENT_RESIZED = "resized"
INTENT_DELETING = "deleting"
INTENT_DELETED = "deleted"
INTENT_UNDONE = "undone"
INTENT_REDONE = "redone"
INTENT_PASTED = "pasted"
INTENT_DUPLICATED = "duplicated"

# Paste without a pointer row lands this long after the focused event.
PASTE_GAP_MIN = 15

# id_factory(kind, parent_id) -> new id; kind is "event", "exception" or "split".
IdFactory = Callable[[str, Optional[str]], str]


class InteractionError(ValueError):
    """Raised for calls that are illegal in the current interaction state."""


def default_id_factory(kind: str, parent_id: Optional[str] = None) -> str:
    token = uuid.uuid4().hex[:12]
    if parent_id and kind in ("exception", "split"):
        return f"{parent_id}-{kind}-{token}"
    return f"evt-{token}"


@dataclass(frozen=True)
class Clipboard:
    event: CalendarEvent
    cut: bool = False


@dataclass(frozen=True)
class Session:
    """The one in-flight interaction. `state` is the tag; other fields depend on it."""

    state: str = IDLE
    gesture: Optional[str] = None
    target: Optional[CalendarEvent] = None
    edge: Optional[str] = None

    origin_x: float = 0.0
    origin_y: float = 0.0
    origin_ms: Optional[int] = None
    grab_offset_ms: int = 0

    preview_start_ms: Optional[int] = None
    preview_end_ms: Optional[int] = None

    requested_at_ms: Optional[int] = None
    deadline_ms: Optional[int] = None
    scope: Optional[str] = None

    @property
    def preview(self) -> Optional[Tuple[int, int]]:
        if self.preview_start_ms is None or self.preview_end_ms is None:
            return None
        return self.preview_start_ms, self.preview_end_ms


class InteractionStateMachine:
    def __init__(
        self,
        events: Iterable[CalendarEvent] = (),
        cfg: GridConfig = DEFAULT_CONFIG,
        view_start: Optional[dt.date] = None,
        id_factory: Optional[IdFactory] = None,
    ):
        self.cfg = cfg
        self.clock = SnapClock(view_start or today_date(cfg.tzinfo), cfg)
        self.history = History(cfg.history_limit)
        self.session = Session()
        self._events: Tuple[CalendarEvent, ...] = strip_virtual(events)
        self._new_id: IdFactory = id_factory or default_id_factory
        self.clipboard: Optional[Clipboard] = None

    # --- read side ---------------------------------------------------------

    @property
    def events(self) -> Tuple[CalendarEvent, ...]:
        return self._events

    @property
    def state(self) -> str:
        return self.session.state

    @property
    def preview(self) -> Optional[Tuple[int, int]]:
        return self.session.preview

    def resolve(self, window: ViewWindow) -> List[CalendarEvent]:
        return resolve_events(self._events, window, self.cfg.tzinfo)

    def load(self, events: Iterable[CalendarEvent]) -> None:
        """Replace the collection from the host (no history entry); cancels any session."""
        self._events = strip_virtual(events)
        self.session = Session()

    # --- pointer gestures --------------------------------------------------

    def pointer_down(
        self,
        x: float,
        y: float,
        day_index: int,
        scroll_offset: float = 0,
        target: Optional[CalendarEvent] = None,
        edge: Optional[str] = None,
    ) -> None:
        """Start a pending gesture. Ignored unless idle."""
        if self.state != IDLE:
            logger.debug("pointer_down ignored in state %s", self.state)
            return
        t = self.clock.position_to_time(y, day_index, scroll_offset)

        if target is None:
            self.session = Session(state=PENDING_CREATE, gesture=GESTURE_CREATE, origin_x=x, origin_y=y, origin_ms=t)
            return
        if not target.has_valid_span:
            logger.debug("pointer_down on %s ignored: no valid span", target.id)
            return

        common = dict(
            target=target,
            origin_x=x,
            origin_y=y,
            origin_ms=t,
            preview_start_ms=target.start_ms,
            preview_end_ms=target.end_ms,
        )
        if edge in (EDGE_START, EDGE_END):
            self.session = Session(state=PENDING_RESIZE, gesture=GESTURE_RESIZE, edge=edge, **common)
        else:
            grab = t - int(target.start_ms)  # type: ignore[arg-type]
            self.session = Session(state=PENDING_MOVE, gesture=GESTURE_MOVE, grab_offset_ms=grab, **common)

    def pointer_move(self, x: float, y: float, day_index: int, scroll_offset: float = 0) -> None:
        s = self.session
        if s.state in _PENDING:
            if math.hypot(x - s.origin_x, y - s.origin_y) <= self.cfg.drag_threshold_px:
                return
            s = replace(s, state=_PENDING[s.state])
        elif s.state not in _ACTIVE:
            return

        t = self.clock.position_to_time(y, day_index, scroll_offset)
        if s.gesture == GESTURE_CREATE:
            start, end = self.clock.snap_create_span(int(s.origin_ms), t)  # type: ignore[arg-type]
            s = replace(s, preview_start_ms=start, preview_end_ms=end)
        elif s.gesture == GESTURE_MOVE:
            start = self.clock.snap(t - s.grab_offset_ms, SNAP_ROUND)
            s = replace(s, preview_start_ms=start, preview_end_ms=start + s.target.duration_ms)  # type: ignore[union-attr]
        else:
            s = self._resize_preview(s, self.clock.snap(t, SNAP_ROUND))
        self.session = s

    def _resize_preview(self, s: Session, snapped: int) -> Session:
        """Move one edge; inverted spans are rejected, short ones widened to one step."""
        start, end = int(s.preview_start_ms), int(s.preview_end_ms)  # type: ignore[arg-type]
        if s.edge == EDGE_END:
            if snapped <= start:
                return s
            return replace(s, preview_end_ms=enforce_min_duration(start, snapped, self.clock.step_min)[1])
        if snapped >= end:
            return s
        return replace(s, preview_start_ms=min(snapped, end - self.clock.step_min * MIN_MS))

    def pointer_up(self) -> Optional[Intent]:
        """Finish the gesture. A click that never passed the threshold mutates nothing."""
        s = self.session
        if s.state in _PENDING:
            self.session = Session()
            return None
        if s.state not in _ACTIVE or s.preview is None:
            return None

        start, end = s.preview
        if s.gesture == GESTURE_CREATE:
            start, end = enforce_min_duration(start, end, self.clock.step_min)
            ev = CalendarEvent(id=self._new_id("event", None), start_ms=start, end_ms=end, title="New event")
            return self._commit(self._events + (ev,), Intent(INTENT_CREATED, (ev.id,)))

        target = self._require_target(s)
        if (start, end) == (target.start_ms, target.end_ms):
            self.session = Session()
            return None
        if is_recurring_occurrence(target):
            self.session = replace(s, state=AWAITING_SCOPE)
            return None

        kind = INTENT_MOVED if s.gesture == GESTURE_MOVE else INTENT_RESIZED
        return self._commit(move_event(self._events, target.id, start, end), Intent(kind, (target.id,)))

    def pointer_leave(self) -> bool:
        if self.state in _PENDING or self.state in _ACTIVE or self.state == AWAITING_SCOPE:
            self.session = Session()
            return True
        return False

    def escape(self) -> bool:
        """Cancel whatever is in flight, including a delete not yet committed."""
        if self.state == IDLE:
            return False
        self.session = Session()
        return True

    # --- scope prompt and deletes ------------------------------------------

    def choose_scope(self, scope: str, now_ms: Optional[int] = None) -> Optional[Intent]:
        s = self.session
        if s.state != AWAITING_SCOPE:
            raise InteractionError(f"choose_scope is only valid in {AWAITING_SCOPE!r} (state={s.state!r})")
        if scope not in SCOPES:
            raise InteractionError(f"Unknown scope: {scope!r}")
        target = self._require_target(s)

        if s.gesture == GESTURE_DELETE:
            at = s.requested_at_ms if now_ms is None else now_ms
            return self._start_delete(target, int(at or 0), scope)

        start, end = s.preview  # type: ignore[misc]
        new_id = ""
        if scope == SCOPE_SINGLE:
            new_id = self._new_id("exception", target.parent_id or target.id)
        elif scope == SCOPE_FOLLOWING:
            new_id = self._new_id("split", target.recurrence_group_id or target.parent_id or target.id)

        updated = apply_edit(self._events, target, scope, start, end, new_id=new_id, tz=self.cfg.tzinfo)
        ids = [target.parent_id or target.id]
        if new_id and any(e.id == new_id for e in updated):
            ids.append(new_id)
        kind = INTENT_MOVED if s.gesture == GESTURE_MOVE else INTENT_RESIZED
        return self._commit(updated, Intent(kind, tuple(ids)))

    def request_delete(self, event: CalendarEvent, now_ms: int, scope: Optional[str] = None) -> Optional[Intent]:
        """Begin deleting `event`. Recurring events without a scope first go through the prompt."""
        if self.state != IDLE:
            raise InteractionError(f"request_delete is only valid when idle (state={self.state!r})")
        if scope is not None and scope not in SCOPES:
            raise InteractionError(f"Unknown scope: {scope!r}")
        if is_recurring_occurrence(event) and scope is None:
            self.session = Session(
                state=AWAITING_SCOPE,
                gesture=GESTURE_DELETE,
                target=event,
                requested_at_ms=int(now_ms),
            )
            return None
        return self._start_delete(event, int(now_ms), scope)

    def _start_delete(self, event: CalendarEvent, now_ms: int, scope: Optional[str]) -> Intent:
        self.session = Session(
            state=DELETING,
            gesture=GESTURE_DELETE,
            target=event,
            requested_at_ms=now_ms,
            deadline_ms=now_ms + int(self.cfg.delete_delay_ms),
            scope=scope,
        )
        return Intent(INTENT_DELETING, (event.id,))

    def tick(self, now_ms: int) -> Optional[Intent]:
        """Advance time; commits a pending delete once its deadline has passed."""
        s = self.session
        if s.state != DELETING or s.deadline_ms is None or now_ms < s.deadline_ms:
            return None
        target = self._require_target(s)
        updated = delete_event(self._events, target, s.scope, tz=self.cfg.tzinfo)
        return self._commit(updated, Intent(INTENT_DELETED, (target.id,)))

    # --- clipboard and duplicate -------------------------------------------

    def cut(self, event: CalendarEvent) -> None:
        self.clipboard = Clipboard(event, cut=True)

    def copy(self, event: CalendarEvent) -> None:
        self.clipboard = Clipboard(event, cut=False)

    def paste(
        self,
        y: Optional[float] = None,
        day_index: Optional[int] = None,
        scroll_offset: float = 0,
        *,
        focused: Optional[CalendarEvent] = None,
        now_ms: Optional[int] = None,
    ) -> Optional[Intent]:
        """Paste the clipboard at a pointer row, else after `focused`, else at `now_ms`.

        A cut clipboard is consumed by its first paste.
        """
        if self.state != IDLE:
            raise InteractionError(f"paste is only valid when idle (state={self.state!r})")
        clip = self.clipboard
        if clip is None:
            return None

        if y is not None and day_index is not None:
            at = self.clock.snap(self.clock.position_to_time(y, day_index, scroll_offset), SNAP_ROUND)
        elif focused is not None and focused.end_ms is not None:
            at = int(focused.end_ms) + PASTE_GAP_MIN * MIN_MS
        else:
            now = int(time.time() * 1000) if now_ms is None else int(now_ms)
            at = self.clock.snap(now, SNAP_ROUND)

        new_id = self._new_id("event", None)
        try:
            updated = paste_event(self._events, clip.event, at, new_id=new_id, cut=clip.cut, tz=self.cfg.tzinfo)
        except ValueError as ex:
            raise InteractionError(str(ex)) from ex
        if clip.cut:
            self.clipboard = None
        return self._commit(updated, Intent(INTENT_PASTED, (new_id,)))

    def duplicate(self, event: CalendarEvent) -> Intent:
        if self.state != IDLE:
            raise InteractionError(f"duplicate is only valid when idle (state={self.state!r})")
        new_id = self._new_id("event", None)
        try:
            updated = duplicate_event(self._events, event, new_id=new_id)
        except ValueError as ex:
            raise InteractionError(str(ex)) from ex
        return self._commit(updated, Intent(INTENT_DUPLICATED, (new_id,)))

    # --- history -----------------------------------------------------------

    def undo(self) -> Optional[Intent]:
        if self.state != IDLE:
            raise InteractionError(f"undo is only valid when idle (state={self.state!r})")
        snap = self.history.undo(self._events)
        if snap is None:
            return None
        self._events = snap
        return Intent(INTENT_UNDONE)

    def redo(self) -> Optional[Intent]:
        if self.state != IDLE:
            raise InteractionError(f"redo is only valid when idle (state={self.state!r})")
        snap = self.history.redo(self._events)
        if snap is None:
            return None
        self._events = snap
        return Intent(INTENT_REDONE)

    @staticmethod
    def _require_target(s: Session) -> CalendarEvent:
        if s.target is None:
            raise InteractionError(f"No target event in state {s.state!r}")
        return s.target

    def _commit(self, updated: Iterable[CalendarEvent], intent: Intent) -> Intent:
        self.history.record(self._events)
        self._events = strip_virtual(updated)
        self.session = Session()
        logger.debug("commit %s %s", intent.kind, ",".join(intent.event_ids))
        return intent


__all__ = [
    "IDLE",
    "PENDING_CREATE",
    "PENDING_MOVE",
    "PENDING_RESIZE",
    "CREATING",
    "MOVING",
    "RESIZING",
    "AWAITING_SCOPE",
    "DELETING",
    "EDGE_START",
    "EDGE_END",
    "SCOPE_SINGLE",
    "SCOPE_FOLLOWING",
    "SCOPE_ALL",
    "InteractionError",
    "InteractionStateMachine",
    "PASTE_GAP_MIN",
    "Clipboard",
    "Session",
    "default_id_factory",
]
