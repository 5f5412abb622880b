from __future__ import annotations

import datetime as dt
import unittest

from chronogrid.model import KIND_EXCEPTION, KIND_VIRTUAL, CalendarEvent, ViewWindow
from chronogrid.resolver import resolve

UTC = dt.timezone.utc


def _ms(y: int, m: int, d: int, hh: int = 0, mm: int = 0) -> int:
    return int(dt.datetime(y, m, d, hh, mm, tzinfo=UTC).timestamp() * 1000)


WEEK = ViewWindow(_ms(2024, 1, 1), _ms(2024, 1, 8) - 1)


class TestResolverContract(unittest.TestCase):
    def test_non_recurring_events_follow_the_window(self) -> None:
        inside = CalendarEvent(id="in", start_ms=_ms(2024, 1, 3, 9), end_ms=_ms(2024, 1, 3, 10))
        outside = CalendarEvent(id="out", start_ms=_ms(2024, 1, 9, 9), end_ms=_ms(2024, 1, 9, 10))
        out = resolve([inside, outside], WEEK)
        self.assertEqual([e.id for e in out], ["in"])

    def test_order_is_input_order_then_virtuals(self) -> None:
        single = CalendarEvent(id="one", start_ms=_ms(2024, 1, 5, 9), end_ms=_ms(2024, 1, 5, 10))
        series = CalendarEvent(
            id="s",
            start_ms=_ms(2024, 1, 6, 8),
            end_ms=_ms(2024, 1, 6, 9),
            recurrence="FREQ=DAILY",
            is_recurrence_base=True,
        )
        out = resolve([single, series], WEEK)
        self.assertEqual([e.id for e in out[:2]], ["one", "s"])
        self.assertEqual(len(out), 3)
        self.assertEqual(out[2].kind, KIND_VIRTUAL)
        self.assertEqual(out[2].start_ms, _ms(2024, 1, 7, 8))

    def test_excluded_anchor_hides_but_series_continues(self) -> None:
        series = CalendarEvent(
            id="s",
            start_ms=_ms(2024, 1, 1, 10),
            end_ms=_ms(2024, 1, 1, 11),
            recurrence="FREQ=DAILY",
            excluded_dates=("2024-01-01",),
        )
        out = resolve([series], WEEK)
        self.assertNotIn("s", [e.id for e in out])
        self.assertEqual(len(out), 6)

    def test_exception_is_shown_with_its_series(self) -> None:
        series = CalendarEvent(
            id="s",
            start_ms=_ms(2024, 1, 1, 10),
            end_ms=_ms(2024, 1, 1, 11),
            recurrence="FREQ=DAILY",
            excluded_dates=("2024-01-02",),
            recurrence_group_id="s",
        )
        exc = CalendarEvent(
            id="s-exception-1",
            start_ms=_ms(2024, 1, 2, 15),
            end_ms=_ms(2024, 1, 2, 16),
            recurrence_group_id="s",
            kind=KIND_EXCEPTION,
        )
        out = resolve([series, exc], WEEK)
        self.assertEqual(len(out), 7)
        on_jan2 = [e for e in out if _ms(2024, 1, 2) <= e.start_ms < _ms(2024, 1, 3)]
        self.assertEqual([e.id for e in on_jan2], ["s-exception-1"])

    def test_virtual_inputs_and_duplicates_are_ignored(self) -> None:
        series = CalendarEvent(
            id="s",
            start_ms=_ms(2024, 1, 6, 10),
            end_ms=_ms(2024, 1, 6, 11),
            recurrence="FREQ=DAILY",
        )
        stale = CalendarEvent(
            id="s-virtual-123",
            start_ms=_ms(2024, 1, 7, 10),
            end_ms=_ms(2024, 1, 7, 11),
            recurrence="FREQ=DAILY",
            kind=KIND_VIRTUAL,
            parent_id="s",
        )
        out = resolve([series, stale, series], WEEK)
        self.assertEqual([e.id for e in out], ["s", f"s-virtual-{_ms(2024, 1, 7, 10)}"])

    def test_events_without_a_start_are_skipped(self) -> None:
        broken = CalendarEvent(id="broken", start_ms=None, end_ms=None)
        self.assertEqual(resolve([broken], WEEK), [])


if __name__ == "__main__":
    unittest.main(verbosity=2)
