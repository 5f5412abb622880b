from __future__ import annotations

import datetime as dt
import unittest

from chronogrid.edits import (
    apply_all,
    apply_following,
    apply_single,
    delete_event,
    duplicate_event,
    is_recurring_occurrence,
    paste_event,
)
from chronogrid.model import KIND_BASE, KIND_EXCEPTION, CalendarEvent, ViewWindow
from chronogrid.recurrence import virtual_id
from chronogrid.resolver import resolve

UTC = dt.timezone.utc
HOUR = 3_600_000


def _ms(y: int, m: int, d: int, hh: int = 0, mm: int = 0) -> int:
    return int(dt.datetime(y, m, d, hh, mm, tzinfo=UTC).timestamp() * 1000)


WEEK = ViewWindow(_ms(2024, 1, 1), _ms(2024, 1, 8) - 1)
DAILY = CalendarEvent(
    id="d",
    title="Daily sync",
    start_ms=_ms(2024, 1, 1, 10),
    end_ms=_ms(2024, 1, 1, 11),
    recurrence="FREQ=DAILY",
    is_recurrence_base=True,
)


def _occurrence(events, day: int, hh: int = 10) -> CalendarEvent:
    """The resolved occurrence starting on 2024-01-<day> at hh:00."""
    start = _ms(2024, 1, day, hh)
    for ev in resolve(events, WEEK):
        if ev.start_ms == start:
            return ev
    raise AssertionError(f"no occurrence at 2024-01-{day:02d} {hh:02d}:00")


def _by_id(events, ev_id: str) -> CalendarEvent:
    return next(e for e in events if e.id == ev_id)


class TestSingleEditContract(unittest.TestCase):
    def test_single_edit_of_a_tuesday_occurrence(self) -> None:
        events = (DAILY,)
        tuesday = _occurrence(events, 2)
        self.assertEqual(tuesday.id, virtual_id("d", _ms(2024, 1, 2, 10)))
        before = len(resolve(events, WEEK))

        out = apply_single(events, tuesday, _ms(2024, 1, 2, 14), _ms(2024, 1, 2, 15), new_id="d-exception-1")

        base = _by_id(out, "d")
        self.assertEqual(base.excluded_dates, ("2024-01-02",))
        self.assertEqual(base.recurrence_group_id, "d")

        exc = _by_id(out, "d-exception-1")
        self.assertEqual(exc.kind, KIND_EXCEPTION)
        self.assertIsNone(exc.recurrence)
        self.assertEqual(exc.recurrence_group_id, "d")
        self.assertEqual((exc.start_ms, exc.end_ms), (_ms(2024, 1, 2, 14), _ms(2024, 1, 2, 15)))
        self.assertEqual(exc.title, "Daily sync")

        self.assertEqual(len(resolve(out, WEEK)), before)

    def test_repeating_single_edit_updates_the_existing_exception(self) -> None:
        events = (DAILY,)
        tuesday = _occurrence(events, 2)
        once = apply_single(events, tuesday, _ms(2024, 1, 2, 14), _ms(2024, 1, 2, 15), new_id="d-exception-1")
        twice = apply_single(once, tuesday, _ms(2024, 1, 2, 16), _ms(2024, 1, 2, 17), new_id="d-exception-2")

        self.assertEqual([e.id for e in twice], ["d", "d-exception-1"])
        self.assertEqual(_by_id(twice, "d").excluded_dates, ("2024-01-02",))
        self.assertEqual(_by_id(twice, "d-exception-1").start_ms, _ms(2024, 1, 2, 16))

    def test_editing_an_exception_moves_it(self) -> None:
        tuesday = _occurrence((DAILY,), 2)
        once = apply_single((DAILY,), tuesday, _ms(2024, 1, 2, 14), _ms(2024, 1, 2, 15), new_id="d-exception-1")
        exc = _by_id(once, "d-exception-1")
        self.assertTrue(is_recurring_occurrence(exc))

        again = apply_single(once, exc, _ms(2024, 1, 2, 8), _ms(2024, 1, 2, 9), new_id="unused")
        self.assertEqual(len(again), 2)
        self.assertEqual(_by_id(again, "d-exception-1").start_ms, _ms(2024, 1, 2, 8))

    def test_single_edit_of_the_anchor(self) -> None:
        out = apply_single((DAILY,), DAILY, _ms(2024, 1, 1, 12), _ms(2024, 1, 1, 13), new_id="d-exception-1")
        self.assertEqual(_by_id(out, "d").excluded_dates, ("2024-01-01",))
        visible = resolve(out, WEEK)
        self.assertNotIn("d", [e.id for e in visible])
        self.assertIn("d-exception-1", [e.id for e in visible])
        self.assertEqual(len(visible), 7)


class TestFollowingEditContract(unittest.TestCase):
    def _split(self):
        friday = _occurrence((DAILY,), 5)
        return apply_following((DAILY,), friday, _ms(2024, 1, 5, 14), _ms(2024, 1, 5, 15), new_id="d-split-1")

    def test_following_splits_the_series(self) -> None:
        out = self._split()
        old = _by_id(out, "d")
        new = _by_id(out, "d-split-1")

        self.assertEqual(old.recurrence, "FREQ=DAILY;UNTIL=20240104T100000Z")
        self.assertEqual(old.recurrence_group_id, "d")
        self.assertEqual(new.recurrence, "FREQ=DAILY")
        self.assertEqual(new.recurrence_group_id, "d")
        self.assertEqual(new.excluded_dates, ())

        starts = sorted(e.start_ms for e in resolve(out, WEEK))
        self.assertEqual(len(starts), 7)
        expected = [_ms(2024, 1, d, 10) for d in (1, 2, 3, 4)] + [_ms(2024, 1, d, 14) for d in (5, 6, 7)]
        self.assertEqual(starts, expected)

    def test_following_merges_back_into_a_matching_series(self) -> None:
        split = self._split()
        sunday = _occurrence(split, 7, hh=14)
        self.assertEqual(sunday.parent_id, "d-split-1")

        out = apply_following(split, sunday, _ms(2024, 1, 7, 10), _ms(2024, 1, 7, 11), new_id="d-split-2")

        self.assertEqual([e.id for e in out], ["d"])
        self.assertEqual(out[0].recurrence, "FREQ=DAILY")

    def test_series_starting_later_is_not_a_merge_target(self) -> None:
        split = self._split()
        wednesday = _occurrence(split, 3)
        self.assertEqual(wednesday.parent_id, "d")

        out = apply_following(split, wednesday, _ms(2024, 1, 3, 14), _ms(2024, 1, 3, 15), new_id="d-split-2")

        self.assertEqual([e.id for e in out], ["d", "d-split-2"])
        self.assertEqual(_by_id(out, "d").recurrence, "FREQ=DAILY;UNTIL=20240102T100000Z")
        starts = sorted(e.start_ms for e in resolve(out, WEEK))
        expected = [_ms(2024, 1, d, 10) for d in (1, 2)] + [_ms(2024, 1, d, 14) for d in (3, 4, 5, 6, 7)]
        self.assertEqual(starts, expected)

    def test_following_on_a_split_occurrence_merges_into_the_anchor(self) -> None:
        split = self._split()
        events = delete_event(split, _occurrence(split, 2), "single")
        saturday = _occurrence(events, 6, hh=14)
        self.assertEqual(saturday.parent_id, "d-split-1")

        out = apply_following(events, saturday, _ms(2024, 1, 6, 10), _ms(2024, 1, 6, 11), new_id="d-split-2")

        self.assertEqual([e.id for e in out], ["d"])
        self.assertEqual(out[0].recurrence, "FREQ=DAILY")
        self.assertEqual(out[0].excluded_dates, ("2024-01-02",))
        starts = sorted(e.start_ms for e in resolve(out, WEEK))
        self.assertEqual(starts, [_ms(2024, 1, d, 10) for d in (1, 3, 4, 5, 6, 7)])

    def test_split_keeps_later_exclusions(self) -> None:
        events = delete_event((DAILY,), _occurrence((DAILY,), 6), "single")
        thursday = _occurrence(events, 4)

        out = apply_following(events, thursday, _ms(2024, 1, 4, 8), _ms(2024, 1, 4, 9), new_id="d-split-1")

        self.assertEqual(_by_id(out, "d-split-1").excluded_dates, ("2024-01-06",))
        days = sorted(dt.datetime.fromtimestamp(e.start_ms / 1000, tz=UTC).day for e in resolve(out, WEEK))
        self.assertEqual(days, [1, 2, 3, 4, 5, 7])

    def test_following_on_the_anchor_hides_it(self) -> None:
        out = apply_following((DAILY,), DAILY, _ms(2024, 1, 1, 8), _ms(2024, 1, 1, 9), new_id="d-split-1")
        visible = resolve(out, WEEK)
        self.assertEqual(len(visible), 7)
        self.assertTrue(all(dt.datetime.fromtimestamp(e.start_ms / 1000, tz=UTC).hour == 8 for e in visible))


class TestAllEditContract(unittest.TestCase):
    def test_all_consolidates_the_group(self) -> None:
        friday = _occurrence((DAILY,), 5)
        split = apply_following((DAILY,), friday, _ms(2024, 1, 5, 14), _ms(2024, 1, 5, 15), new_id="d-split-1")
        wednesday = _occurrence(split, 3)

        out = apply_all(split, wednesday, _ms(2024, 1, 3, 11), _ms(2024, 1, 3, 12, 30))

        self.assertEqual(len(out), 1)
        anchor = out[0]
        self.assertEqual(anchor.id, "d")
        self.assertEqual(anchor.recurrence, "FREQ=DAILY")
        self.assertEqual(anchor.excluded_dates, ())
        self.assertEqual((anchor.start_ms, anchor.end_ms), (_ms(2024, 1, 1, 11), _ms(2024, 1, 1, 12, 30)))

    def test_all_drops_exceptions_and_keeps_other_events(self) -> None:
        other = CalendarEvent(id="lunch", start_ms=_ms(2024, 1, 2, 12), end_ms=_ms(2024, 1, 2, 13))
        tuesday = _occurrence((DAILY,), 2)
        events = apply_single((DAILY, other), tuesday, _ms(2024, 1, 2, 14), _ms(2024, 1, 2, 15), new_id="d-exception-1")

        out = apply_all(events, _occurrence(events, 4), _ms(2024, 1, 4, 10), _ms(2024, 1, 4, 11))
        self.assertEqual([e.id for e in out], ["d", "lunch"])
        self.assertEqual(_by_id(out, "d").excluded_dates, ())


class TestDeleteContract(unittest.TestCase):
    def test_non_recurring_event_is_removed(self) -> None:
        lunch = CalendarEvent(id="lunch", start_ms=_ms(2024, 1, 2, 12), end_ms=_ms(2024, 1, 2, 13))
        self.assertEqual(delete_event((DAILY, lunch), lunch), (DAILY,))

    def test_single_excludes_the_day(self) -> None:
        out = delete_event((DAILY,), _occurrence((DAILY,), 3), "single")
        self.assertEqual(out[0].excluded_dates, ("2024-01-03",))
        self.assertEqual(len(resolve(out, WEEK)), 6)

    def test_single_removes_an_exception(self) -> None:
        events = apply_single((DAILY,), _occurrence((DAILY,), 2), _ms(2024, 1, 2, 14), _ms(2024, 1, 2, 15), new_id="x1")
        out = delete_event(events, _by_id(events, "x1"), "single")
        self.assertEqual([e.id for e in out], ["d"])
        self.assertEqual(out[0].excluded_dates, ("2024-01-02",))

    def test_following_truncates_the_series(self) -> None:
        out = delete_event((DAILY,), _occurrence((DAILY,), 4), "following")
        self.assertEqual(out[0].recurrence, "FREQ=DAILY;UNTIL=20240103T100000Z")
        self.assertEqual(len(resolve(out, WEEK)), 3)

    def test_following_from_the_anchor_removes_the_series(self) -> None:
        self.assertEqual(delete_event((DAILY,), DAILY, "following"), ())

    def test_all_removes_every_group_member(self) -> None:
        lunch = CalendarEvent(id="lunch", start_ms=_ms(2024, 1, 2, 12), end_ms=_ms(2024, 1, 2, 13))
        events = apply_single((DAILY, lunch), _occurrence((DAILY,), 2), _ms(2024, 1, 2, 14), _ms(2024, 1, 2, 15), new_id="x1")
        events = apply_following(events, _occurrence(events, 5), _ms(2024, 1, 5, 9), _ms(2024, 1, 5, 10), new_id="s1")
        self.assertEqual({e.id for e in events}, {"d", "lunch", "x1", "s1"})

        out = delete_event(events, _occurrence(events, 6, hh=9), "all")
        self.assertEqual([e.id for e in out], ["lunch"])

    def test_unknown_scope_raises(self) -> None:
        with self.assertRaises(ValueError):
            delete_event((DAILY,), DAILY, "sometimes")


class TestDuplicatePasteContract(unittest.TestCase):
    LUNCH = CalendarEvent(id="lunch", title="Lunch", start_ms=_ms(2024, 1, 2, 12), end_ms=_ms(2024, 1, 2, 13), extra={"color": "green"})

    def test_duplicate_lands_right_after_the_original(self) -> None:
        out = duplicate_event((DAILY, self.LUNCH), self.LUNCH, new_id="lunch-copy")
        self.assertEqual([e.id for e in out], ["d", "lunch", "lunch-copy"])

        dup = out[-1]
        self.assertEqual(dup.title, "Lunch (copy)")
        self.assertEqual((dup.start_ms, dup.end_ms), (_ms(2024, 1, 2, 13), _ms(2024, 1, 2, 14)))
        self.assertEqual(dup.extra, {"color": "green"})

    def test_duplicating_an_occurrence_gives_a_one_off_event(self) -> None:
        wednesday = _occurrence((DAILY,), 3)
        dup = duplicate_event((DAILY,), wednesday, new_id="x")[-1]

        self.assertEqual(dup.kind, KIND_BASE)
        self.assertIsNone(dup.recurrence)
        self.assertIsNone(dup.parent_id)
        self.assertIsNone(dup.recurrence_group_id)
        self.assertEqual((dup.start_ms, dup.end_ms), (_ms(2024, 1, 3, 11), _ms(2024, 1, 3, 12)))

    def test_paste_keeps_the_duration(self) -> None:
        out = paste_event((self.LUNCH,), self.LUNCH, _ms(2024, 1, 4, 9), new_id="p1")
        self.assertEqual([e.id for e in out], ["lunch", "p1"])
        self.assertEqual((out[1].start_ms, out[1].end_ms), (_ms(2024, 1, 4, 9), _ms(2024, 1, 4, 10)))

    def test_cut_occurrence_is_excluded_from_its_series(self) -> None:
        wednesday = _occurrence((DAILY,), 3)
        out = paste_event((DAILY,), wednesday, _ms(2024, 1, 3, 15), new_id="p1", cut=True)

        self.assertEqual(_by_id(out, "d").excluded_dates, ("2024-01-03",))
        self.assertIsNone(_by_id(out, "p1").recurrence)
        self.assertEqual(len(resolve(out, WEEK)), 7)

    def test_cut_series_moves_as_a_new_series(self) -> None:
        out = paste_event((DAILY,), DAILY, _ms(2024, 1, 2, 8), new_id="p1", cut=True)

        self.assertEqual([e.id for e in out], ["p1"])
        self.assertEqual(out[0].recurrence, "FREQ=DAILY")
        self.assertTrue(out[0].is_recurrence_base)
        self.assertEqual(len(resolve(out, WEEK)), 6)

    def test_events_without_a_span_are_rejected(self) -> None:
        broken = CalendarEvent(id="b", start_ms=None, end_ms=None)
        with self.assertRaises(ValueError):
            duplicate_event((broken,), broken, new_id="x")
        with self.assertRaises(ValueError):
            paste_event((broken,), broken, 0, new_id="x")


if __name__ == "__main__":
    unittest.main(verbosity=2)
