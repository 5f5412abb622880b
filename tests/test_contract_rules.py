from __future__ import annotations

import datetime as dt
import unittest

from chronogrid.rules import (
    FREQ_DAILY,
    FREQ_MONTHLY,
    FREQ_WEEKLY,
    add_months,
    add_years,
    parse_rule,
    period_before,
    strip_until,
    with_until,
)

UTC = dt.timezone.utc


def _ms(y: int, m: int, d: int, hh: int = 0, mm: int = 0, ss: int = 0) -> int:
    return int(dt.datetime(y, m, d, hh, mm, ss, tzinfo=UTC).timestamp() * 1000)


class TestRuleParsingContract(unittest.TestCase):
    def test_parses_supported_tokens(self) -> None:
        r = parse_rule("FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE")
        self.assertIsNotNone(r)
        assert r is not None
        self.assertEqual(r.freq, FREQ_WEEKLY)
        self.assertEqual(r.interval, 2)
        self.assertEqual(r.by_day, (0, 2))
        self.assertIsNone(r.until_ms)

    def test_absent_none_and_unknown_rules_mean_no_recurrence(self) -> None:
        for text in (None, "", "   ", "none", "NONE", "FREQ=HOURLY", "garbage"):
            self.assertIsNone(parse_rule(text), text)

    def test_interval_below_one_is_treated_as_one(self) -> None:
        r = parse_rule("FREQ=DAILY;INTERVAL=0")
        assert r is not None
        self.assertEqual(r.interval, 1)

    def test_until_is_a_utc_instant(self) -> None:
        r = parse_rule("FREQ=DAILY;UNTIL=20240105T235959Z")
        assert r is not None
        self.assertEqual(r.freq, FREQ_DAILY)
        self.assertEqual(r.until_ms, _ms(2024, 1, 5, 23, 59, 59))

    def test_unknown_tokens_are_ignored(self) -> None:
        r = parse_rule("FREQ=MONTHLY;WKST=SU;X-CUSTOM=1")
        assert r is not None
        self.assertEqual(r.freq, FREQ_MONTHLY)
        self.assertEqual(r.interval, 1)


class TestUntilRewriteContract(unittest.TestCase):
    def test_with_until_replaces_existing_bound(self) -> None:
        out = with_until("FREQ=DAILY;UNTIL=20240101T000000Z", _ms(2024, 2, 1, 9))
        self.assertEqual(out, "FREQ=DAILY;UNTIL=20240201T090000Z")

    def test_strip_until_keeps_other_tokens(self) -> None:
        self.assertEqual(strip_until("FREQ=DAILY;UNTIL=20240101T000000Z;INTERVAL=2"), "FREQ=DAILY;INTERVAL=2")
        self.assertEqual(strip_until("UNTIL=20240101T000000Z;FREQ=DAILY"), "FREQ=DAILY")
        self.assertEqual(strip_until(None), "")


class TestCalendarArithmeticContract(unittest.TestCase):
    def test_add_months_skips_missing_days(self) -> None:
        self.assertIsNone(add_months(dt.date(2024, 1, 31), 1))
        self.assertEqual(add_months(dt.date(2024, 1, 31), 2), dt.date(2024, 3, 31))
        self.assertEqual(add_months(dt.date(2024, 11, 15), 3), dt.date(2025, 2, 15))

    def test_add_years_skips_feb_29_outside_leap_years(self) -> None:
        self.assertIsNone(add_years(dt.date(2024, 2, 29), 1))
        self.assertEqual(add_years(dt.date(2024, 2, 29), 4), dt.date(2028, 2, 29))

    def test_period_before_uses_the_rule_step(self) -> None:
        daily = parse_rule("FREQ=DAILY")
        biweekly = parse_rule("FREQ=WEEKLY;INTERVAL=2")
        monthly = parse_rule("FREQ=MONTHLY")
        assert daily and biweekly and monthly

        self.assertEqual(period_before(_ms(2024, 1, 10, 9), daily, UTC), _ms(2024, 1, 9, 9))
        self.assertEqual(period_before(_ms(2024, 1, 29, 9), biweekly, UTC), _ms(2024, 1, 15, 9))
        # Clamped: there is no Feb 31.
        self.assertEqual(period_before(_ms(2024, 3, 31, 9), monthly, UTC), _ms(2024, 2, 29, 9))


if __name__ == "__main__":
    unittest.main(verbosity=2)
