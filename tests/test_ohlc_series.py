import os
import sys
import unittest

import numpy as np

# Allow `import core.*` like the app does when running `python app/main.py`.
REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
APP_DIR = os.path.join(REPO_ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from core.charting.errors import PreconditionViolation, UnsupportedResolution
from core.charting.ohlc import OhlcBar, OhlcSeries, bars_from_rows
from core.charting.resolution import Resolution, TimeStamp

DAY_MS = 86_400_000
HOUR_MS = 3_600_000
# 2020-01-01 00:00 UTC
START_MS = 1_577_836_800_000


class OhlcSeriesTests(unittest.TestCase):
    def setUp(self) -> None:
        self.events = []
        self.series = OhlcSeries()
        self.series.add_listener(lambda series, idx: self.events.append((len(series), idx)))

    def test_first_extend_appends_everything(self):
        added = self.series.extend([OhlcBar(1, 10, 12, 9, 11), OhlcBar(2, 11, 13, 10, 12)])
        self.assertEqual(added, 2)
        self.assertEqual([b.period_key for b in self.series], [1, 2])
        self.assertEqual(self.events, [(2, 0)])

    def test_fold_then_append_reports_last_index(self):
        self.series.extend([OhlcBar(1, 10, 12, 9, 11)])
        self.events.clear()
        added = self.series.extend([OhlcBar(1, 11, 13, 8, 12), OhlcBar(2, 12, 15, 12, 14)])
        self.assertEqual(added, 1)
        self.assertEqual(self.series.bars[0].to_dict(), OhlcBar(1, 10, 13, 8, 12).to_dict())
        self.assertEqual(self.events, [(2, 0)])

    def test_samples_for_one_new_period_collapse_into_one_bar(self):
        self.series.extend([OhlcBar(1, 10, 12, 9, 11)])
        added = self.series.extend(
            [OhlcBar(2, 11, 12, 10, 11.5), OhlcBar(2, 11.5, 14, 11, 13), OhlcBar(3, 13, 13.5, 12, 13)]
        )
        self.assertEqual(added, 2)
        self.assertEqual(len(self.series), 3)
        self.assertEqual(self.series.bars[1].to_dict(), OhlcBar(2, 11, 14, 10, 13).to_dict())

    def test_no_change_does_not_notify(self):
        self.series.extend([OhlcBar(1, 10, 12, 9, 11)])
        self.events.clear()
        self.assertEqual(self.series.extend([]), 0)
        self.assertEqual(self.series.extend([OhlcBar(1, 11, 11, 11, 11)]), 0)
        self.assertEqual(self.events, [])

    def test_listener_errors_do_not_block_other_listeners(self):
        seen = []

        def broken(series, idx):
            raise RuntimeError("boom")

        self.series.add_listener(broken)
        self.series.add_listener(lambda series, idx: seen.append(idx))
        with self.assertLogs("core.charting.ohlc", level="ERROR"):
            with self.assertRaises(RuntimeError):
                self.series.extend([OhlcBar(1, 10, 12, 9, 11)])
        self.assertEqual(seen, [0])
        self.assertEqual(len(self.series), 1)

    def test_remove_listener(self):
        self.series.remove_listener(self.series._listeners[0])
        self.series.remove_listener(print)
        self.series.extend([OhlcBar(1, 10, 12, 9, 11)])
        self.assertEqual(self.events, [])

    def test_out_of_order_input_is_rejected_on_empty_series(self):
        with self.assertRaises(PreconditionViolation):
            self.series.extend([OhlcBar(2, 10, 12, 9, 11), OhlcBar(1, 10, 12, 9, 11)])
        self.assertEqual(len(self.series), 0)
        self.assertEqual(self.events, [])
        # The series is still usable afterwards.
        self.assertEqual(self.series.extend([OhlcBar(3, 10, 12, 9, 11)]), 1)

    def test_caller_bars_are_not_changed_by_later_folds(self):
        mine = OhlcBar(1, 10, 12, 9, 11)
        self.series.extend([mine])
        self.series.extend([OhlcBar(1, 11, 20, 5, 15)])
        self.assertEqual(mine.to_dict(), OhlcBar(1, 10, 12, 9, 11).to_dict())
        self.assertEqual(self.series.last.to_dict(), OhlcBar(1, 10, 20, 5, 15).to_dict())

    def test_initial_bars_are_copied(self):
        seed = OhlcBar(1, 10, 12, 9, 11)
        series = OhlcSeries(bars=[seed])
        series.extend([OhlcBar(1, 11, 13, 8, 12)])
        self.assertEqual(seed.high, 12)
        self.assertEqual(series.last.high, 13)

    def test_rejects_non_day_resolution(self):
        with self.assertRaises(UnsupportedResolution):
            OhlcSeries(Resolution.HOUR)

    def test_unsorted_initial_bars_raise(self):
        with self.assertRaises(PreconditionViolation):
            OhlcSeries(bars=[OhlcBar(2, 1, 1, 1, 1), OhlcBar(1, 1, 1, 1, 1)])


class BarsFromRowsTests(unittest.TestCase):
    def test_hourly_rows_fold_into_days(self):
        rows = [
            [START_MS, 10, 11, 9, 10.5, 100],
            [START_MS + HOUR_MS, 10.5, 12, 10, 11.5, 100],
            [START_MS + 2 * HOUR_MS, 11.5, 11.6, 8, 9, 100],
            [START_MS + DAY_MS, 9, 9.5, 8.5, 9.2, 100],
        ]
        bars = bars_from_rows(rows)
        day0 = TimeStamp.from_unix_ms(START_MS).elapsed_days
        self.assertEqual([b.period_key for b in bars], [day0, day0 + 1])
        self.assertEqual(bars[0].to_dict(), OhlcBar(day0, 10, 12, 8, 9).to_dict())
        self.assertEqual(bars[1].close, 9.2)

    def test_hour_resolution_keys(self):
        rows = np.array(
            [
                [START_MS, 10, 11, 9, 10.5, 1],
                [START_MS + 30 * 60_000, 10.5, 11.5, 10, 11, 1],
                [START_MS + HOUR_MS, 11, 12, 10.5, 11.5, 1],
            ],
            dtype=np.float64,
        )
        bars = bars_from_rows(rows, Resolution.HOUR)
        self.assertEqual(len(bars), 2)
        self.assertEqual(bars[1].period_key - bars[0].period_key, 1)
        self.assertEqual(bars[0].high, 11.5)

    def test_malformed_rows_are_skipped(self):
        rows = [
            [START_MS, 10, 11, 9],
            "junk",
            [START_MS, "x", 11, 9, 10, 1],
            [START_MS, 10, float("nan"), 9, 10, 1],
            [START_MS, 0, 11, 9, 10, 1],
            [START_MS, 10, 9, 11, 10, 1],
            [float("inf"), 10, 11, 9, 10, 1],
            [float("-inf"), 10, 11, 9, 10, 1],
            [START_MS, 10, 11, 9, 10.5],
        ]
        bars = bars_from_rows(rows)
        self.assertEqual(len(bars), 1)
        self.assertEqual(bars[0].close, 10.5)

    def test_out_of_order_rows_raise(self):
        rows = [[START_MS + DAY_MS, 10, 11, 9, 10, 1], [START_MS, 10, 11, 9, 10, 1]]
        with self.assertRaises(PreconditionViolation):
            bars_from_rows(rows)

    def test_unknown_resolution_raises(self):
        with self.assertRaises(UnsupportedResolution):
            bars_from_rows([], "day")


if __name__ == "__main__":
    unittest.main()
