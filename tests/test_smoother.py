from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from chart_pipeline import smoother
from chart_pipeline.periods import TimePeriod
from chart_pipeline.points import DataPoint, MetricDataType
from chart_pipeline.smoother import ProcessingConfig, SamplingStrategy

START = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _daily(values: list[float], metric_id: str = "m") -> list[DataPoint]:
    return [DataPoint(date=START + timedelta(days=i), value=v, metric_id=metric_id) for i, v in enumerate(values)]


class ProcessingConfigTests(unittest.TestCase):
    def test_short_periods_never_process(self) -> None:
        for period in (TimePeriod.WEEK, TimePeriod.MONTH):
            cfg = smoother.processing_config(period, 500)
            self.assertFalse(cfg.should_process)
            self.assertEqual(cfg.sampling_strategy, SamplingStrategy.NONE)

    def test_table(self) -> None:
        self.assertEqual(
            smoother.processing_config(TimePeriod.THREE_MONTH, 90),
            ProcessingConfig(True, 45, 0.15, SamplingStrategy.NONE),
        )
        self.assertEqual(
            smoother.processing_config(TimePeriod.THREE_MONTH, 101).sampling_strategy,
            SamplingStrategy.UNIFORM,
        )
        self.assertFalse(smoother.processing_config(TimePeriod.THREE_MONTH, 60).should_process)
        self.assertEqual(
            smoother.processing_config(TimePeriod.SIX_MONTH, 100),
            ProcessingConfig(True, 50, 0.2, SamplingStrategy.UNIFORM),
        )
        self.assertEqual(
            smoother.processing_config(TimePeriod.SIX_MONTH, 151).sampling_strategy,
            SamplingStrategy.TIME_BASED_GRID,
        )
        self.assertEqual(
            smoother.processing_config(TimePeriod.YEAR, 101),
            ProcessingConfig(True, 60, 0.25, SamplingStrategy.TIME_BASED_GRID),
        )
        self.assertEqual(
            smoother.processing_config(TimePeriod.ALL_TIME, 31),
            ProcessingConfig(True, 80, 0.3, SamplingStrategy.TIME_BASED_GRID),
        )
        self.assertFalse(smoother.processing_config(TimePeriod.ALL_TIME, 30).should_process)


class ProcessTests(unittest.TestCase):
    def test_empty(self) -> None:
        self.assertEqual(smoother.process([], TimePeriod.YEAR, MetricDataType.CONTINUOUS), [])

    def test_short_range_is_sorted_but_untouched(self) -> None:
        points = _daily([3, 9, 1, 4])
        out = smoother.process(list(reversed(points)), TimePeriod.WEEK, MetricDataType.CONTINUOUS)
        self.assertEqual(out, points)

    def test_binary_six_months_buckets_to_zero_or_one(self) -> None:
        points = _daily([1.0 if i % 3 == 0 else 0.0 for i in range(200)], metric_id="medication_x")

        out = smoother.process(points, TimePeriod.SIX_MONTH, MetricDataType.BINARY)

        self.assertEqual(len(out), 50)
        self.assertTrue(all(p.value in (0.0, 1.0) for p in out))
        self.assertEqual([p.date for p in out], sorted(p.date for p in out))
        self.assertTrue(all(p.metric_id == "medication_x" for p in out))
        self.assertGreaterEqual(out[0].date, points[0].date)
        self.assertLessEqual(out[-1].date, points[-1].date)

    def test_binary_majority_rounding(self) -> None:
        points = _daily([1.0, 1.0, 0.0, 0.0, 0.0, 0.0])
        out = smoother.bucket_binary(points, 2)
        self.assertEqual([p.value for p in out], [1.0, 0.0])
        # Bucket midpoints: span is 5 days split in two.
        self.assertEqual(out[0].date, START + timedelta(days=1.25))
        self.assertEqual(out[1].date, START + timedelta(days=3.75))

    def test_binary_single_instant(self) -> None:
        points = [DataPoint(date=START, value=v, metric_id="m") for v in (1.0, 1.0, 0.0)]
        out = smoother.bucket_binary(points, 10)
        self.assertEqual(len(out), 1)
        self.assertEqual(out[0].value, 1.0)
        self.assertEqual(out[0].date, START)

    def test_uniform_sampling_runs_before_smoothing(self) -> None:
        points = _daily([float(i % 5) for i in range(120)])

        out = smoother.process(points, TimePeriod.THREE_MONTH, MetricDataType.CONTINUOUS)

        # 120 // 45 == 2
        self.assertEqual(len(out), 60)
        self.assertEqual([p.date for p in out], [p.date for p in points[::2]])

    def test_time_grid_path_keeps_dates(self) -> None:
        points = _daily([float(i % 7) for i in range(300)])

        out = smoother.process(points, TimePeriod.YEAR, MetricDataType.CONTINUOUS)

        self.assertLessEqual(len(out), 60)
        source_dates = {p.date for p in points}
        self.assertTrue(all(p.date in source_dates for p in out))
        self.assertEqual(out[0].date, points[0].date)
        self.assertEqual(out[-1].date, points[-1].date)


class SamplingTests(unittest.TestCase):
    def test_uniform_stride(self) -> None:
        points = _daily([float(i) for i in range(10)])
        self.assertEqual(smoother.sample_uniform(points, 3), points[::3])
        self.assertEqual(smoother.sample_uniform(points, 50), points)

    def test_time_grid_short_series_unchanged(self) -> None:
        points = _daily([1.0, 2.0, 3.0])
        self.assertEqual(smoother.sample_time_grid(points, 10), points)

    def test_time_grid_dedupes_sparse_edges(self) -> None:
        points = [
            DataPoint(date=START + timedelta(days=d), value=float(d), metric_id="m")
            for d in (0, 1, 2, 3, 100)
        ]
        out = smoother.sample_time_grid(points, 4)
        # Anchors at day 0, 33.3, 66.7 and 100; day 100 is nearest to the last two.
        self.assertEqual([p.value for p in out], [0.0, 3.0, 100.0])

    def test_time_grid_hits_target_on_dense_series(self) -> None:
        points = _daily([0.0] * 200)
        out = smoother.sample_time_grid(points, 50)
        self.assertEqual(len(out), 50)
        self.assertEqual(len({p.id for p in out}), 50)


class LoessTests(unittest.TestCase):
    def test_tricube(self) -> None:
        self.assertEqual(smoother.tricube(0.0), 1.0)
        self.assertEqual(smoother.tricube(1.0), 0.0)
        self.assertEqual(smoother.tricube(-2.0), 0.0)
        self.assertAlmostEqual(smoother.tricube(0.5), 0.669921875)

    def test_two_points_unchanged(self) -> None:
        points = _daily([1.0, 9.0])
        self.assertEqual(smoother.loess_smooth(points, 0.3), points)

    def test_constant_series_stays_constant(self) -> None:
        points = _daily([4.0] * 30)
        out = smoother.loess_smooth(points, 0.3)
        self.assertEqual([p.date for p in out], [p.date for p in points])
        for p in out:
            self.assertAlmostEqual(p.value, 4.0)

    def test_spike_is_damped(self) -> None:
        values = [0.0] * 20
        values[10] = 10.0
        out = smoother.loess_smooth(_daily(values), 0.3)
        self.assertLess(out[10].value, 10.0)
        self.assertGreater(out[10].value, 0.0)
        self.assertGreater(out[9].value, 0.0)
        self.assertEqual(out[0].value, 0.0)


if __name__ == "__main__":
    unittest.main()
