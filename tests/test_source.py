from __future__ import annotations

import os
import tempfile
import unittest
from datetime import datetime, timedelta, timezone

from chart_pipeline.db import init_db
from chart_pipeline.logs import DailyLog, SymptomRating
from chart_pipeline.source import MemoryLogSource, SqliteLogSource


class SqliteLogSourceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self._tmp.name, "logs.db")
        init_db(self.db_path)
        self.source = SqliteLogSource(self.db_path)
        self.now = datetime.now(timezone.utc)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_upsert_and_fetch(self) -> None:
        saved = self.source.upsert_log(
            DailyLog(
                date=self.now - timedelta(days=1),
                mood=6,
                meals=["Oats"],
                symptom_ratings=[SymptomRating(symptom_id=1, symptom_name="Fatigue", rating=3)],
            )
        )
        self.assertIsNotNone(saved.id)

        logs = self.source.fetch_all()
        self.assertEqual(len(logs), 1)
        self.assertEqual(logs[0].id, saved.id)
        self.assertEqual(logs[0].mood, 6)
        self.assertEqual(logs[0].meals, ["Oats"])
        self.assertEqual(logs[0].symptom_ratings[0].symptom_name, "Fatigue")
        self.assertEqual(logs[0].date, saved.date)

    def test_one_log_per_local_day(self) -> None:
        first = self.source.upsert_log(DailyLog(date=self.now, mood=3))
        second = self.source.upsert_log(DailyLog(date=self.now, mood=8))

        self.assertEqual(first.id, second.id)
        self.assertEqual(self.source.count(), 1)
        self.assertEqual(self.source.fetch_all()[0].mood, 8)

    def test_fetch_is_ordered_by_date(self) -> None:
        for d in (2, 0, 5):
            self.source.upsert_log(DailyLog(date=self.now - timedelta(days=d), mood=d))
        self.assertEqual([log.mood for log in self.source.fetch_all()], [5, 2, 0])


class MemoryLogSourceTests(unittest.TestCase):
    def test_fetch_returns_a_copy(self) -> None:
        source = MemoryLogSource()
        source.add(DailyLog(date=datetime(2025, 1, 1, tzinfo=timezone.utc), mood=1))
        logs = source.fetch_all()
        logs.clear()
        self.assertEqual(len(source.fetch_all()), 1)


if __name__ == "__main__":
    unittest.main()
