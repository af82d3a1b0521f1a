from __future__ import annotations

import json
from typing import Iterable, Optional, Protocol

from . import db as db_mod
from .logs import DailyLog
from .periods import LOCAL_TZ


class LogSource(Protocol):
    """Read side of the log store. Range slicing happens in the cache."""

    def fetch_all(self) -> list[DailyLog]: ...


class MemoryLogSource:
    def __init__(self, logs: Iterable[DailyLog] = ()) -> None:
        self._logs = list(logs)

    def fetch_all(self) -> list[DailyLog]:
        return list(self._logs)

    def add(self, log: DailyLog) -> None:
        self._logs.append(log)


class SqliteLogSource:
    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = db_path

    def fetch_all(self) -> list[DailyLog]:
        with db_mod.db(self.db_path) as conn:
            rows = conn.execute(
                "SELECT id, payload_json FROM daily_logs ORDER BY logged_at ASC"
            ).fetchall()

        out: list[DailyLog] = []
        for r in rows:
            payload = json.loads(r["payload_json"])
            payload["id"] = r["id"]
            out.append(DailyLog.model_validate(payload))
        return out

    def upsert_log(self, log: DailyLog) -> DailyLog:
        """Store one log per local day (replaces an existing log for that day)."""
        local_date = log.date.astimezone(LOCAL_TZ).date().isoformat()
        payload = log.model_dump(mode="json", exclude={"id"})
        now = db_mod.now_iso()

        with db_mod.db(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO daily_logs(local_date, logged_at, payload_json, updated_at)
                VALUES(?, ?, ?, ?)
                ON CONFLICT(local_date) DO UPDATE SET
                  logged_at=excluded.logged_at,
                  payload_json=excluded.payload_json,
                  updated_at=excluded.updated_at
                """,
                (local_date, db_mod.iso(log.date), db_mod.dumps_payload(payload), now),
            )
            row = conn.execute("SELECT id FROM daily_logs WHERE local_date = ?", (local_date,)).fetchone()

        return log.model_copy(update={"id": int(row["id"])})

    def count(self) -> int:
        with db_mod.db(self.db_path) as conn:
            return int(conn.execute("SELECT COUNT(*) AS c FROM daily_logs").fetchone()["c"])
