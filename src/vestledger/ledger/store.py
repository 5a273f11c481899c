from __future__ import annotations

import os
import sqlite3
import threading
from typing import List

from ..events.schema import EventEnvelope


DDL = """
CREATE TABLE IF NOT EXISTS ledger_events (
  sequence INTEGER,
  correlation_id TEXT,
  event_type TEXT,
  asset_id TEXT,
  recipient TEXT,
  ts INTEGER,
  json TEXT
);
"""


class SQLiteJournal:
    """Append-only event journal; callable, so it can be passed as a publisher.

    The full envelope is stored as JSON, which keeps amounts as exact
    integers regardless of size.
    """

    def __init__(self, path: str = "data/journal.sqlite"):
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self.path = path
        self._lock = threading.Lock()
        with sqlite3.connect(self.path) as con:
            con.execute(DDL)

    def __call__(self, env: EventEnvelope) -> None:
        self.append(env)

    def append(self, env: EventEnvelope) -> None:
        evt = env.event
        with self._lock, sqlite3.connect(self.path) as con:
            con.execute(
                "INSERT INTO ledger_events(sequence,correlation_id,event_type,asset_id,recipient,ts,json) VALUES (?,?,?,?,?,?,?)",
                (
                    env.sequence,
                    env.correlation_id,
                    evt.event_type,
                    evt.asset_id,
                    evt.recipient,
                    evt.ts,
                    env.model_dump_json(),
                ),
            )

    def load(self) -> List[EventEnvelope]:
        with self._lock, sqlite3.connect(self.path) as con:
            rows = con.execute("SELECT json FROM ledger_events ORDER BY sequence, rowid").fetchall()
        return [EventEnvelope.model_validate_json(r[0]) for r in rows]
