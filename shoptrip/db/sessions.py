"""Trip session persistence backed by SQLite."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from ..session import SessionStore, TripSession
from .schema import ensure_schema


class SQLiteSessionStore(SessionStore):
    """Stores one serialized TripSession per list id in trip_sessions."""

    def __init__(self, db_path: str | Path = "~/.config/shoptrip/sessions.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def load(self, list_id: str) -> TripSession | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT payload FROM trip_sessions WHERE list_id = ?",
            (list_id,),
        ).fetchone()
        if row is None:
            return None
        return TripSession.from_json(row["payload"])

    def save(self, list_id: str, session: TripSession) -> None:
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO trip_sessions
               (list_id, payload, is_completed, session_timestamp)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(list_id) DO UPDATE SET
                 payload=excluded.payload,
                 is_completed=excluded.is_completed,
                 session_timestamp=excluded.session_timestamp,
                 updated_at=datetime('now', 'localtime')""",
            (list_id, session.to_json(), int(session.is_completed), session.timestamp),
        )
        conn.commit()

    def clear(self, list_id: str) -> None:
        conn = self._get_conn()
        conn.execute("DELETE FROM trip_sessions WHERE list_id = ?", (list_id,))
        conn.commit()

    def list_sessions(self) -> list[dict]:
        """Return a summary row for each stored session, newest first."""
        conn = self._get_conn()
        rows = conn.execute(
            """SELECT list_id, is_completed, session_timestamp, updated_at
               FROM trip_sessions ORDER BY session_timestamp DESC"""
        ).fetchall()
        return [dict(r) for r in rows]
