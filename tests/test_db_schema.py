"""Tests for the session database schema."""

from shoptrip.db.schema import _SCHEMA_VERSION, ensure_schema


def _version(conn):
    return conn.execute("SELECT version FROM schema_version").fetchone()["version"]


def _columns(conn, table):
    return {row["name"] for row in conn.execute(f"PRAGMA table_info({table})")}


class TestFreshDatabase:
    def test_tables_and_version(self, tmp_path):
        conn = ensure_schema(tmp_path / "sessions.db")
        names = {
            row["name"]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        assert {"trip_sessions", "schema_version"} <= names
        assert _version(conn) == _SCHEMA_VERSION
        conn.close()

    def test_session_columns(self, tmp_path):
        conn = ensure_schema(tmp_path / "sessions.db")
        assert _columns(conn, "trip_sessions") == {
            "list_id",
            "payload",
            "is_completed",
            "session_timestamp",
            "updated_at",
        }
        conn.close()

    def test_nested_directory_created(self, tmp_path):
        db_path = tmp_path / "a" / "b" / "sessions.db"
        ensure_schema(db_path).close()
        assert db_path.exists()

    def test_wal_journal(self, tmp_path):
        conn = ensure_schema(tmp_path / "sessions.db")
        assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
        conn.close()


class TestReopen:
    def test_reopening_is_a_no_op(self, tmp_path):
        db_path = tmp_path / "sessions.db"
        ensure_schema(db_path).close()
        conn = ensure_schema(db_path)
        assert _version(conn) == _SCHEMA_VERSION
        assert conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0] == 1
        conn.close()

    def test_existing_rows_survive_reopen(self, tmp_path):
        db_path = tmp_path / "sessions.db"
        conn = ensure_schema(db_path)
        conn.execute("INSERT INTO trip_sessions (list_id, payload) VALUES ('42', '{}')")
        conn.commit()
        conn.close()

        conn = ensure_schema(db_path)
        row = conn.execute("SELECT payload, updated_at FROM trip_sessions").fetchone()
        assert row["payload"] == "{}"
        assert row["updated_at"]
        conn.close()
