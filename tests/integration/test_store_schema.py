"""
Schema contract: migrations apply once, create the coordination tables,
and busy stores surface as StoreBusyError.
"""

import sqlite3

import pytest

from hive.errors import MigrationError, StoreBusyError
from hive.lib import store
from hive.lib.store import migrations

REQUIRED = {
    "projects": {"id", "slug", "human_key", "created_at"},
    "agents": {"id", "project_id", "name", "program", "model", "task_description",
               "inception_ts", "last_active_ts"},
    "messages": {"id", "project_id", "sender_id", "thread_id", "subject", "body", "importance",
                 "ack_required", "created_ts", "expires_ts"},
    "message_recipients": {"message_id", "agent_id", "kind", "read_ts", "ack_ts"},
    "file_reservations": {"id", "project_id", "agent_id", "path_pattern", "exclusive", "reason",
                          "created_ts", "expires_ts", "released_ts"},
}  # fmt: skip


def _columns(conn, table):
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def test_required_tables_and_columns(test_store):
    conn = store.ensure()
    for table, columns in REQUIRED.items():
        assert columns <= _columns(conn, table), table


def test_views_and_fts_exist(test_store):
    conn = store.ensure()
    names = {
        row[0]
        for row in conn.execute("SELECT name FROM sqlite_master WHERE type IN ('view', 'table')")
    }
    assert {"active_reservations", "unread_messages", "pending_acks", "messages_fts"} <= names


def test_migrations_recorded_once(test_store):
    conn = store.ensure()
    applied = [row[0] for row in conn.execute("SELECT name FROM _migrations ORDER BY name")]
    assert applied == ["001_initial", "002_views"]

    migrations.migrate(conn, migrations.load_migrations("hive.core"))
    again = [row[0] for row in conn.execute("SELECT name FROM _migrations ORDER BY name")]
    assert again == applied


def test_wal_mode(test_store):
    mode = store.ensure().execute("PRAGMA journal_mode").fetchone()[0]
    assert mode.lower() == "wal"


def test_row_losing_migration_is_refused(tmp_path):
    conn = store.connect(tmp_path / "m.db")
    conn.executescript("CREATE TABLE notes (id INTEGER PRIMARY KEY); INSERT INTO notes VALUES (1);")

    with pytest.raises(MigrationError, match="notes"):
        migrations.migrate(conn, [("001_wipe", "DELETE FROM notes;")])
    conn.close()


def test_transaction_rolls_back_on_error(test_store):
    with pytest.raises(RuntimeError):
        with store.transaction() as conn:
            conn.execute(
                "INSERT INTO projects (slug, human_key, created_at) VALUES ('x', 'x', 'now')"
            )
            raise RuntimeError("boom")

    assert store.ensure().execute("SELECT COUNT(*) FROM projects").fetchone()[0] == 0


def test_atomic_gives_up_with_store_busy(test_store, monkeypatch):
    monkeypatch.setattr("hive.lib.store.connection.time.sleep", lambda s: None)
    attempts = []

    def locked(conn):
        attempts.append(1)
        raise sqlite3.OperationalError("database is locked")

    with pytest.raises(StoreBusyError):
        store.atomic(locked)
    assert len(attempts) == 3


def test_atomic_does_not_retry_other_errors(test_store):
    attempts = []

    def broken(conn):
        attempts.append(1)
        raise sqlite3.OperationalError("no such table: nope")

    with pytest.raises(sqlite3.OperationalError):
        store.atomic(broken)
    assert attempts == [1]
