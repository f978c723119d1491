"""Database schema migrations and initialization."""

import logging
import sqlite3
from collections.abc import Callable

from hive.errors import MigrationError
from hive.lib import paths

logger = logging.getLogger(__name__)


def load_migrations(module_path: str) -> list[tuple[str, str]]:
    """Load migrations from a package's migrations/ directory.

    Reads numbered .sql files (001_*.sql, 002_*.sql, ...) and returns them
    as (name, sql_content) tuples in lexical order.

    Args:
        module_path: Module path like 'hive.core'
    """
    module_dir = paths.package_root()
    for part in module_path.split(".")[1:]:
        module_dir = module_dir / part
    migrations_dir = module_dir / "migrations"

    if not migrations_dir.exists():
        return []

    return [(sql_file.stem, sql_file.read_text()) for sql_file in sorted(migrations_dir.glob("*.sql"))]


def ensure_schema(conn: sqlite3.Connection, migs: list[tuple[str, str | Callable]]) -> None:
    """Apply pending migrations on an open connection."""
    if migs:
        migrate(conn, migs)


def migrate(conn: sqlite3.Connection, migs: list[tuple[str, str | Callable]]) -> None:
    """Apply migrations in order, each once, refusing any that lose rows."""
    conn.execute("CREATE TABLE IF NOT EXISTS _migrations (name TEXT PRIMARY KEY)")

    for name, migration in migs:
        applied = conn.execute("SELECT 1 FROM _migrations WHERE name = ?", (name,)).fetchone()
        if applied:
            continue
        try:
            tables = [
                row[0]
                for row in conn.execute(
                    "SELECT name FROM sqlite_master WHERE type='table' "
                    "AND name NOT LIKE '\\_%' ESCAPE '\\' AND name != 'sqlite_sequence' "
                    "AND name NOT LIKE '%_fts%'"
                ).fetchall()
            ]
            before = {t: _get_table_count(conn, t) for t in tables}

            if callable(migration):
                migration(conn)
            else:
                conn.executescript(migration)

            for table, count_before in before.items():
                _check_migration_safety(conn, table, count_before)

            conn.execute("INSERT OR IGNORE INTO _migrations (name) VALUES (?)", (name,))
            logger.info(f"Migration '{name}' applied")
        except (sqlite3.Error, ValueError) as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.error(f"Migration '{name}' failed: {e}")
            raise MigrationError(f"Migration '{name}' failed: {e}") from e


def _get_table_count(conn: sqlite3.Connection, table: str) -> int:
    try:
        result = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
        return result[0] if result else 0
    except sqlite3.OperationalError:
        return 0


def _check_migration_safety(conn: sqlite3.Connection, table: str, before: int) -> None:
    """Raise ValueError if a migration dropped rows from an existing table."""
    after = _get_table_count(conn, table)
    if after < before:
        raise ValueError(f"{table}: {before} rows before, {after} after")
