import logging
import sqlite3
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import fields
from typing import Any, TypeVar

from hive.errors import StoreBusyError
from hive.lib import config, paths
from hive.lib.store import migrations
from hive.lib.store.sqlite import connect, is_busy

logger = logging.getLogger(__name__)

T = TypeVar("T")

Row = sqlite3.Row

_connections = threading.local()
_migrated: set[str] = set()
_migrate_lock = threading.Lock()


def from_row(row: dict[str, Any] | Any, dataclass_type: type[T]) -> T:
    """Convert dict-like row to dataclass instance.

    Backend-agnostic: works with sqlite3.Row, dict, or any dict-like object.
    """
    field_names = {f.name for f in fields(dataclass_type)}
    row_dict = dict(row) if not isinstance(row, dict) else row
    kwargs = {key: row_dict[key] for key in field_names if key in row_dict}
    return dataclass_type(**kwargs)


def ensure() -> sqlite3.Connection:
    """Ensure the coordination store exists with migrations applied.

    Returns a connection cached per thread and per store path, so worker
    threads never share a connection.
    """
    db_path = paths.store_path()
    cache_key = str(db_path)

    cache = _cache()
    conn = cache.get(cache_key)
    if conn is not None:
        return conn

    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = connect(db_path, busy_timeout_ms=int(config.get("busy_timeout_ms")))

    with _migrate_lock:
        if cache_key not in _migrated:
            migrations.ensure_schema(conn, migrations.load_migrations("hive.core"))
            _migrated.add(cache_key)

    cache[cache_key] = conn
    return conn


@contextmanager
def transaction() -> Iterator[sqlite3.Connection]:
    """BEGIN IMMEDIATE ... COMMIT, rolling back on any exception.

    IMMEDIATE takes the write lock up front so a read-then-write sequence
    inside the block cannot interleave with another writer.
    """
    conn = ensure()
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    else:
        conn.execute("COMMIT")


def atomic(operation: Callable[[sqlite3.Connection], T]) -> T:
    """Run operation in one transaction, retrying only on lock contention.

    Raises StoreBusyError once busy_retries attempts are exhausted.
    """
    retries = max(1, int(config.get("busy_retries")))
    for attempt in range(1, retries + 1):
        try:
            with transaction() as conn:
                return operation(conn)
        except sqlite3.OperationalError as err:
            if not is_busy(err):
                raise
            if attempt == retries:
                raise StoreBusyError(
                    f"Store busy after {retries} attempt(s): {paths.store_path()}"
                ) from err
            logger.warning(f"Store busy (attempt {attempt}/{retries}), retrying")
            time.sleep(0.1 * attempt)
    raise StoreBusyError(f"Store busy: {paths.store_path()}")


def _cache() -> dict[str, sqlite3.Connection]:
    cache = getattr(_connections, "cache", None)
    if cache is None:
        cache = {}
        _connections.cache = cache
    return cache


def close_all() -> None:
    """Close this thread's cached connections."""
    cache = _cache()
    for conn in cache.values():
        conn.close()
    cache.clear()


def _reset_for_testing() -> None:
    close_all()
    with _migrate_lock:
        _migrated.clear()
    config.clear_cache()
