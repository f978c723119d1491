"""Full-text search over message subjects and bodies (FTS5)."""

import logging
import sqlite3

from hive.core.models import Message
from hive.core.registry.api import projects
from hive.errors import InvalidInputError
from hive.lib import store

from .messages import SELECT_MESSAGES, attach_recipients, row_to_message

logger = logging.getLogger(__name__)


def search(
    query: str, thread_id: str | None = None, project: str | None = None, limit: int = 50
) -> list[Message]:
    """FTS5 match over subject and body, best match first.

    The query uses FTS5 syntax (`auth AND token`, `"exact phrase"`, `refact*`).
    """
    if not query or not query.strip():
        raise InvalidInputError("Search query cannot be empty")

    with store.ensure() as conn:
        proj = projects.find(conn, project)
        if not proj:
            return []
        sql = (
            f"{SELECT_MESSAGES} JOIN messages_fts ON messages_fts.rowid = m.id "
            "WHERE messages_fts MATCH ? AND m.project_id = ?"
        )
        params: list = [query, proj.id]
        if thread_id:
            sql += " AND (m.thread_id = ? OR CAST(m.id AS TEXT) = ?)"
            params.extend([thread_id, thread_id])
        sql += " ORDER BY bm25(messages_fts), m.created_ts DESC LIMIT ?"
        params.append(int(limit))
        try:
            rows = conn.execute(sql, params).fetchall()
        except sqlite3.OperationalError as e:
            if store.is_busy(e):
                raise
            logger.debug(f"Rejected search query {query!r}: {e}")
            raise InvalidInputError(f"Invalid search query {query!r}: {e}") from e
        return attach_recipients(conn, [row_to_message(row) for row in rows])
