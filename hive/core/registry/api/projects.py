"""Project operations: get-or-create by human key."""

import re
import sqlite3
from pathlib import PurePath

from hive.core.models import Project
from hive.errors import InvalidInputError, NotFoundError
from hive.lib import clock, paths, store
from hive.lib.store import from_row


def slugify(human_key: str) -> str:
    """Last path component, lowercased, with anything outside [a-z0-9_-] as '-'."""
    base = PurePath(human_key.rstrip("/\\") or human_key).name or human_key
    slug = re.sub(r"[^a-z0-9_-]", "-", base.lower()).strip("-")
    return slug or "project"


def _key(human_key: str | None) -> str:
    key = human_key or paths.project_key()
    if not key or not key.strip():
        raise InvalidInputError("Project key cannot be empty")
    return key


def find(conn: sqlite3.Connection, human_key: str | None = None) -> Project | None:
    """Match by human key first, then by slug."""
    key = _key(human_key)
    row = conn.execute(
        "SELECT id, slug, human_key, created_at FROM projects WHERE human_key = ? OR slug = ? "
        "ORDER BY human_key = ? DESC LIMIT 1",
        (key, key, key),
    ).fetchone()
    return from_row(row, Project) if row else None


def get_by_id(conn: sqlite3.Connection, project_id: int) -> Project:
    row = conn.execute(
        "SELECT id, slug, human_key, created_at FROM projects WHERE id = ?", (project_id,)
    ).fetchone()
    if not row:
        raise NotFoundError(f"Unknown project id: {project_id}")
    return from_row(row, Project)


def require(conn: sqlite3.Connection, human_key: str | None = None) -> Project:
    project = find(conn, human_key)
    if not project:
        raise NotFoundError(f"Unknown project: {_key(human_key)}")
    return project


def ensure_in(conn: sqlite3.Connection, human_key: str | None = None) -> Project:
    """Get or create inside an open transaction."""
    key = _key(human_key)
    row = conn.execute(
        "SELECT id, slug, human_key, created_at FROM projects WHERE human_key = ?", (key,)
    ).fetchone()
    if row:
        return from_row(row, Project)

    base = slugify(key)
    slug = base
    suffix = 2
    while conn.execute("SELECT 1 FROM projects WHERE slug = ?", (slug,)).fetchone():
        slug = f"{base}-{suffix}"
        suffix += 1

    created_at = clock.now_iso()
    cursor = conn.execute(
        "INSERT INTO projects (slug, human_key, created_at) VALUES (?, ?, ?)",
        (slug, key, created_at),
    )
    return Project(id=cursor.lastrowid, slug=slug, human_key=key, created_at=created_at)


def ensure_project(human_key: str | None = None) -> Project:
    """Get or create a project; defaults to PROJECT_KEY or the current directory."""
    return store.atomic(lambda conn: ensure_in(conn, human_key))


def get_project(human_key: str | None = None) -> Project | None:
    with store.ensure() as conn:
        return find(conn, human_key)


def list_projects() -> list[Project]:
    with store.ensure() as conn:
        rows = conn.execute(
            "SELECT id, slug, human_key, created_at FROM projects ORDER BY created_at"
        ).fetchall()
        return [from_row(row, Project) for row in rows]
