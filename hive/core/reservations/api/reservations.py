"""Advisory file reservations: reserve, release, renew, list, check."""

import logging
import sqlite3
from collections.abc import Iterable

from hive.core.models import FileReservation
from hive.core.registry import api as registry
from hive.core.registry.api import projects
from hive.errors import Conflict, ConflictError, InvalidInputError
from hive.lib import clock, config, store
from hive.lib.store import from_row

from .overlap import overlaps, validate_pattern

logger = logging.getLogger(__name__)

MIN_TTL_SECONDS = 60

_SELECT = (
    "SELECT r.id, r.project_id, r.agent_id, r.path_pattern, r.exclusive, r.reason, "
    "r.created_ts, r.expires_ts, r.released_ts, a.name AS agent_name "
    "FROM file_reservations r JOIN agents a ON a.id = r.agent_id"
)


def _row_to_reservation(row: store.Row) -> FileReservation:
    reservation = from_row(row, FileReservation)
    reservation.exclusive = bool(reservation.exclusive)
    return reservation


def _active(
    conn: sqlite3.Connection, project_id: int | None, now: str
) -> list[FileReservation]:
    """Active rows of one project, or of every project when project_id is None."""
    query = f"{_SELECT} WHERE r.released_ts IS NULL AND r.expires_ts > ?"
    params: list = [now]
    if project_id is not None:
        query += " AND r.project_id = ?"
        params.append(project_id)
    query += " ORDER BY r.created_ts DESC, r.id DESC"
    return [_row_to_reservation(row) for row in conn.execute(query, params).fetchall()]


def _patterns(patterns: Iterable[str]) -> list[str]:
    """Validate, normalize and dedupe while keeping request order."""
    if isinstance(patterns, str):
        patterns = [patterns]
    normalized = list(dict.fromkeys(validate_pattern(p) for p in patterns))
    if not normalized:
        raise InvalidInputError("At least one path pattern is required")
    return normalized


def _blockers(pattern: str, exclusive: bool, held: list[FileReservation]) -> list[Conflict]:
    return [
        Conflict(
            pattern=pattern,
            held_by=r.agent_name,
            held_pattern=r.path_pattern,
            exclusive=r.exclusive,
            expires_ts=r.expires_ts,
            reservation_id=r.id,
        )
        for r in held
        if (exclusive or r.exclusive) and overlaps(pattern, r.path_pattern)
    ]


def _self_overlaps(requested: list[str], exclusive: bool) -> None:
    if not exclusive:
        return
    for i, a in enumerate(requested):
        for b in requested[i + 1 :]:
            if overlaps(a, b):
                raise InvalidInputError(f"Exclusive patterns overlap each other: {a}, {b}")


def reserve(
    agent: str,
    patterns: Iterable[str],
    ttl_seconds: int | None = None,
    exclusive: bool = True,
    reason: str = "",
    project: str | None = None,
) -> list[FileReservation]:
    """Grant every requested pattern or none of them.

    The conflict check and the writes share one BEGIN IMMEDIATE
    transaction, so concurrent reservers are serialized by the store.
    Re-reserving a pattern the agent already holds refreshes that row
    instead of adding another; its expiry only moves forward.

    Raises:
        ConflictError: listing every active reservation that overlaps a
            requested pattern where either side is exclusive, including the
            agent's own holds on a different overlapping pattern.
        InvalidInputError: empty or malformed patterns, ttl under 60 seconds,
            exclusive patterns in one request that overlap each other.
    """
    requested = _patterns(patterns)
    ttl = int(config.get("default_ttl")) if ttl_seconds is None else int(ttl_seconds)
    if ttl < MIN_TTL_SECONDS:
        raise InvalidInputError(f"ttl_seconds must be at least {MIN_TTL_SECONDS}, got {ttl}")
    _self_overlaps(requested, exclusive)

    def _reserve(conn: sqlite3.Connection) -> list[FileReservation]:
        holder = registry.resolve(conn, agent, project)
        now = clock.now()
        now_iso = clock.iso(now)
        held = _active(conn, holder.project_id, now_iso)

        own: dict[str, FileReservation] = {}
        for r in held:
            if r.agent_id == holder.id:
                own.setdefault(r.path_pattern, r)
        conflicts = []
        for pattern in requested:
            others = [
                r for r in held if r.agent_id != holder.id or r.path_pattern != pattern
            ]
            conflicts += _blockers(pattern, exclusive, others)
        if conflicts:
            raise ConflictError(conflicts)

        expires = clock.after(ttl, now)
        granted = []
        for pattern in requested:
            existing = own.get(pattern)
            if existing:
                existing.expires_ts = max(existing.expires_ts, expires)
                existing.exclusive = exclusive
                existing.reason = reason or existing.reason
                conn.execute(
                    "UPDATE file_reservations SET expires_ts = ?, exclusive = ?, reason = ? "
                    "WHERE id = ?",
                    (existing.expires_ts, int(exclusive), existing.reason, existing.id),
                )
                granted.append(existing)
                continue
            cursor = conn.execute(
                "INSERT INTO file_reservations (project_id, agent_id, path_pattern, exclusive, "
                "reason, created_ts, expires_ts) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (holder.project_id, holder.id, pattern, int(exclusive), reason, now_iso, expires),
            )
            granted.append(
                FileReservation(
                    id=cursor.lastrowid,
                    project_id=holder.project_id,
                    agent_id=holder.id,
                    path_pattern=pattern,
                    exclusive=exclusive,
                    reason=reason,
                    created_ts=now_iso,
                    expires_ts=expires,
                    agent_name=holder.name,
                )
            )
        registry.touch_in(conn, holder.id)
        return granted

    try:
        granted = store.atomic(_reserve)
    except ConflictError as e:
        logger.warning(f"{agent} blocked on {', '.join(requested)}: {e}")
        raise
    logger.info(f"{agent} reserved {', '.join(requested)} for {ttl}s")
    return granted


def release(
    agent: str,
    patterns: Iterable[str] | None = None,
    all: bool = False,
    project: str | None = None,
) -> int:
    """Release the agent's active reservations; returns how many were released.

    Patterns match exactly after normalization. Releasing nothing is not an error.
    """
    if not all and not patterns:
        raise InvalidInputError("Give patterns to release or all=True")
    requested = None if all else _patterns(patterns)

    def _release(conn: sqlite3.Connection) -> int:
        holder = registry.resolve(conn, agent, project)
        now = clock.now_iso()
        query = (
            "UPDATE file_reservations SET released_ts = ? "
            "WHERE agent_id = ? AND released_ts IS NULL AND expires_ts > ?"
        )
        params: list = [now, holder.id, now]
        if requested is not None:
            query += f" AND path_pattern IN ({', '.join('?' * len(requested))})"
            params.extend(requested)
        released = conn.execute(query, params).rowcount
        registry.touch_in(conn, holder.id)
        return released

    count = store.atomic(_release)
    logger.info(f"{agent} released {count} reservation(s)")
    return count


def renew(
    agent: str,
    extend_seconds: int,
    patterns: Iterable[str] | None = None,
    project: str | None = None,
) -> list[FileReservation]:
    """Push expiry of the agent's active reservations to max(expires, now) + extend."""
    if extend_seconds is None or int(extend_seconds) < MIN_TTL_SECONDS:
        raise InvalidInputError(f"extend_seconds must be at least {MIN_TTL_SECONDS}")
    requested = _patterns(patterns) if patterns else None

    def _renew(conn: sqlite3.Connection) -> list[FileReservation]:
        holder = registry.resolve(conn, agent, project)
        now = clock.now()
        now_iso = clock.iso(now)
        renewed = []
        for r in _active(conn, holder.project_id, now_iso):
            if r.agent_id != holder.id:
                continue
            if requested is not None and r.path_pattern not in requested:
                continue
            base = max(clock.parse(r.expires_ts), now)
            r.expires_ts = clock.after(int(extend_seconds), base)
            conn.execute(
                "UPDATE file_reservations SET expires_ts = ? WHERE id = ?", (r.expires_ts, r.id)
            )
            renewed.append(r)
        registry.touch_in(conn, holder.id)
        return renewed

    renewed = store.atomic(_renew)
    logger.info(f"{agent} renewed {len(renewed)} reservation(s) by {extend_seconds}s")
    return renewed


def list_active(project: str | None = None, agent: str | None = None) -> list[FileReservation]:
    """Active reservations, newest first, with holder names.

    Lists every project when project is None.
    """
    with store.ensure() as conn:
        project_id = None
        if project is not None:
            proj = projects.find(conn, project)
            if not proj:
                return []
            project_id = proj.id
        active = _active(conn, project_id, clock.now_iso())
    if agent:
        active = [r for r in active if r.agent_name == agent]
    return active


def check(
    paths: Iterable[str], project: str | None = None, exclude_agent: str | None = None
) -> list[Conflict]:
    """Read-only probe: exclusive reservations that would block editing these paths.

    project defaults to the current one.
    """
    requested = _patterns(paths)
    with store.ensure() as conn:
        proj = projects.find(conn, project)
        if not proj:
            return []
        held = _active(conn, proj.id, clock.now_iso())
    held = [r for r in held if r.agent_name != exclude_agent]
    return [c for pattern in requested for c in _blockers(pattern, False, held)]
