"""Infer an agent's session state from its recent terminal output."""

import logging
from datetime import datetime

from hive.core.models import SessionState, Task
from hive.lib import clock

from . import markers

logger = logging.getLogger(__name__)


def strip_ansi(text: str) -> str:
    return markers.ANSI_ESCAPE.sub("", text)


def recent(output: str | None) -> str:
    """Last TAIL_CHARS characters of output with escape sequences removed."""
    if not output:
        return ""
    return strip_ansi(output[-markers.TAIL_CHARS :])


def last_position(text: str, needles: tuple[str, ...]) -> int:
    """Highest rfind index over needles, -1 when none occurs."""
    return max(text.rfind(needle) for needle in needles)


def _completion_evident(text: str) -> bool:
    return (
        last_position(text, markers.COMPLETED) >= 0
        or markers.TASK_COMPLETE_BANNER.search(text) is not None
        or last_position(text, markers.READY_FOR_REVIEW) >= 0
    )


def _closed_recently(task: Task, now: datetime) -> bool:
    closed = clock.parse(task.closed_at)
    if closed is None:
        return False
    return (now - closed).total_seconds() < markers.RECENT_CLOSE_SECONDS


def detect(
    output: str | None,
    task: Task | None,
    last_closed: Task | None,
    now: datetime | None = None,
) -> SessionState:
    """Classify a session from its output and task context.

    With a current task the most recent marker wins and no marker means
    working. Without one, a recently closed task reads as completed, a short
    tail as starting, anything else as idle. Same inputs give the same state.

    Args:
        output: Raw terminal output, escape sequences included
        task: Task the agent currently holds, if any
        last_closed: Most recently closed task of the agent, if any
        now: Reference time for the recently-closed window
    """
    text = recent(output)

    if task is not None:
        best_state, best_pos = SessionState.WORKING, -1
        for state, needles in markers.ACTIVE_STATES:
            pos = last_position(text, needles)
            if pos > best_pos:
                best_state, best_pos = state, pos
        logger.debug(f"{task.id}: {best_state.value} (marker at {best_pos})")
        return best_state

    if last_closed is not None:
        if _completion_evident(text):
            return SessionState.COMPLETED
        if _closed_recently(last_closed, now or clock.now()):
            return SessionState.COMPLETED

    if len(text) < markers.STARTING_MAX_CHARS:
        return SessionState.STARTING
    return SessionState.IDLE
