"""Output markers recognized by the session state detector.

Agents print the bracketed `[JAT:...]` markers themselves; the plain-text
entries are phrases of the agent's own question and review prompts.
"""

import re

from hive.core.models import SessionState

TAIL_CHARS = 3000
STARTING_MAX_CHARS = 500
RECENT_CLOSE_SECONDS = 2 * 60 * 60

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")

NEEDS_INPUT = (
    "[JAT:NEEDS_INPUT]",
    "Enter to select",
    "Tab/Arrow keys to navigate",
    "Type something",
    "[ ]",
)

READY_FOR_REVIEW = (
    "[JAT:NEEDS_REVIEW]",
    "[JAT:READY",
    "ready to mark complete",
    "Ready to mark complete",
    "shall I mark",
    "Shall I mark",
    "ready for review",
    "Ready for Review",
)

COMPLETING = (
    "jat:complete is running",
    "Marking task complete",
)

COMPACTING = ("[JAT:COMPACTING]",)

WORKING = ("[JAT:WORKING",)

COMPLETED = ("[JAT:COMPLETED]", "[JAT:IDLE]")
TASK_COMPLETE_BANNER = re.compile(r"✅\s*TASK COMPLETE")

# Order breaks ties between markers starting at the same offset.
ACTIVE_STATES: tuple[tuple[SessionState, tuple[str, ...]], ...] = (
    (SessionState.NEEDS_INPUT, NEEDS_INPUT),
    (SessionState.READY_FOR_REVIEW, READY_FOR_REVIEW),
    (SessionState.COMPLETING, COMPLETING),
    (SessionState.COMPACTING, COMPACTING),
    (SessionState.WORKING, WORKING),
)
