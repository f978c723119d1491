"""Process supervisor boundary: where agent terminal output comes from."""

import logging
import shutil
import subprocess
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

# capture-pane works in lines, so ask for enough to cover max_bytes
CHARS_PER_LINE = 40


@runtime_checkable
class Supervisor(Protocol):
    """Source of agent session output."""

    def get_recent_output(self, session_id: str, max_bytes: int) -> str:
        """Most recent output of a session, at most max_bytes characters, "" if gone."""
        ...

    def list_sessions(self) -> list[str]:
        """Names of live sessions."""
        ...


class TmuxSupervisor:
    """Reads agent output from tmux panes."""

    def __init__(self, command: str = "tmux", prefix: str = ""):
        self.command = command
        self.prefix = prefix

    def available(self) -> bool:
        return shutil.which(self.command) is not None

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            [self.command, *args],
            capture_output=True,
            text=True,
            check=False,
        )

    def get_recent_output(self, session_id: str, max_bytes: int = 3000) -> str:
        lines = max(50, max_bytes // CHARS_PER_LINE)
        try:
            result = self._run(
                "capture-pane", "-p", "-e", "-J", "-t", session_id, "-S", f"-{lines}"
            )
        except FileNotFoundError:
            logger.warning(f"{self.command} not installed")
            return ""
        if result.returncode != 0:
            logger.debug(f"No pane for {session_id}: {result.stderr.strip()}")
            return ""
        return result.stdout[-max_bytes:]

    def list_sessions(self) -> list[str]:
        try:
            result = self._run("list-sessions", "-F", "#{session_name}")
        except FileNotFoundError:
            logger.warning(f"{self.command} not installed")
            return []
        if result.returncode != 0:
            # no server running means no sessions
            return []
        names = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        return [n for n in names if n.startswith(self.prefix)]
