from dataclasses import dataclass


class HiveError(Exception):
    """Base exception for hive domain errors."""

    pass


@dataclass
class Conflict:
    """One active reservation blocking a requested pattern."""

    pattern: str
    held_by: str
    held_pattern: str
    exclusive: bool
    expires_ts: str
    reservation_id: int | None = None

    def describe(self) -> str:
        mode = "exclusive" if self.exclusive else "shared"
        return (
            f"{self.pattern} blocked by {self.held_by} "
            f"({self.held_pattern}, {mode}, expires {self.expires_ts})"
        )


class ConflictError(HiveError):
    """Raised when requested patterns overlap reservations held by other agents."""

    def __init__(self, conflicts: list[Conflict]):
        self.conflicts = conflicts
        holders = sorted({c.held_by for c in conflicts})
        super().__init__(
            f"{len(conflicts)} conflicting reservation(s) held by {', '.join(holders)}"
        )


class NotFoundError(HiveError):
    """Raised when an agent, message, project or task reference is unknown."""

    pass


class InvalidInputError(HiveError, ValueError):
    """Raised for malformed patterns, missing fields and out-of-range values."""

    pass


class NotRecipientError(HiveError):
    """Raised when an agent reads, acks or replies to a message not addressed to it."""

    pass


class StoreBusyError(HiveError):
    """Raised when the shared store stays locked after bounded retries."""

    pass


class TrackerError(HiveError):
    """Raised when the external task tracker command fails."""

    pass


class MigrationError(HiveError):
    """Raised when a database migration fails."""

    pass
