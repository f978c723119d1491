"""Path pattern normalization and overlap rules for file reservations."""

from fnmatch import fnmatchcase

from hive.errors import InvalidInputError

GLOB_CHARS = frozenset("*?[")


def normalize(pattern: str) -> str:
    """Repo-relative form: forward slashes, no leading ./ or /, no empty segments."""
    text = pattern.strip().replace("\\", "/")
    segments = [s for s in text.split("/") if s not in ("", ".")]
    return "/".join(segments)


def validate_pattern(pattern: str) -> str:
    """Return the normalized pattern or raise InvalidInputError."""
    if pattern is None or not str(pattern).strip():
        raise InvalidInputError("Pattern cannot be empty")
    if "\x00" in pattern:
        raise InvalidInputError(f"Pattern contains NUL byte: {pattern!r}")
    normalized = normalize(pattern)
    if not normalized:
        raise InvalidInputError(f"Pattern resolves to nothing: {pattern!r}")
    if ".." in normalized.split("/"):
        raise InvalidInputError(f"Pattern escapes the project root: {pattern}")
    return normalized


def _is_glob(segment: str) -> bool:
    return any(c in GLOB_CHARS for c in segment)


def static_prefix(pattern: str) -> list[str]:
    """Segments before the first one containing a glob character."""
    prefix = []
    for segment in pattern.split("/"):
        if _is_glob(segment):
            break
        prefix.append(segment)
    return prefix


def _is_prefix(prefix: list[str], segments: list[str]) -> bool:
    return len(prefix) <= len(segments) and segments[: len(prefix)] == prefix


def overlaps(a: str, b: str) -> bool:
    """True when two patterns could name a common file.

    A bare directory covers everything below it. `**/*.ts` has no static
    prefix, so it overlaps every pattern.
    """
    a, b = normalize(a), normalize(b)
    if a == b:
        return True

    if _is_prefix(static_prefix(a), b.split("/")) or _is_prefix(static_prefix(b), a.split("/")):
        return True

    return fnmatchcase(a, b) or fnmatchcase(b, a)
