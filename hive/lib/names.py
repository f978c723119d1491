"""Pronounceable adjective+noun agent names (BlueLake, SwiftRiver)."""

import random
import re

ADJECTIVES = (
    "Swift", "Bright", "Bold", "Calm", "Clear", "Deep",
    "Fair", "Free", "Grand", "Great", "High", "Just",
    "Kind", "Light", "Long", "New", "Pure", "Quick",
    "Rare", "Rich", "Sharp", "Short", "Soft", "Strong",
    "Sure", "True", "Warm", "Wide", "Wild", "Wise",
    "Blue", "Green", "Red", "Gold", "Silver", "Crystal",
    "Dark", "Pale", "Faint", "Dim", "Dull",
)  # fmt: skip

NOUNS = (
    "Lake", "River", "Mountain", "Valley", "Forest", "Ocean",
    "Storm", "Wind", "Cloud", "Star", "Moon", "Sun",
    "Stone", "Rock", "Peak", "Ridge", "Cliff", "Cave",
    "Field", "Meadow", "Grove", "Hill", "Coast", "Bay",
    "Falls", "Stream", "Brook", "Pond", "Isle", "Shore",
    "Canyon", "Desert", "Prairie", "Tundra", "Marsh", "Reef",
)  # fmt: skip

MAX_NAME_LENGTH = 64
_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def generate(rng: random.Random | None = None) -> str:
    rng = rng or random
    return f"{rng.choice(ADJECTIVES)}{rng.choice(NOUNS)}"


def validate(name: str) -> None:
    """Raise ValueError unless name is a single token of safe characters."""
    if not name or not name.strip():
        raise ValueError("Agent name cannot be empty")
    if any(c.isspace() for c in name):
        raise ValueError(f"Agent name cannot contain whitespace: '{name}'")
    if len(name) > MAX_NAME_LENGTH:
        raise ValueError(f"Agent name longer than {MAX_NAME_LENGTH} characters")
    if not _NAME_RE.match(name):
        raise ValueError(f"Agent name has illegal characters: '{name}'")
