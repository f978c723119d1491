from .overlap import normalize, overlaps, validate_pattern
from .reservations import MIN_TTL_SECONDS, check, list_active, release, renew, reserve

__all__ = [
    "MIN_TTL_SECONDS",
    "check",
    "list_active",
    "normalize",
    "overlaps",
    "release",
    "renew",
    "reserve",
    "validate_pattern",
]
