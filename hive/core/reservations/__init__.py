from . import api
from .api import check, list_active, overlaps, release, renew, reserve, validate_pattern
from .commands import app

__all__ = [
    "api",
    "app",
    "check",
    "list_active",
    "overlaps",
    "release",
    "renew",
    "reserve",
    "validate_pattern",
]
