from .commands import app
from .detect import detect, strip_ansi
from .monitor import session_name, snapshot, snapshot_all

__all__ = ["app", "detect", "session_name", "snapshot", "snapshot_all", "strip_ansi"]
