from .commands import app
from .selector import find_parent_epic, hybrid_order, pick_next
from .tracker import BeadsTracker, TaskTracker, task_from_json

__all__ = [
    "BeadsTracker",
    "TaskTracker",
    "app",
    "find_parent_epic",
    "hybrid_order",
    "pick_next",
    "task_from_json",
]
