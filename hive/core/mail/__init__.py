from . import api
from .api import (
    ack,
    get_message,
    inbox,
    mark_read,
    pending_acks,
    reply,
    search,
    send,
    thread,
    threads,
)
from .commands import app

__all__ = [
    "ack",
    "api",
    "app",
    "get_message",
    "inbox",
    "mark_read",
    "pending_acks",
    "reply",
    "search",
    "send",
    "thread",
    "threads",
]
