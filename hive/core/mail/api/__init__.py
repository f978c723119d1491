from .inbox import ack, inbox, mark_read, pending_acks
from .messages import get_message, reply, send, thread, threads
from .search import search

__all__ = [
    "ack",
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
