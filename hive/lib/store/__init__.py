"""Database connection management and utilities."""

from hive.lib.store.connection import (
    Row,
    _reset_for_testing,
    atomic,
    close_all,
    ensure,
    from_row,
    transaction,
)
from hive.lib.store.sqlite import connect, is_busy

__all__ = [
    "ensure",
    "transaction",
    "atomic",
    "from_row",
    "Row",
    "_reset_for_testing",
    "close_all",
    "connect",
    "is_busy",
]
