"""
Connection pooling for SQL targets.

PoolRegistry maps (target, principal) to a shared PooledSource; connect,
execute and map_rows are the thin driver layer underneath.
"""

from .connect import connect, execute, map_rows, rowcount, statement_timeout
from .registry import PoolRegistry
from .source import PooledSource

__all__ = [
    "connect",
    "execute",
    "map_rows",
    "rowcount",
    "statement_timeout",
    "PoolRegistry",
    "PooledSource",
]
