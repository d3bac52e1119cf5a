"""
SQL execution over pooled connections.

Exports: DatabaseManager, bind, split_statements.
"""

from dbmanager.engines.sql.binder import bind
from dbmanager.engines.sql.executor import DatabaseManager
from dbmanager.engines.sql.parser import split_statements

__all__ = [
    "DatabaseManager",
    "bind",
    "split_statements",
]
