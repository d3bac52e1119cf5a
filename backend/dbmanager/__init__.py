"""
Connection-pool registry and generic SQL execution.
"""

from dbmanager.core.errors import (
    BatchError,
    BindingError,
    ConnectionSetupError,
    DatabaseManagerError,
    PoolTimeoutError,
    QueryError,
    SchemaIntrospectionError,
)
from dbmanager.core.pool import PooledSource, PoolRegistry
from dbmanager.core.resolver import ConfigResolver
from dbmanager.engines.sql import DatabaseManager
from dbmanager.models import BackendEnum, ConnectionConfig, PoolKey, Row

__all__ = [
    "BackendEnum",
    "BatchError",
    "BindingError",
    "ConfigResolver",
    "ConnectionConfig",
    "ConnectionSetupError",
    "DatabaseManager",
    "DatabaseManagerError",
    "PoolKey",
    "PoolRegistry",
    "PoolTimeoutError",
    "PooledSource",
    "QueryError",
    "Row",
    "SchemaIntrospectionError",
]
