"""
Error taxonomy for pool and SQL operations.

Backend exceptions are always chained (``raise ... from exc``) so the driver's
original error stays reachable through ``__cause__``.
"""

from dbmanager.models import PoolKey


class DatabaseManagerError(Exception):
    """Base class for every error raised by dbmanager."""

    def __init__(self, message: str, *, key: PoolKey | None = None) -> None:
        super().__init__(message)
        self.key = key


class ConnectionSetupError(DatabaseManagerError):
    """Target unreachable, authentication failed, or pool unavailable."""


class PoolTimeoutError(ConnectionSetupError):
    """No pooled connection became free within the connection timeout."""


class BindingError(DatabaseManagerError):
    """Parameters do not fit the statement's placeholders."""


class QueryError(DatabaseManagerError):
    """Backend rejected a statement (syntax, constraint, permission, ...)."""

    def __init__(
        self,
        message: str,
        *,
        sql: str | None = None,
        key: PoolKey | None = None,
        statement_index: int | None = None,
    ) -> None:
        super().__init__(message, key=key)
        self.sql = sql
        self.statement_index = statement_index


class BatchError(QueryError):
    """A batched parameter set failed; ``results`` holds counts of the sets before it."""

    def __init__(
        self,
        message: str,
        *,
        results: list[int],
        failed_index: int,
        sql: str | None = None,
        key: PoolKey | None = None,
    ) -> None:
        super().__init__(message, sql=sql, key=key)
        self.results = results
        self.failed_index = failed_index


class SchemaIntrospectionError(QueryError):
    """Catalog metadata could not be read."""
