"""
Parameterized SQL execution over pooled connections.

DatabaseManager resolves the caller's ConnectionConfig, borrows a connection
from the matching PooledSource, runs the statement, and always returns the
connection before the call completes. Results:

- query: list[dict] (one dict per row, column name -> value)
- update: int (affected rows)
- batch: list[int] (one count per parameter set, input order)
- scalar: first column of the first row, or None
- script: per-statement results, list[dict] or int
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from dbmanager.core.errors import (
    BatchError,
    DatabaseManagerError,
    QueryError,
    SchemaIntrospectionError,
)
from dbmanager.core.pool import (
    PooledSource,
    PoolRegistry,
    execute,
    map_rows,
    rowcount,
    statement_timeout,
)
from dbmanager.core.resolver import ConfigResolver
from dbmanager.models import BackendEnum, ConnectionConfig, Row

from .binder import bind
from .parser import split_statements

logger = logging.getLogger(__name__)

_SQLITE_TABLE_SQL = (
    "SELECT 1 FROM sqlite_master WHERE type IN ('table', 'view') AND upper(name) = ?"
)
_CATALOG_TABLE_SQL = "SELECT 1 FROM information_schema.tables WHERE upper(table_name) = ?"
# Catalog lookups are limited to the schema the connection currently resolves
# unqualified names against.
_TABLE_SQL = {
    BackendEnum.SQLITE: _SQLITE_TABLE_SQL,
    BackendEnum.POSTGRES: _CATALOG_TABLE_SQL + " AND table_schema = current_schema()",
    BackendEnum.MYSQL: _CATALOG_TABLE_SQL + " AND table_schema = DATABASE()",
    BackendEnum.TRINO: _CATALOG_TABLE_SQL + " AND table_schema = current_schema",
}


@contextmanager
def _backend_errors(
    source: PooledSource, sql: str, operation: str, error: type[QueryError] = QueryError
) -> Iterator[None]:
    """Wrap driver exceptions raised in the block as *error*."""
    try:
        yield
    except DatabaseManagerError:
        raise
    except Exception as e:
        raise error(
            f"{operation} failed on {source.key}: {e}", sql=sql, key=source.key
        ) from e


class DatabaseManager:
    """Query, update, batch, scalar, script and schema helpers over a PoolRegistry."""

    def __init__(
        self,
        registry: PoolRegistry | None = None,
        resolver: ConfigResolver | None = None,
    ) -> None:
        self.registry = registry if registry is not None else PoolRegistry()
        self.resolver = resolver if resolver is not None else ConfigResolver()

    def source(self, caller: Any = None, *, config: ConnectionConfig | None = None) -> PooledSource:
        """PooledSource for *config*, or for the configuration resolved from *caller*."""
        cfg = config if config is not None else self.resolver.resolve(caller)
        return self.registry.acquire_source(cfg.key, cfg)

    @contextmanager
    def connection(
        self, caller: Any = None, *, config: ConnectionConfig | None = None
    ) -> Iterator[Any]:
        """Borrow a raw DB-API connection; it goes back to the pool when the block exits."""
        with self.source(caller, config=config).connection() as conn:
            yield conn

    def query(
        self,
        sql: str,
        params: Sequence[Any] | None = None,
        *,
        caller: Any = None,
        config: ConnectionConfig | None = None,
    ) -> list[Row]:
        source = self.source(caller, config=config)
        stmt, values = bind(sql, params, source.backend)
        with source.connection() as conn, _backend_errors(source, sql, "Query"):
            cur = execute(conn, stmt, values, backend=source.backend)
            try:
                return map_rows(cur)
            finally:
                cur.close()

    def query_one(
        self,
        sql: str,
        params: Sequence[Any] | None = None,
        *,
        caller: Any = None,
        config: ConnectionConfig | None = None,
    ) -> Row | None:
        rows = self.query(sql, params, caller=caller, config=config)
        return rows[0] if rows else None

    def update(
        self,
        sql: str,
        params: Sequence[Any] | None = None,
        *,
        caller: Any = None,
        config: ConnectionConfig | None = None,
    ) -> int:
        """Run INSERT/UPDATE/DELETE/DDL and return the affected row count."""
        source = self.source(caller, config=config)
        stmt, values = bind(sql, params, source.backend)
        with source.connection() as conn, _backend_errors(source, sql, "Update"):
            cur = execute(conn, stmt, values, backend=source.backend)
            try:
                return rowcount(cur)
            finally:
                cur.close()

    def batch(
        self,
        sql: str,
        param_sets: Sequence[Sequence[Any]],
        *,
        caller: Any = None,
        config: ConnectionConfig | None = None,
    ) -> list[int]:
        """
        Execute *sql* once per parameter set on a single connection.

        Every set is bound before anything runs, so a BindingError leaves the
        database untouched. A backend failure on set k raises BatchError whose
        ``results`` holds the counts of sets 0..k-1, which remain applied.
        """
        source = self.source(caller, config=config)
        bound = [bind(sql, params, source.backend) for params in param_sets]
        results: list[int] = []
        with source.connection() as conn, _backend_errors(source, sql, "Batch"):
            with statement_timeout(conn, source.backend):
                cur = conn.cursor()
                try:
                    for index, (stmt, values) in enumerate(bound):
                        try:
                            if values:
                                cur.execute(stmt, values)
                            else:
                                cur.execute(stmt)
                        except Exception as e:
                            raise BatchError(
                                f"Batch item {index} failed on {source.key}: {e}",
                                results=list(results),
                                failed_index=index,
                                sql=sql,
                                key=source.key,
                            ) from e
                        results.append(rowcount(cur))
                finally:
                    cur.close()
        logger.debug("Batch of %d executed on %s", len(results), source.key)
        return results

    def scalar(
        self,
        sql: str,
        params: Sequence[Any] | None = None,
        *,
        caller: Any = None,
        config: ConnectionConfig | None = None,
    ) -> Any | None:
        source = self.source(caller, config=config)
        stmt, values = bind(sql, params, source.backend)
        with source.connection() as conn, _backend_errors(source, sql, "Scalar query"):
            cur = execute(conn, stmt, values, backend=source.backend)
            try:
                row = cur.fetchone()
            finally:
                cur.close()
        return row[0] if row else None

    def script(
        self,
        sql_text: str,
        *,
        caller: Any = None,
        config: ConnectionConfig | None = None,
    ) -> list[Any]:
        """
        Run a ``;``-separated script statement by statement on one connection.

        Returns one result per statement: rows when the statement produced a
        result set, else its row count. The first failing statement stops the
        script; its 0-based position is in QueryError.statement_index.
        """
        source = self.source(caller, config=config)
        statements = split_statements(sql_text)
        results: list[Any] = []
        with source.connection() as conn:
            for index, stmt in enumerate(statements):
                try:
                    cur = execute(conn, stmt, backend=source.backend)
                    try:
                        results.append(map_rows(cur) if cur.description else rowcount(cur))
                    finally:
                        cur.close()
                except Exception as e:
                    raise QueryError(
                        f"Script statement {index + 1} of {len(statements)} failed "
                        f"on {source.key}: {e}",
                        sql=stmt,
                        key=source.key,
                        statement_index=index,
                    ) from e
        logger.debug("Script of %d statements executed on %s", len(statements), source.key)
        return results

    def has_table(
        self,
        name: str,
        *,
        caller: Any = None,
        config: ConnectionConfig | None = None,
    ) -> bool:
        """
        Look *name* up in the catalog of the current schema, case-insensitively.
        Raises SchemaIntrospectionError.
        """
        source = self.source(caller, config=config)
        sql = _TABLE_SQL[source.backend]
        stmt, values = bind(sql, [name.upper()], source.backend)
        with source.connection() as conn, _backend_errors(
            source, sql, f"Table lookup for {name!r}", SchemaIntrospectionError
        ):
            cur = execute(conn, stmt, values, backend=source.backend)
            try:
                return cur.fetchone() is not None
            finally:
                cur.close()

    def table_exists(
        self,
        name: str,
        *,
        caller: Any = None,
        config: ConnectionConfig | None = None,
    ) -> bool:
        """
        Best-effort has_table(): a failed catalog lookup is logged and reported as False.

        Failing to reach the target at all, through a pool timeout or an unreachable
        host, still raises ConnectionSetupError.
        """
        try:
            return self.has_table(name, caller=caller, config=config)
        except SchemaIntrospectionError as e:
            logger.error("Error checking if table exists: %s", e)
            return False

    def create_table_if_not_exists(
        self,
        name: str,
        column_defs: str,
        *,
        caller: Any = None,
        config: ConnectionConfig | None = None,
    ) -> None:
        """CREATE TABLE IF NOT EXISTS, e.g. column_defs="id INT PRIMARY KEY, name VARCHAR(255)"."""
        self.update(
            f"CREATE TABLE IF NOT EXISTS {name} ({column_defs})",
            caller=caller,
            config=config,
        )
        logger.info("Created table if not exists: %s", name)

    def close(self) -> None:
        self.registry.close_all()
