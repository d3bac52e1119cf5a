"""
DB connection helpers for pooled sources.

Uses sqlite3 (SQLite), psycopg (PostgreSQL), pymysql (MySQL), or trino (Trino)
depending on the target URL scheme. Every connection is opened in autocommit
mode, so a statement is committed as soon as it succeeds.
"""

import logging
import math
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any
from urllib.parse import urlencode

import psycopg
import pymysql
from trino.auth import BasicAuthentication
from trino.dbapi import connect as trino_connect

from dbmanager.core.config import settings
from dbmanager.models import BackendEnum, ConnectionConfig, Row

logger = logging.getLogger(__name__)


def _connect_timeout_sec(config: ConnectionConfig) -> int:
    """Driver connect timeout in whole seconds (at least 1)."""
    return max(1, math.ceil(config.connection_timeout_ms / 1000))


def _sqlite_database(config: ConnectionConfig) -> tuple[str, bool]:
    url = config.url
    database = url.database or ":memory:"
    query = {k: v for k, v in url.query.items() if k != "uri"}
    uri = str(url.query.get("uri", "")).lower() in ("true", "1")
    if uri and query:
        database = f"{database}?{urlencode(query, doseq=True)}"
    return database, uri


def connect(config: ConnectionConfig) -> Any:
    """
    Open a DB-API connection for *config*.

    Principal and secret from the config take precedence over any username or
    password embedded in the target URL. Raises ValueError for unsupported or
    incomplete targets; driver errors propagate unchanged.
    """
    url = config.url
    backend = config.backend
    username = config.principal or url.username
    password = config.secret or url.password or ""
    timeout = _connect_timeout_sec(config)

    if backend == BackendEnum.SQLITE:
        database, uri = _sqlite_database(config)
        return sqlite3.connect(
            database,
            uri=uri,
            timeout=timeout,
            isolation_level=None,
            check_same_thread=False,
        )

    if not url.database:
        raise ValueError(f"target must name a database: {config.key}")

    if backend == BackendEnum.POSTGRES:
        return psycopg.connect(
            host=url.host or "localhost",
            port=int(url.port or 5432),
            dbname=url.database,
            user=username,
            password=password,
            connect_timeout=timeout,
            autocommit=True,
        )
    if backend == BackendEnum.MYSQL:
        return pymysql.connect(
            host=url.host or "localhost",
            port=int(url.port or 3306),
            database=url.database,
            user=username,
            password=password,
            connect_timeout=timeout,
            autocommit=True,
        )
    if backend == BackendEnum.TRINO:
        use_ssl = str(url.query.get("use_ssl", "")).lower() in ("true", "1")
        if use_ssl and not password.strip():
            raise ValueError("Password is required for Trino when using SSL/HTTPS.")
        catalog, _, schema = url.database.partition("/")
        return trino_connect(
            host=url.host or "localhost",
            port=int(url.port or 8080),
            user=username,
            auth=BasicAuthentication(username, password) if use_ssl else None,
            catalog=catalog,
            schema=schema or "default",
            source="dbmanager",
            http_scheme="https" if use_ssl else "http",
            request_timeout=timeout,
        )
    raise ValueError(f"Unsupported backend: {backend}")


def _set_statement_timeout(conn: Any, backend: BackendEnum, timeout_sec: int) -> None:
    timeout_ms = int(timeout_sec * 1000)
    cur = conn.cursor()
    try:
        if backend == BackendEnum.POSTGRES:
            cur.execute(f"SET statement_timeout = {timeout_ms}")
        elif backend == BackendEnum.MYSQL:
            cur.execute(f"SET SESSION max_execution_time = {timeout_ms}")
        elif backend == BackendEnum.TRINO:
            cur.execute(f"SET SESSION query_max_execution_time = '{timeout_sec}s'")
    finally:
        cur.close()


@contextmanager
def statement_timeout(conn: Any, backend: BackendEnum) -> Iterator[None]:
    """
    Apply DB_STATEMENT_TIMEOUT to the session for the duration of the block.

    SQLite has no server-side statement timeout; the block runs unchanged.
    """
    timeout_sec = settings.DB_STATEMENT_TIMEOUT
    if not timeout_sec or timeout_sec <= 0 or backend == BackendEnum.SQLITE:
        yield
        return

    _set_statement_timeout(conn, backend, timeout_sec)
    try:
        yield
    finally:
        try:
            _set_statement_timeout(conn, backend, 0)
        except Exception:
            logger.debug("Could not reset statement timeout", exc_info=True)


def execute(
    conn: Any,
    sql: str,
    params: tuple | None = None,
    *,
    backend: BackendEnum,
) -> Any:
    """
    Execute one already-bound statement and return its cursor.

    The caller owns the cursor: read it with map_rows(cursor) or
    cursor.rowcount, then close it.
    """
    cur = conn.cursor()
    try:
        with statement_timeout(conn, backend):
            if params:
                cur.execute(sql, params)
            else:
                cur.execute(sql)
    except Exception:
        cur.close()
        raise
    return cur


def map_rows(cursor: Any) -> list[Row]:
    """Read the cursor to exhaustion as a list of column-name -> value dicts."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]


def rowcount(cursor: Any) -> int:
    """Backend-reported affected rows; unknown (None or -1) counts as 0."""
    count = cursor.rowcount
    if count is None or count < 0:
        return 0
    return count
