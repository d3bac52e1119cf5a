"""
Bounded connection pool for one target.

A PooledSource hands out at most ``max_pool_size`` connections at a time.
Idle connections are reused after a max-age check and, when they have been
idle for a while, a ping. In-memory SQLite targets keep one extra connection
open for the life of the source so the database survives eviction. The first
connection is opened eagerly so that an unreachable target fails at
construction.
"""

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, NamedTuple

from dbmanager.core.config import settings
from dbmanager.core.errors import ConnectionSetupError, PoolTimeoutError
from dbmanager.models import BackendEnum, ConnectionConfig

from .connect import connect

logger = logging.getLogger(__name__)

_PING_IDLE_THRESHOLD = 30.0  # only ping connections idle longer than this (seconds)


class _PoolEntry(NamedTuple):
    conn: Any
    created_at: float  # time.monotonic() when the connection was opened
    last_used: float   # time.monotonic() when last returned to pool


class PooledSource:
    """Shared, thread-safe source of connections for a single PoolKey."""

    def __init__(
        self,
        config: ConnectionConfig,
        *,
        max_age: float | None = None,
    ) -> None:
        self.config = config
        self.key = config.key
        try:
            self.backend: BackendEnum = config.backend
        except ValueError as e:
            raise ConnectionSetupError(str(e), key=self.key) from e
        self._idle: list[_PoolEntry] = []
        self._opened_at: dict[int, float] = {}
        self._in_use = 0
        self._closed = False
        self._lock = threading.Lock()
        self._slots = threading.BoundedSemaphore(config.max_pool_size)
        self._max_age = float(
            max_age if max_age is not None else settings.DB_POOL_MAX_AGE_SEC
        )
        # In-memory SQLite databases vanish with their last connection; this one is
        # never lent out and is closed only by close().
        self._anchor: Any = None

        conn = self._open()
        now = time.monotonic()
        self._idle.append(_PoolEntry(conn=conn, created_at=now, last_used=now))
        if self._is_in_memory():
            self._anchor = self._open()

    @property
    def closed(self) -> bool:
        return self._closed

    def acquire(self) -> Any:
        """
        Borrow a connection, blocking up to ``connection_timeout_ms`` when the
        pool is saturated. Every successful acquire must be paired with release().
        """
        if self._closed:
            raise ConnectionSetupError(f"Pool for {self.key} is closed", key=self.key)
        timeout = self.config.connection_timeout_ms / 1000
        if not self._slots.acquire(timeout=timeout):
            raise PoolTimeoutError(
                f"Timed out after {self.config.connection_timeout_ms} ms waiting for "
                f"a connection to {self.key} (max_pool_size={self.config.max_pool_size})",
                key=self.key,
            )
        try:
            conn = self._checkout()
        except BaseException:
            self._slots.release()
            raise
        with self._lock:
            self._in_use += 1
        return conn

    def release(self, conn: Any) -> None:
        """Return a borrowed connection (closed instead when the source is closed or broken)."""
        try:
            if not self._reset(conn):
                self._discard(conn)
                return
            with self._lock:
                if not self._closed and len(self._idle) < self.config.max_pool_size:
                    created_at = self._opened_at.get(id(conn), time.monotonic())
                    self._idle.append(
                        _PoolEntry(conn=conn, created_at=created_at, last_used=time.monotonic())
                    )
                    return
            self._discard(conn)
        finally:
            with self._lock:
                self._in_use -= 1
            self._slots.release()

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Scoped acquisition: the connection is released on every exit path."""
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        """Close idle connections; borrowed ones are closed when released. Idempotent."""
        with self._lock:
            self._closed = True
            entries, self._idle = self._idle, []
            anchor, self._anchor = self._anchor, None
        for e in entries:
            self._discard(e.conn)
        if anchor is not None:
            self._discard(anchor)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "idle": len(self._idle),
                "in_use": self._in_use,
                "max_pool_size": self.config.max_pool_size,
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _open(self) -> Any:
        try:
            conn = connect(self.config)
        except Exception as e:
            raise ConnectionSetupError(
                f"Cannot connect to {self.key}: {e}", key=self.key
            ) from e
        with self._lock:
            self._opened_at[id(conn)] = time.monotonic()
        return conn

    def _checkout(self) -> Any:
        while True:
            entry = self._pop()
            if entry is None:
                break
            if self._is_expired(entry):
                self._discard(entry.conn)
                continue
            idle_sec = time.monotonic() - entry.last_used
            if idle_sec > _PING_IDLE_THRESHOLD and not self._is_alive(entry.conn):
                self._discard(entry.conn)
                continue
            return entry.conn

        return self._open()

    def _pop(self) -> _PoolEntry | None:
        with self._lock:
            if self._idle:
                return self._idle.pop()
        return None

    def _is_expired(self, entry: _PoolEntry) -> bool:
        return (time.monotonic() - entry.created_at) > self._max_age

    def _is_in_memory(self) -> bool:
        if self.backend != BackendEnum.SQLITE:
            return False
        url = self.config.url
        return url.database in (None, "", ":memory:") or url.query.get("mode") == "memory"

    @staticmethod
    def _is_alive(conn: Any) -> bool:
        """Lightweight ping: SELECT 1 is accepted by every supported backend."""
        try:
            cur = conn.cursor()
            try:
                cur.execute("SELECT 1")
                cur.fetchone()
            finally:
                cur.close()
            return True
        except Exception:
            return False

    def _reset(self, conn: Any) -> bool:
        """Roll back anything left open on *conn*. False if the connection is unusable."""
        # Trino connections in autocommit mode refuse rollback() without a transaction.
        if self.backend == BackendEnum.TRINO:
            return True
        try:
            conn.rollback()
        except Exception:
            return False
        return True

    def _discard(self, conn: Any) -> None:
        with self._lock:
            self._opened_at.pop(id(conn), None)
        try:
            conn.close()
        except Exception:
            logger.debug("Error closing connection to %s", self.key, exc_info=True)
