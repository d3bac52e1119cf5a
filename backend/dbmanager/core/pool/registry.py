"""
Registry of pooled connection sources, one per (target, principal).

Sources are created lazily on first use. The fast path reads the mapping
without locking; creation re-checks under the registry lock so that
concurrent first access never builds two sources for the same key.
"""

import logging
import threading
from collections.abc import Callable

from dbmanager.models import ConnectionConfig, PoolKey

from .source import PooledSource

logger = logging.getLogger(__name__)

SourceFactory = Callable[[ConnectionConfig], PooledSource]


class PoolRegistry:
    """Owns every PooledSource of the application."""

    def __init__(self, source_factory: SourceFactory = PooledSource) -> None:
        self._sources: dict[PoolKey, PooledSource] = {}
        self._lock = threading.Lock()
        self._source_factory = source_factory

    def acquire_source(self, key: PoolKey, config: ConnectionConfig) -> PooledSource:
        """
        Return the source for *key*, building it from *config* on first use.

        A failed construction raises ConnectionSetupError and leaves no entry
        behind, so the next call retries.
        """
        source = self._sources.get(key)
        if source is not None:
            return source
        with self._lock:
            source = self._sources.get(key)
            if source is None:
                source = self._source_factory(config)
                self._sources[key] = source
                logger.info("Created new database connection pool for %s", key)
        return source

    def source_for(self, config: ConnectionConfig) -> PooledSource:
        return self.acquire_source(config.key, config)

    def dispose(self, key: PoolKey) -> bool:
        """Close and forget the source for *key*. Returns False if there was none."""
        with self._lock:
            source = self._sources.pop(key, None)
            if source is None:
                return False
            source.close()
        logger.info("Closed database connection pool for %s", key)
        return True

    def close_all(self) -> None:
        """Close every source and clear the registry. Safe to call repeatedly."""
        with self._lock:
            for source in self._sources.values():
                source.close()
            self._sources.clear()
        logger.info("Closed all database connection pools")

    def stats(self) -> dict[str, dict[str, int]]:
        """Per-pool idle/in-use counts, keyed by the redacted pool key."""
        return {str(key): source.stats() for key, source in list(self._sources.items())}

    def __contains__(self, key: object) -> bool:
        return key in self._sources

    def __len__(self) -> int:
        return len(self._sources)
