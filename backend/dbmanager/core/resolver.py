"""
Caller-scoped connection configuration.

A caller identity is any hashable tag: a string, an enum member, or a class.
Configuration is declared explicitly (register() or the declare() decorator);
callers without a declaration get the default configuration from settings.
"""

import logging
from collections.abc import Callable, Hashable
from enum import Enum
from typing import Any, TypeVar

from dbmanager.core.config import Settings, settings
from dbmanager.models import ConnectionConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")
Lookup = Callable[[Any], ConnectionConfig | None]


def default_config(source: Settings | None = None) -> ConnectionConfig:
    s = source or settings
    return ConnectionConfig(
        target=s.DB_DEFAULT_TARGET,
        principal=s.DB_DEFAULT_PRINCIPAL,
        secret=s.DB_DEFAULT_SECRET,
        max_pool_size=s.DB_DEFAULT_MAX_POOL_SIZE,
        connection_timeout_ms=s.DB_DEFAULT_CONNECTION_TIMEOUT_MS,
    )


class ConfigResolver:
    """Resolve a caller identity to its ConnectionConfig, falling back to defaults."""

    def __init__(
        self,
        default: ConnectionConfig | None = None,
        lookup: Lookup | None = None,
    ) -> None:
        self._default = default or default_config()
        self._declared: dict[Hashable, ConnectionConfig] = {}
        self._lookup = lookup

    @property
    def default(self) -> ConnectionConfig:
        return self._default

    def register(self, identity: Hashable, config: ConnectionConfig) -> None:
        self._declared[identity] = config

    def declare(self, **overrides: Any) -> Callable[[T], T]:
        """
        Decorator declaring connection settings for a class or function.

        Fields not given fall back to the default configuration::

            @resolver.declare(target="postgresql://db:5432/app", max_pool_size=5)
            class ReportQueries: ...
        """
        config = ConnectionConfig(**{**self._default.model_dump(), **overrides})

        def decorator(obj: T) -> T:
            self.register(obj, config)  # type: ignore[arg-type]
            return obj

        return decorator

    def lookup(self, identity: Any) -> ConnectionConfig | None:
        """Declared configuration for *identity* (or its class), else None."""
        if identity is None:
            return None
        candidates = [identity]
        if not isinstance(identity, (type, str, Enum)):
            candidates.append(type(identity))
        for candidate in candidates:
            try:
                config = self._declared.get(candidate)
            except TypeError:  # unhashable identity
                config = None
            if config is not None:
                return config
        if self._lookup is not None:
            return self._lookup(identity)
        return None

    def resolve(self, identity: Any = None) -> ConnectionConfig:
        """Never raises: a failed or empty lookup yields the default configuration."""
        try:
            config = self.lookup(identity)
        except Exception:
            logger.debug("Configuration lookup failed for %r; using defaults", identity, exc_info=True)
            config = None
        return config if config is not None else self._default
