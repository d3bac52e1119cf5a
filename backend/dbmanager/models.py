"""
Value types shared by the pool registry and the SQL executor.

PoolKey identifies a pooled connection source; ConnectionConfig is the
resolved, immutable configuration used to build one.
"""

from enum import Enum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

Row = dict[str, Any]


class BackendEnum(str, Enum):
    """Supported database backends (sqlite, postgres, mysql, trino)."""

    SQLITE = "sqlite"
    POSTGRES = "postgres"
    MYSQL = "mysql"
    TRINO = "trino"

    @property
    def paramstyle(self) -> str:
        """DB-API paramstyle of the driver used for this backend."""
        if self in (BackendEnum.POSTGRES, BackendEnum.MYSQL):
            return "format"
        return "qmark"


_BACKEND_ALIASES = {
    "sqlite": BackendEnum.SQLITE,
    "postgres": BackendEnum.POSTGRES,
    "postgresql": BackendEnum.POSTGRES,
    "mysql": BackendEnum.MYSQL,
    "mariadb": BackendEnum.MYSQL,
    "trino": BackendEnum.TRINO,
}


def parse_target(target: str) -> URL:
    """Parse a target connection string. Raises ValueError when malformed."""
    try:
        return make_url(target)
    except ArgumentError as e:
        raise ValueError(f"Invalid target: {target!r}") from e


def backend_for(url: URL) -> BackendEnum:
    name = url.get_backend_name()
    try:
        return _BACKEND_ALIASES[name]
    except KeyError:
        raise ValueError(f"Unsupported backend: {name}") from None


def redact_target(target: str) -> str:
    """Render *target* with any embedded password masked."""
    try:
        return make_url(target).render_as_string(hide_password=True)
    except ArgumentError:
        return target


class PoolKey(NamedTuple):
    target: str
    principal: str

    def __str__(self) -> str:
        return f"{redact_target(self.target)} (principal={self.principal!r})"


class ConnectionConfig(BaseModel):
    """Connection settings for one target. Immutable once resolved."""

    model_config = ConfigDict(frozen=True)

    target: str
    principal: str = ""
    secret: str = Field(default="", repr=False)
    max_pool_size: int = Field(default=10, ge=1)
    connection_timeout_ms: int = Field(default=30000, ge=0)

    @property
    def key(self) -> PoolKey:
        return PoolKey(self.target, self.principal)

    @property
    def url(self) -> URL:
        return parse_target(self.target)

    @property
    def backend(self) -> BackendEnum:
        return backend_for(self.url)
