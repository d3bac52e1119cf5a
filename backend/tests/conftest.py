from collections.abc import Generator
from pathlib import Path

import pytest

from dbmanager.core.pool import PoolRegistry
from dbmanager.core.resolver import ConfigResolver
from dbmanager.engines.sql import DatabaseManager
from dbmanager.models import ConnectionConfig


@pytest.fixture
def sqlite_config(tmp_path: Path) -> ConnectionConfig:
    """File-backed SQLite target, unique per test."""
    return ConnectionConfig(
        target=f"sqlite:///{tmp_path / 'test.db'}",
        principal="sa",
        max_pool_size=4,
        connection_timeout_ms=2000,
    )


@pytest.fixture
def registry() -> Generator[PoolRegistry, None, None]:
    reg = PoolRegistry()
    yield reg
    reg.close_all()


@pytest.fixture
def manager(
    registry: PoolRegistry, sqlite_config: ConnectionConfig
) -> DatabaseManager:
    """DatabaseManager whose default configuration is the per-test SQLite file."""
    return DatabaseManager(registry=registry, resolver=ConfigResolver(default=sqlite_config))
