import logging

import sentry_sdk

from dbmanager.core.config import Settings, settings
from dbmanager.core.pool import PoolRegistry
from dbmanager.core.resolver import ConfigResolver, default_config
from dbmanager.engines.sql import DatabaseManager

_logger = logging.getLogger(__name__)


def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def init_sentry(source: Settings | None = None) -> bool:
    """Initialise Sentry when a DSN is configured outside local environments."""
    s = source or settings
    if s.SENTRY_DSN and s.ENVIRONMENT != "local":
        sentry_sdk.init(dsn=str(s.SENTRY_DSN), environment=s.ENVIRONMENT)
        return True
    return False


def create_manager(source: Settings | None = None) -> DatabaseManager:
    """
    Build the application's DatabaseManager.

    The manager owns a fresh PoolRegistry; call manager.close() on shutdown to
    release every pooled connection.
    """
    s = source or settings
    resolver = ConfigResolver(default=default_config(s))
    manager = DatabaseManager(registry=PoolRegistry(), resolver=resolver)
    _logger.debug("DatabaseManager created (default target %s)", resolver.default.key)
    return manager
