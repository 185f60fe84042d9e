"""Service initialization module.

Factory helpers to create and wire services with their dependencies.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from db.database_manager import DatabaseManager
from helpers.debug_util import DebugUtil
from models.engine_config import EngineConfig
from models.session_registry import SessionRegistry
from models.statistics_repository import (
    InMemoryStatisticsRepository,
    SqliteStatisticsRepository,
    StatisticsRepository,
)
from services.typing_service import TypingService

logger = logging.getLogger(__name__)

__all__ = ["TypingService", "init_services"]


def init_services(
    config: Optional[EngineConfig] = None,
    clock: Optional[Callable[[], float]] = None,
) -> TypingService:
    """Initialize and return a fully wired TypingService.

    A SQLite repository is used when ``config.db_path`` is set, otherwise an
    in-memory one.

    Example:
        service = init_services(EngineConfig.from_env()).
    """
    config = config or EngineConfig.from_env()
    debug_util = DebugUtil(config.debug_mode)

    repository: StatisticsRepository
    if config.db_path:
        db_manager = DatabaseManager(config.db_path, debug_util=debug_util)
        repository = SqliteStatisticsRepository(db_manager, debug_util=debug_util)
        logger.info("Using SQLite statistics store at %s", config.db_path)
    else:
        repository = InMemoryStatisticsRepository()
        logger.info("Using in-memory statistics store")

    registry = SessionRegistry(
        idle_timeout=config.idle_timeout_seconds,
        sweep_interval=config.sweep_interval_seconds,
        clock=clock,
        debug_util=debug_util,
    )
    return TypingService(
        registry=registry,
        repository=repository,
        config=config,
        clock=clock,
        debug_util=debug_util,
    )
