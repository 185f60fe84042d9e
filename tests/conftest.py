"""Pytest configuration for the test suite."""

import sys
from pathlib import Path
from typing import Callable, Generator

import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from app import create_app
from db.database_manager import DatabaseManager
from helpers.debug_util import DebugUtil
from models.engine_config import EngineConfig
from models.session_registry import SessionRegistry
from models.session_requests import SnippetSource
from models.statistics_repository import (
    InMemoryStatisticsRepository,
    SqliteStatisticsRepository,
)
from models.typing_session import TypingSession
from services.typing_service import TypingService
from tests.factories import FakeClock, FakeWallClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(100.0)


@pytest.fixture
def wall_clock() -> FakeWallClock:
    return FakeWallClock()


@pytest.fixture
def session_factory(clock: FakeClock) -> Callable[..., TypingSession]:
    """Create READY sessions on the shared fake clock."""

    def _make(snippet: str = "abc", language: str = "Python") -> TypingSession:
        return TypingSession.create(SnippetSource(snippet=snippet, language=language), clock=clock)

    return _make


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig(idle_timeout_seconds=60, sweep_interval_seconds=10)


@pytest.fixture
def registry(clock: FakeClock, engine_config: EngineConfig) -> SessionRegistry:
    return SessionRegistry(
        idle_timeout=engine_config.idle_timeout_seconds,
        sweep_interval=engine_config.sweep_interval_seconds,
        clock=clock,
        debug_util=DebugUtil("quiet"),
    )


@pytest.fixture
def memory_repository() -> InMemoryStatisticsRepository:
    return InMemoryStatisticsRepository()


@pytest.fixture
def db_manager() -> Generator[DatabaseManager, None, None]:
    """In-memory SQLite database, closed after the test."""
    manager = DatabaseManager(None, debug_util=DebugUtil("quiet"))
    try:
        yield manager
    finally:
        manager.close()


@pytest.fixture
def sqlite_repository(db_manager: DatabaseManager) -> SqliteStatisticsRepository:
    return SqliteStatisticsRepository(db_manager, debug_util=DebugUtil("quiet"))


@pytest.fixture
def service(
    registry: SessionRegistry,
    memory_repository: InMemoryStatisticsRepository,
    engine_config: EngineConfig,
    clock: FakeClock,
    wall_clock: FakeWallClock,
) -> TypingService:
    return TypingService(
        registry=registry,
        repository=memory_repository,
        config=engine_config,
        clock=clock,
        now=wall_clock,
        debug_util=DebugUtil("quiet"),
    )


@pytest.fixture
def app(service: TypingService):
    return create_app({"TESTING": True}, service=service)


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client
