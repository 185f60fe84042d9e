"""Tests for the statistics repositories and leaderboard."""

import datetime
import threading

import pytest

from db.exceptions import IntegrityError
from models.session_statistics import SessionStatistics
from tests.factories import BASE_TIME, make_record


@pytest.fixture(params=["memory", "sqlite"])
def repository(request):
    """Run each test against both repository implementations."""
    return request.getfixturevalue(f"{request.param}_repository")


def _seed(repository) -> None:
    minute = datetime.timedelta(minutes=1)
    repository.add_session_record("alice", make_record("a1", 40, timestamp=BASE_TIME))
    repository.add_session_record("alice", make_record("a2", 72, language="Go", timestamp=BASE_TIME + minute))
    repository.add_session_record("bob", make_record("b1", 72, timestamp=BASE_TIME + 2 * minute))
    repository.add_session_record("carol", make_record("c1", 55, timestamp=BASE_TIME))
    repository.add_session_record("carol", make_record("c2", 80, timestamp=BASE_TIME + 3 * minute))
    repository.add_session_record("dave", make_record("d1", 72, timestamp=BASE_TIME + minute))


class TestStatisticsRepository:
    def test_unknown_user(self, repository):
        assert repository.find_by_user_id("nobody") is None

    def test_add_and_find(self, repository):
        repository.add_session_record("alice", make_record("s1", 40))
        repository.add_session_record("alice", make_record("s2", 55))
        stats = repository.find_by_user_id("alice")
        assert stats.session_count == 2
        assert [r.session_id for r in stats.sessions] == ["s1", "s2"]
        assert stats.get_personal_best("Python").session_id == "s2"

    def test_records_round_trip_fields(self, repository):
        original = make_record("s1", 42, language="C++", accuracy=97.5, duration=12.25)
        repository.add_session_record("alice", original)
        loaded = repository.find_by_user_id("alice").sessions[0]
        assert loaded == original

    def test_save_aggregate(self, repository):
        stats = SessionStatistics("erin")
        stats.add_session(make_record("e1", 30))
        stats.add_session(make_record("e2", 35))
        repository.save(stats)
        repository.save(stats)
        loaded = repository.find_by_user_id("erin")
        assert loaded.session_count == 2

    def test_leaderboard_order(self, repository):
        _seed(repository)
        board = repository.get_leaderboard(10)
        assert [e.user_id for e in board] == ["carol", "alice", "dave", "bob"]
        assert [e.best_wpm for e in board] == [80, 72, 72, 72]
        assert board[1].language == "Go"

    def test_leaderboard_limit(self, repository):
        _seed(repository)
        board = repository.get_leaderboard(2)
        assert [e.user_id for e in board] == ["carol", "alice"]

    def test_empty_leaderboard(self, repository):
        assert repository.get_leaderboard(5) == []


def test_implementations_agree(memory_repository, sqlite_repository):
    _seed(memory_repository)
    _seed(sqlite_repository)
    assert memory_repository.get_leaderboard(10) == sqlite_repository.get_leaderboard(10)


def test_implementations_agree_on_out_of_order_ties(memory_repository, sqlite_repository):
    later = BASE_TIME + datetime.timedelta(hours=1)
    for repository in (memory_repository, sqlite_repository):
        repository.add_session_record("alice", make_record("a-late", 70, timestamp=later))
        repository.add_session_record("alice", make_record("a-early", 70, timestamp=BASE_TIME))
        repository.add_session_record("bob", make_record("b1", 70, timestamp=later))

    board = memory_repository.get_leaderboard(10)
    assert board == sqlite_repository.get_leaderboard(10)
    assert [e.user_id for e in board] == ["alice", "bob"]
    assert board[0].achieved_at == BASE_TIME
    assert (
        memory_repository.find_by_user_id("alice").get_personal_best("Python").session_id
        == sqlite_repository.find_by_user_id("alice").get_personal_best("Python").session_id
        == "a-early"
    )


def test_in_memory_leaderboard_during_concurrent_writes(memory_repository):
    memory_repository.add_session_record("alice", make_record("seed", 40))
    done = threading.Event()
    errors = []

    def writer():
        try:
            for i in range(300):
                memory_repository.add_session_record(
                    "alice", make_record(f"s{i}", 40 + i % 7, language=f"Lang{i}")
                )
                memory_repository.add_session_record(f"user{i:03d}", make_record(f"u{i}", 30))
        except Exception as e:
            errors.append(e)
        finally:
            done.set()

    thread = threading.Thread(target=writer)
    thread.start()
    try:
        while not done.is_set():
            memory_repository.get_leaderboard(5)
    finally:
        thread.join()

    assert errors == []
    board = memory_repository.get_leaderboard(5)
    assert board[0].user_id == "alice"
    assert board[0].best_wpm == 46


def test_sqlite_rejects_duplicate_session_id(sqlite_repository):
    sqlite_repository.add_session_record("alice", make_record("s1", 40))
    with pytest.raises(IntegrityError):
        sqlite_repository.add_session_record("alice", make_record("s1", 45))


def test_sqlite_persists_across_managers(tmp_path):
    from db.database_manager import DatabaseManager
    from models.statistics_repository import SqliteStatisticsRepository

    path = str(tmp_path / "stats.db")
    with DatabaseManager(path) as manager:
        SqliteStatisticsRepository(manager).add_session_record("alice", make_record("s1", 40))
    with DatabaseManager(path) as manager:
        stats = SqliteStatisticsRepository(manager).find_by_user_id("alice")
    assert stats.session_count == 1
