"""Repositories for per-user session statistics and the global leaderboard.

Any backing store must support append, query by user, and a global top-K
scan by net WPM. The in-memory implementation serves tests and single-process
runs; the SQLite implementation persists records through ``DatabaseManager``.
"""

from __future__ import annotations

import datetime
import logging
import threading
from typing import Dict, List, Mapping, Optional, Protocol

from pydantic import BaseModel

from db.database_manager import DatabaseManager
from db.exceptions import DatabaseError
from helpers.debug_util import DebugUtil
from models.metrics_calculator import SessionMetrics
from models.session_statistics import SessionRecord, SessionStatistics

logger = logging.getLogger(__name__)


class LeaderboardEntry(BaseModel):
    """A user's overall personal best as shown on the leaderboard."""

    user_id: str
    best_wpm: float
    language: str
    achieved_at: datetime.datetime

    model_config = {"frozen": True}


def _leaderboard_sort_key(entry: LeaderboardEntry) -> tuple:
    return (-entry.best_wpm, entry.achieved_at, entry.user_id)


class StatisticsRepository(Protocol):
    """Storage abstraction for SessionStatistics."""

    def save(self, statistics: SessionStatistics) -> None:
        """Persist a user's statistics aggregate."""
        ...

    def find_by_user_id(self, user_id: str) -> Optional[SessionStatistics]:
        """Return the user's statistics or None if they have no history."""
        ...

    def add_session_record(self, user_id: str, record: SessionRecord) -> None:
        """Append one record to a user's history."""
        ...

    def get_leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        """Top users by personal-best net WPM, best first."""
        ...


class InMemoryStatisticsRepository:
    """Dict-backed repository keyed by user id."""

    def __init__(self) -> None:
        self._statistics: Dict[str, SessionStatistics] = {}
        self._lock = threading.Lock()

    def save(self, statistics: SessionStatistics) -> None:
        with self._lock:
            self._statistics[statistics.user_id] = statistics

    def find_by_user_id(self, user_id: str) -> Optional[SessionStatistics]:
        with self._lock:
            return self._statistics.get(user_id)

    def add_session_record(self, user_id: str, record: SessionRecord) -> None:
        with self._lock:
            stats = self._statistics.get(user_id)
            if stats is None:
                stats = SessionStatistics(user_id)
                self._statistics[user_id] = stats
            stats.add_session(record)
        logger.info("Recorded session %s for user %s", record.session_id, user_id)

    def get_leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        entries = []
        # Bests are read under the lock; writers mutate the aggregates in place.
        with self._lock:
            for stats in self._statistics.values():
                best = stats.get_personal_best()
                if best is not None:
                    entries.append(
                        LeaderboardEntry(
                            user_id=stats.user_id,
                            best_wpm=best.net_wpm,
                            language=best.language,
                            achieved_at=best.timestamp,
                        )
                    )
        entries.sort(key=_leaderboard_sort_key)
        return entries[:limit]


class SqliteStatisticsRepository:
    """Durable repository storing one row per SessionRecord.

    A user's SessionStatistics is rebuilt by replaying their rows in insertion
    order, so the personal-best map matches the in-memory behaviour.
    """

    COLUMNS = (
        "session_id, user_id, recorded_at, language, duration, gross_wpm, net_wpm, "
        "accuracy, errors, corrections, total_characters, correct_characters, "
        "elapsed_time, snippet_length, difficulty"
    )

    def __init__(self, db_manager: DatabaseManager, debug_util: Optional[DebugUtil] = None) -> None:
        """Bind to a DatabaseManager and make sure the schema exists."""
        self.db_manager = db_manager
        self.debug_util = debug_util or DebugUtil()
        self.db_manager.initialize_tables()

    @staticmethod
    def _format_timestamp(value: datetime.datetime) -> str:
        return value.astimezone(datetime.timezone.utc).isoformat(timespec="microseconds")

    def _row_to_record(self, row: Mapping[str, object]) -> SessionRecord:
        metrics = SessionMetrics(
            gross_wpm=float(str(row["gross_wpm"])),
            net_wpm=float(str(row["net_wpm"])),
            accuracy=float(str(row["accuracy"])),
            errors=int(str(row["errors"])),
            corrections=int(str(row["corrections"])),
            total_characters=int(str(row["total_characters"])),
            correct_characters=int(str(row["correct_characters"])),
            elapsed_time=float(str(row["elapsed_time"])),
        )
        return SessionRecord(
            session_id=str(row["session_id"]),
            timestamp=datetime.datetime.fromisoformat(str(row["recorded_at"])),
            language=str(row["language"]),
            duration=float(str(row["duration"])),
            metrics=metrics,
            snippet_length=int(str(row["snippet_length"])),
            difficulty=float(str(row["difficulty"])),
        )

    def _insert(self, user_id: str, record: SessionRecord, or_ignore: bool = False) -> None:
        verb = "INSERT OR IGNORE" if or_ignore else "INSERT"
        m = record.metrics
        self.db_manager.execute(
            f"{verb} INTO session_records ({self.COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                record.session_id,
                user_id,
                self._format_timestamp(record.timestamp),
                record.language,
                record.duration,
                m.gross_wpm,
                m.net_wpm,
                m.accuracy,
                m.errors,
                m.corrections,
                m.total_characters,
                m.correct_characters,
                m.elapsed_time,
                record.snippet_length,
                record.difficulty,
            ),
            commit=True,
        )

    def save(self, statistics: SessionStatistics) -> None:
        """Write any records of the aggregate that are not stored yet."""
        try:
            for record in statistics.sessions:
                self._insert(statistics.user_id, record, or_ignore=True)
        except DatabaseError as e:
            logger.error("Error saving statistics for %s: %s", statistics.user_id, e)
            raise

    def find_by_user_id(self, user_id: str) -> Optional[SessionStatistics]:
        try:
            rows = self.db_manager.fetchall(
                f"SELECT {self.COLUMNS} FROM session_records WHERE user_id = ? ORDER BY record_id",
                (user_id,),
            )
        except DatabaseError as e:
            logger.error("Error loading statistics for %s: %s", user_id, e)
            raise
        if not rows:
            return None
        stats = SessionStatistics(user_id)
        for row in rows:
            stats.add_session(self._row_to_record(row))
        return stats

    def add_session_record(self, user_id: str, record: SessionRecord) -> None:
        try:
            self._insert(user_id, record)
        except DatabaseError as e:
            logger.error("Error recording session %s for %s: %s", record.session_id, user_id, e)
            raise
        logger.info("Recorded session %s for user %s", record.session_id, user_id)

    def get_leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        """Scan rows best-first and keep each user's first (best) row."""
        try:
            rows = self.db_manager.fetchall(
                "SELECT user_id, net_wpm, language, recorded_at FROM session_records "
                "ORDER BY net_wpm DESC, recorded_at ASC, user_id ASC, record_id ASC"
            )
        except DatabaseError as e:
            logger.error("Error loading leaderboard: %s", e)
            raise
        entries: List[LeaderboardEntry] = []
        seen = set()
        for row in rows:
            user_id = str(row["user_id"])
            if user_id in seen:
                continue
            seen.add(user_id)
            entries.append(
                LeaderboardEntry(
                    user_id=user_id,
                    best_wpm=float(str(row["net_wpm"])),
                    language=str(row["language"]),
                    achieved_at=datetime.datetime.fromisoformat(str(row["recorded_at"])),
                )
            )
            if len(entries) >= limit:
                break
        return entries
