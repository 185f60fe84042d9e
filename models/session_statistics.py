"""Session records and the per-user statistics aggregate.

A SessionRecord is the durable unit written when a session completes.
SessionStatistics keeps a user's ordered history plus a per-language
personal-best map that is updated incrementally on every insert.
"""

from __future__ import annotations

import datetime
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from models.input_validator import InputValidator
from models.metrics_calculator import SessionMetrics

logger = logging.getLogger(__name__)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _as_aware(value: datetime.datetime) -> datetime.datetime:
    """Treat naive datetimes as UTC so records compare consistently."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


class SessionRecord(BaseModel):
    """Immutable snapshot of a completed session."""

    session_id: str
    timestamp: datetime.datetime = Field(default_factory=_utcnow)
    language: str
    duration: float = Field(ge=0, description="Seconds")
    metrics: SessionMetrics
    snippet_length: int = Field(ge=0)
    difficulty: float = Field(ge=1.0, le=2.0)

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime.datetime) -> datetime.datetime:
        return _as_aware(v)

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        return InputValidator.validate_language_name(v)

    @property
    def net_wpm(self) -> float:
        return self.metrics.net_wpm

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-friendly primitives."""
        return self.model_dump(mode="json")


class ProgressPoint(BaseModel):
    """Average speed and accuracy for one calendar day."""

    date: datetime.date
    wpm: float
    accuracy: float

    model_config = {"frozen": True}


class PersonalBestView(BaseModel):
    wpm: float
    accuracy: float
    language: str
    date: datetime.datetime

    model_config = {"frozen": True}


class StatisticsSummary(BaseModel):
    """Read-only view returned by the statistics endpoint."""

    user_id: str
    session_count: int = 0
    total_practice_time: float = 0.0
    total_characters_typed: int = 0
    average_metrics: Optional[SessionMetrics] = None
    personal_best: Optional[PersonalBestView] = None
    personal_bests: Dict[str, PersonalBestView] = Field(default_factory=dict)
    progress: List[ProgressPoint] = Field(default_factory=list)
    most_practiced_language: Optional[str] = None

    model_config = {"frozen": True}


class SessionStatistics:
    """A user's session history with incrementally maintained personal bests.

    The personal-best map always holds, per language, the earliest record (by
    timestamp) that reached the highest net WPM, whatever order the records
    arrive in. Records with equal scores and timestamps keep the first one
    added. Each insert is O(1).
    """

    def __init__(self, user_id: str) -> None:
        self._user_id = user_id
        self._sessions: List[SessionRecord] = []
        self._personal_bests: Dict[str, SessionRecord] = {}

    def add_session(self, record: SessionRecord) -> None:
        """Append a record and update the language's personal best."""
        self._sessions.append(record)
        self._update_personal_best(record)

    def _update_personal_best(self, record: SessionRecord) -> None:
        current = self._personal_bests.get(record.language)
        if (
            current is None
            or record.net_wpm > current.net_wpm
            or (record.net_wpm == current.net_wpm and record.timestamp < current.timestamp)
        ):
            self._personal_bests[record.language] = record
            logger.debug("New personal best for %s/%s: %s WPM",
                         self._user_id, record.language, record.net_wpm)

    # --- Queries -------------------------------------------------------------

    def get_sessions_by_language(self, language: str) -> List[SessionRecord]:
        return [s for s in self._sessions if s.language == language]

    def get_recent_sessions(self, count: int = 10) -> List[SessionRecord]:
        """Newest first. History order is left untouched."""
        ordered = sorted(self._sessions, key=lambda s: s.timestamp, reverse=True)
        return ordered[:count]

    def get_personal_best(self, language: Optional[str] = None) -> Optional[SessionRecord]:
        """Best record for a language, or the overall best when none is given.

        Overall ties are broken by the earliest timestamp.
        """
        if language is not None:
            return self._personal_bests.get(language)
        if not self._personal_bests:
            return None
        return min(self._personal_bests.values(), key=lambda r: (-r.net_wpm, r.timestamp))

    def get_average_metrics(self, language: Optional[str] = None) -> Optional[SessionMetrics]:
        """Arithmetic mean of every metric over the (optionally filtered) history.

        Returns None when there is nothing to average.
        """
        sessions = self.get_sessions_by_language(language) if language else self._sessions
        if not sessions:
            return None
        count = len(sessions)

        def mean(attr: str) -> float:
            return sum(getattr(s.metrics, attr) for s in sessions) / count

        return SessionMetrics(
            gross_wpm=round(mean("gross_wpm")),
            net_wpm=round(mean("net_wpm")),
            accuracy=round(mean("accuracy"), 1),
            errors=round(mean("errors")),
            corrections=round(mean("corrections")),
            total_characters=round(mean("total_characters")),
            correct_characters=round(mean("correct_characters")),
            elapsed_time=round(mean("elapsed_time")),
        )

    def get_progress_over_time(
        self, days: int = 7, now: Optional[datetime.datetime] = None
    ) -> List[ProgressPoint]:
        """Daily averages of net WPM and accuracy within the trailing window.

        Args:
            days: Size of the trailing window.
            now: Reference time. Defaults to the current UTC time.

        Returns:
            One point per calendar date (UTC), ascending.
        """
        reference = _as_aware(now) if now is not None else _utcnow()
        cutoff = reference - datetime.timedelta(days=days)

        by_date: Dict[datetime.date, List[SessionRecord]] = {}
        for record in self._sessions:
            if record.timestamp >= cutoff:
                day = record.timestamp.astimezone(datetime.timezone.utc).date()
                by_date.setdefault(day, []).append(record)

        progress = []
        for day, records in by_date.items():
            avg_wpm = sum(r.metrics.net_wpm for r in records) / len(records)
            avg_accuracy = sum(r.metrics.accuracy for r in records) / len(records)
            progress.append(ProgressPoint(date=day, wpm=round(avg_wpm), accuracy=round(avg_accuracy, 1)))
        return sorted(progress, key=lambda p: p.date)

    def get_total_practice_time(self) -> float:
        return sum(s.duration for s in self._sessions)

    def get_total_characters_typed(self) -> int:
        return sum(s.metrics.total_characters for s in self._sessions)

    def get_most_practiced_language(self) -> Optional[str]:
        """Language with the most sessions; ties go to the one seen first."""
        counts = Counter(s.language for s in self._sessions)
        if not counts:
            return None
        return counts.most_common(1)[0][0]

    def summary(
        self, progress_days: int = 7, now: Optional[datetime.datetime] = None
    ) -> StatisticsSummary:
        """Build the read-only statistics view for this user."""
        best = self.get_personal_best()
        return StatisticsSummary(
            user_id=self._user_id,
            session_count=self.session_count,
            total_practice_time=self.get_total_practice_time(),
            total_characters_typed=self.get_total_characters_typed(),
            average_metrics=self.get_average_metrics(),
            personal_best=_best_view(best) if best else None,
            personal_bests={lang: _best_view(r) for lang, r in self._personal_bests.items()},
            progress=self.get_progress_over_time(progress_days, now=now),
            most_practiced_language=self.get_most_practiced_language(),
        )

    # --- Accessors -------------------------------------------------------------

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    @property
    def sessions(self) -> List[SessionRecord]:
        return list(self._sessions)

    @property
    def personal_bests(self) -> Dict[str, SessionRecord]:
        return dict(self._personal_bests)


def _best_view(record: SessionRecord) -> PersonalBestView:
    return PersonalBestView(
        wpm=record.metrics.net_wpm,
        accuracy=record.metrics.accuracy,
        language=record.language,
        date=record.timestamp,
    )
