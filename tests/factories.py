"""Fake clocks and record builders shared by the test suite."""

import datetime
from typing import Iterable

from models.metrics_calculator import SessionMetrics
from models.session_statistics import SessionRecord
from models.typing_session import TypingSession

BASE_TIME = datetime.datetime(2024, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class FakeWallClock:
    """Manually advanced UTC datetime source."""

    def __init__(self, start: datetime.datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime.datetime:
        self.now += datetime.timedelta(**kwargs)
        return self.now


def make_record(
    session_id: str,
    net_wpm: float,
    language: str = "Python",
    timestamp: datetime.datetime = BASE_TIME,
    accuracy: float = 95.0,
    duration: float = 60.0,
    total_characters: int = 200,
) -> SessionRecord:
    """Build a SessionRecord with plausible metrics for the given net WPM."""
    return SessionRecord(
        session_id=session_id,
        timestamp=timestamp,
        language=language,
        duration=duration,
        metrics=SessionMetrics(
            gross_wpm=net_wpm + 2,
            net_wpm=net_wpm,
            accuracy=accuracy,
            errors=2,
            corrections=1,
            total_characters=total_characters,
            correct_characters=total_characters - 2,
            elapsed_time=duration,
        ),
        snippet_length=total_characters,
        difficulty=1.2,
    )


def type_text(session: TypingSession, clock: FakeClock, keys: Iterable[str], step: float = 0.2) -> None:
    """Feed keys into an active session, advancing the clock before each one."""
    for key in keys:
        clock.advance(step)
        session.process_input(key)
