"""TypingService: the operations exposed to the request-handling layer.

Validates raw input at the boundary, serializes work on each session through
the registry lock, and writes a SessionRecord to the statistics repository
when a session completes.
"""

from __future__ import annotations

import datetime
import logging
import time
from typing import Any, Callable, List, Mapping, Optional, Union

from pydantic import ValidationError

from helpers.debug_util import DebugUtil
from models.engine_config import EngineConfig
from models.exceptions import InvalidInput, InvalidStateTransition, SessionNotFound
from models.input_validator import InputValidator
from models.metrics_calculator import MetricsCalculator, calculate_difficulty
from models.session_registry import SessionRegistry
from models.session_requests import (
    CompleteSessionRequest,
    KeystrokeRequest,
    SnippetSource,
    key_event_from_character,
)
from models.session_responses import (
    CompleteSessionResponse,
    ProcessInputResponse,
    SessionStateResponse,
    StartSessionResponse,
)
from models.session_statistics import SessionRecord, SessionStatistics, StatisticsSummary
from models.statistics_repository import LeaderboardEntry, StatisticsRepository
from models.typing_session import SessionState, TypingSession

logger = logging.getLogger(__name__)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class TypingService:
    """Facade over the session registry, metrics calculator and statistics."""

    def __init__(
        self,
        registry: SessionRegistry,
        repository: StatisticsRepository,
        calculator: Optional[MetricsCalculator] = None,
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        now: Optional[Callable[[], datetime.datetime]] = None,
        debug_util: Optional[DebugUtil] = None,
    ) -> None:
        """Wire the service.

        Args:
            registry: Owner of live sessions.
            repository: Durable statistics store.
            calculator: Metrics calculator; built from ``config`` when omitted.
            config: Engine configuration. Defaults to ``EngineConfig()``.
            clock: Time source for keystroke timestamps, in seconds.
            now: Wall-clock source for record timestamps.
            debug_util: Optional DebugUtil for trace output.
        """
        self.config = config or EngineConfig()
        self.registry = registry
        self.repository = repository
        self.calculator = calculator or MetricsCalculator(
            burst_window_seconds=self.config.burst_window_seconds,
            pause_threshold_ms=self.config.pause_threshold_ms,
            top_mistakes=self.config.top_mistakes,
        )
        self._clock = clock or time.time
        self._now = now or _utcnow
        self.debug_util = debug_util or DebugUtil(self.config.debug_mode)

    # --- Sessions ------------------------------------------------------------

    def start_session(
        self, source: Union[SnippetSource, Mapping[str, Any]]
    ) -> StartSessionResponse:
        """Create and register a session for a snippet.

        Raises:
            InvalidInput: If the snippet or language tag is malformed.
        """
        if not isinstance(source, SnippetSource):
            try:
                source = SnippetSource.model_validate(dict(source))
            except (TypeError, ValueError, ValidationError) as e:
                raise InvalidInput(f"Invalid snippet source: {e}") from e

        session = TypingSession.create(source, clock=self._clock)
        self.registry.register(session)
        difficulty = calculate_difficulty(session.target_text).score
        logger.info("Started session %s (%s)", session.session_id, session.language)
        return StartSessionResponse(
            session_id=session.session_id,
            snippet=session.target_text,
            language=session.language,
            difficulty=difficulty,
        )

    def process_input(self, session_id: Any, character: Any) -> ProcessInputResponse:
        """Apply one keystroke to a live session.

        A session that has not started yet is started by its first keystroke.

        Raises:
            InvalidInput: If the id or character is malformed.
            SessionNotFound: If the session is unknown or expired.
            InvalidStateTransition: If the session is paused or completed.
        """
        session_id = InputValidator.validate_session_id(session_id)
        key = key_event_from_character(character)
        return self.handle_keystroke(KeystrokeRequest(session_id=session_id, key=key))

    def handle_keystroke(self, request: KeystrokeRequest) -> ProcessInputResponse:
        """Apply an already-validated keystroke request."""
        with self.registry.checkout(request.session_id) as session:
            if session.state in (SessionState.IDLE, SessionState.READY):
                session.start()
            entry = session.process_input(request.key.to_symbol())
            live_metrics = session.calculate_metrics(self.calculator)
            response = ProcessInputResponse(
                correct=entry.is_correct,
                cursor=session.position,
                live_metrics=live_metrics,
                completed=session.is_completed,
                state=session.state.value,
                progress=session.progress,
                expected_character=session.expected_character,
            )
        if response.completed:
            self.debug_util.debugMessage(f"Session {request.session_id} reached end of snippet")
        return response

    def pause_session(self, session_id: Any) -> SessionStateResponse:
        session_id = InputValidator.validate_session_id(session_id)
        with self.registry.checkout(session_id) as session:
            session.pause()
            return self._state_response(session)

    def resume_session(self, session_id: Any) -> SessionStateResponse:
        session_id = InputValidator.validate_session_id(session_id)
        with self.registry.checkout(session_id) as session:
            session.resume()
            return self._state_response(session)

    @staticmethod
    def _state_response(session: TypingSession) -> SessionStateResponse:
        return SessionStateResponse(
            session_id=session.session_id, state=session.state.value, cursor=session.position
        )

    def complete_session(self, session_id: Any, user_id: Any = "default") -> CompleteSessionResponse:
        """Finalize a session and append its record to the user's statistics.

        The session leaves the registry before the record is written, so a
        repeated call reports SessionNotFound instead of recording twice. If the
        write fails the attempt cannot be retried; the full record is logged at
        error level so it can be recovered by hand.

        Raises:
            InvalidInput: If the id or user id is malformed.
            SessionNotFound: If the session is unknown, expired or already finalized.
            InvalidStateTransition: If the session never started or is paused.
        """
        try:
            request = CompleteSessionRequest(session_id=session_id, user_id=user_id)
        except ValidationError as e:
            raise InvalidInput(f"Invalid completion request: {e}") from e

        with self.registry.checkout(request.session_id) as session:
            if session.state is SessionState.ACTIVE:
                session.complete()
            elif session.state is not SessionState.COMPLETED:
                raise InvalidStateTransition(
                    f"Cannot complete session in state: {session.state.value}",
                    state=session.state.value,
                    operation="complete",
                )
            metrics = self.calculator.calculate_session_metrics(session)
            detailed = self.calculator.calculate_detailed_metrics(session)
            duration = session.get_elapsed_time()
            record = SessionRecord(
                session_id=session.session_id,
                timestamp=self._now(),
                language=session.language,
                duration=duration,
                metrics=metrics,
                snippet_length=len(session.target_text),
                difficulty=detailed.difficulty.score,
            )
            if self.registry.remove(session.session_id) is None:
                raise SessionNotFound(session.session_id)

        try:
            self.repository.add_session_record(request.user_id, record)
        except Exception:
            logger.error(
                "Failed to persist session %s for %s; record: %s",
                record.session_id, request.user_id, record.model_dump_json(),
            )
            raise
        logger.info(
            "Completed session %s for %s: %s net WPM, %s%% accuracy",
            record.session_id, request.user_id, metrics.net_wpm, metrics.accuracy,
        )
        return CompleteSessionResponse(
            metrics=metrics, detailed_metrics=detailed, duration_ms=duration * 1000.0
        )

    # --- Statistics ------------------------------------------------------------

    def get_statistics(self, user_id: Any) -> StatisticsSummary:
        """Summary of a user's history; empty for users with no sessions."""
        user_id = InputValidator.validate_user_id(user_id)
        stats = self.repository.find_by_user_id(user_id)
        if stats is None:
            stats = SessionStatistics(user_id)
        return stats.summary(self.config.progress_days, now=self._now())

    def get_leaderboard(self, limit: Any = None) -> List[LeaderboardEntry]:
        limit = InputValidator.validate_limit(
            limit,
            maximum=self.config.leaderboard_max_limit,
            default=self.config.leaderboard_default_limit,
        )
        return self.repository.get_leaderboard(limit)

    # --- Lifecycle ---------------------------------------------------------------

    def start_background_sweep(self) -> None:
        self.registry.start_sweeper()

    def shutdown(self) -> None:
        """Stop the sweeper. Live sessions are dropped with the process."""
        self.registry.stop_sweeper()
