"""TypingSession: the per-attempt state machine and its append-only input log.

The input log is the single source of truth for an attempt. Error and
correction counts are derived from it rather than kept as separate counters.
"""

from __future__ import annotations

import enum
import logging
import time
import unicodedata
import uuid
from typing import Callable, List, Optional, Tuple

from models.character_input import CharacterInput
from models.exceptions import InvalidInput, InvalidStateTransition
from models.input_validator import BACKSPACE, InputValidator
from models.metrics_calculator import MetricsCalculator, SessionMetrics
from models.session_requests import SnippetSource

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class SessionState(str, enum.Enum):
    """Lifecycle states of a typing session."""

    IDLE = "idle"
    READY = "ready"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class TypingSession:
    """A single typing attempt against an immutable target snippet.

    Transitions:
        IDLE/READY --start()--> ACTIVE
        ACTIVE <--pause()/resume()--> PAUSED
        ACTIVE --complete()--> COMPLETED (explicitly, or when the cursor
        reaches the end of the target)

    Only ``process_input`` appends to the log.
    """

    def __init__(
        self,
        session_id: str,
        target_text: str,
        language: str,
        clock: Optional[Clock] = None,
    ) -> None:
        """Create an idle session.

        Args:
            session_id: UUID string identifying the session.
            target_text: The snippet to type. Must not be empty.
            language: Language tag supplied with the snippet.
            clock: Time source in seconds. Defaults to ``time.time``.

        Raises:
            InvalidInput: If the target text is empty.
        """
        if not target_text:
            raise InvalidInput("Target text cannot be empty")
        self._session_id = session_id
        self._target = unicodedata.normalize("NFC", target_text)
        self._language = language
        self._clock: Clock = clock or time.time
        self._state = SessionState.IDLE
        self._position = 0
        self._inputs: List[CharacterInput] = []
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None

    @classmethod
    def create(cls, source: SnippetSource, clock: Optional[Clock] = None) -> "TypingSession":
        """Create a session for a snippet with a fresh id, ready to start."""
        session = cls(str(uuid.uuid4()), source.snippet, source.language, clock=clock)
        session.mark_ready()
        logger.debug("Created session %s (%s, %d chars)", session.session_id,
                     session.language, len(session.target_text))
        return session

    # --- Transitions -----------------------------------------------------

    def _require(self, operation: str, *allowed: SessionState) -> None:
        if self._state not in allowed:
            raise InvalidStateTransition(
                f"Cannot {operation} session in state: {self._state.value}",
                state=self._state.value,
                operation=operation,
            )

    def mark_ready(self) -> None:
        """Move an idle session to READY once its snippet is loaded."""
        self._require("prepare", SessionState.IDLE)
        self._state = SessionState.READY

    def start(self) -> None:
        self._require("start", SessionState.IDLE, SessionState.READY)
        self._state = SessionState.ACTIVE
        self._start_time = self._clock()

    def pause(self) -> None:
        self._require("pause", SessionState.ACTIVE)
        self._state = SessionState.PAUSED

    def resume(self) -> None:
        self._require("resume", SessionState.PAUSED)
        self._state = SessionState.ACTIVE

    def complete(self) -> None:
        self._require("complete", SessionState.ACTIVE)
        self._state = SessionState.COMPLETED
        self._end_time = self._clock()

    # --- Input ------------------------------------------------------------

    def process_input(self, character: str) -> CharacterInput:
        """Apply one keystroke and append it to the log.

        A normal character advances the cursor by one; a mismatch counts as
        an error. The backspace sentinel moves the cursor back by one (never
        below zero) and counts as a correction. Reaching the end of the target
        completes the session.

        Args:
            character: Exactly one symbol, or ``"\\b"`` for backspace.

        Returns:
            The recorded CharacterInput.

        Raises:
            InvalidInput: If ``character`` is not a single symbol.
            InvalidStateTransition: If the session is not ACTIVE.
        """
        InputValidator.validate_single_character(character)
        self._require("process input for", SessionState.ACTIVE)

        character = unicodedata.normalize("NFC", character)
        expected = self.expected_character
        is_backspace = character == BACKSPACE
        record = CharacterInput(
            expected=expected,
            actual=character,
            timestamp=self._clock(),
            is_correct=(not is_backspace and character == expected),
            position=self._position,
        )
        self._inputs.append(record)

        if is_backspace:
            if self._position > 0:
                self._position -= 1
        else:
            self._position += 1

        if self._position >= len(self._target):
            self.complete()
        return record

    # --- Time ---------------------------------------------------------------

    def get_elapsed_time(self) -> float:
        """Seconds from start to end, or to "now" while the session is live.

        Every rate-based metric uses this value.
        """
        if self._start_time is None:
            return 0.0
        end = self._end_time if self._end_time is not None else self._clock()
        return max(0.0, end - self._start_time)

    def reference_time(self) -> float:
        """The end time of a finished session, otherwise the current clock time."""
        return self._end_time if self._end_time is not None else self._clock()

    def calculate_metrics(self, calculator: Optional[MetricsCalculator] = None) -> SessionMetrics:
        """Live summary metrics derived from the input log."""
        return (calculator or MetricsCalculator()).calculate_session_metrics(self)

    # --- Read-only views -----------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def target_text(self) -> str:
        return self._target

    @property
    def language(self) -> str:
        return self._language

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def position(self) -> int:
        return self._position

    @property
    def start_time(self) -> Optional[float]:
        return self._start_time

    @property
    def end_time(self) -> Optional[float]:
        return self._end_time

    @property
    def inputs(self) -> Tuple[CharacterInput, ...]:
        """Snapshot of the full log, backspaces included."""
        return tuple(self._inputs)

    @property
    def typed_inputs(self) -> Tuple[CharacterInput, ...]:
        """Character events only; backspaces are excluded from tallies."""
        return tuple(i for i in self._inputs if not i.is_backspace)

    @property
    def errors(self) -> int:
        return sum(1 for i in self._inputs if i.is_error)

    @property
    def corrections(self) -> int:
        return sum(1 for i in self._inputs if i.is_backspace)

    @property
    def expected_character(self) -> str:
        """The character at the cursor, or an empty string at the end."""
        if self._position < len(self._target):
            return self._target[self._position]
        return ""

    @property
    def progress(self) -> float:
        """Percentage of the target traversed by the cursor."""
        return self._position / len(self._target) * 100

    @property
    def is_completed(self) -> bool:
        return self._state is SessionState.COMPLETED

    def __repr__(self) -> str:
        return (
            f"TypingSession(id={self._session_id!r}, state={self._state.value}, "
            f"position={self._position}/{len(self._target)})"
        )
