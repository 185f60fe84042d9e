"""MetricsCalculator: pure derivations over a typing session's input log.

Nothing here mutates a session. Every ratio guards its denominator: an empty
log yields 100% accuracy and zero for every rate, never an exception.
Backspace entries are excluded from character totals, accuracy, WPM and
timing; they only contribute to the correction count.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from typing import TYPE_CHECKING, Dict, List, Sequence, Tuple

from pydantic import BaseModel, Field

from models.character_input import CharacterInput

if TYPE_CHECKING:  # Avoid import cycles at runtime
    from models.typing_session import TypingSession

logger = logging.getLogger(__name__)

CHARS_PER_WORD = 5
BURST_WINDOW_SECONDS = 10.0
PAUSE_THRESHOLD_MS = 2000.0
TOP_MISTAKES = 5
LAST_MINUTE_SECONDS = 60.0
INDENT_NORMALIZER = 40.0
LINE_LENGTH_NORMALIZER = 80.0
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 2.0

SYMBOL_PATTERN = re.compile(r"[^a-zA-Z0-9\s]")


# --- Result models -------------------------------------------------------


class _Metrics(BaseModel):
    model_config = {"frozen": True}


class SessionMetrics(_Metrics):
    """Point-in-time summary shown during typing and persisted with a record."""

    gross_wpm: float = Field(ge=0)
    net_wpm: float = Field(ge=0)
    accuracy: float = Field(ge=0, le=100)
    errors: int = Field(ge=0)
    corrections: int = Field(ge=0)
    total_characters: int = Field(ge=0)
    correct_characters: int = Field(ge=0)
    elapsed_time: float = Field(ge=0, description="Seconds")


class WpmMetrics(_Metrics):
    gross: float
    net: float
    burst: float


class AccuracyMetrics(_Metrics):
    overall: float
    last_minute: float
    per_character: Dict[str, float]


class ErrorMetrics(_Metrics):
    count: int
    rate: float = Field(description="Errors per 100 typed characters")
    top_mistakes: List[str]


class TimingMetrics(_Metrics):
    avg_delay: float = Field(description="Mean inter-key delay in ms")
    consistency: float = Field(description="Population std dev of inter-key delays in ms")
    pause_count: int


class DifficultyFactors(_Metrics):
    symbol_density: float
    indentation_depth: float
    line_complexity: float


class DifficultyMetrics(_Metrics):
    score: float = Field(ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)
    factors: DifficultyFactors


class DetailedMetrics(_Metrics):
    """Full report derived from a session log; never a source of truth."""

    wpm: WpmMetrics
    accuracy: AccuracyMetrics
    errors: ErrorMetrics
    timing: TimingMetrics
    difficulty: DifficultyMetrics


# --- Pure functions ------------------------------------------------------


def gross_wpm(total_chars: int, elapsed_seconds: float) -> float:
    """Raw words per minute, five characters to a word."""
    minutes = elapsed_seconds / 60.0
    if minutes <= 0:
        return 0.0
    return (total_chars / CHARS_PER_WORD) / minutes


def net_wpm(total_chars: int, errors: int, elapsed_seconds: float) -> float:
    """Gross WPM penalized by errors per minute, floored at zero."""
    minutes = elapsed_seconds / 60.0
    if minutes <= 0:
        return 0.0
    return max(0.0, gross_wpm(total_chars, elapsed_seconds) - errors / minutes)


def accuracy_percent(correct: int, total: int) -> float:
    """Percentage of correct characters; 100 when nothing has been typed."""
    if total == 0:
        return 100.0
    return correct / total * 100.0


def _window_wpm(count: int, window_seconds: float) -> float:
    return (count / CHARS_PER_WORD) * 60.0 / window_seconds


def burst_wpm(timestamps: Sequence[float], window_seconds: float = BURST_WINDOW_SECONDS) -> float:
    """Peak WPM over any window ``[t, t + W)`` starting at an event.

    Timestamps must be non-decreasing. Uses a two-pointer sweep, O(n).
    Fewer than two events yield 0.
    """
    n = len(timestamps)
    if n < 2:
        return 0.0
    best = 0
    end = 0
    for start in range(n):
        limit = timestamps[start] + window_seconds
        if end < start:
            end = start
        while end < n and timestamps[end] < limit:
            end += 1
        best = max(best, end - start)
    return _window_wpm(best, window_seconds)


def burst_wpm_naive(
    timestamps: Sequence[float], window_seconds: float = BURST_WINDOW_SECONDS
) -> float:
    """Quadratic reference implementation of :func:`burst_wpm`."""
    n = len(timestamps)
    if n < 2:
        return 0.0
    best = 0.0
    for start in range(n):
        limit = timestamps[start] + window_seconds
        count = 0
        for j in range(start, n):
            if timestamps[j] >= limit:
                break
            count += 1
        best = max(best, _window_wpm(count, window_seconds))
    return best


def population_std_dev(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def inter_key_delays_ms(inputs: Sequence[CharacterInput]) -> List[float]:
    return [
        (inputs[i].timestamp - inputs[i - 1].timestamp) * 1000.0 for i in range(1, len(inputs))
    ]


def top_mistakes(inputs: Sequence[CharacterInput], limit: int = TOP_MISTAKES) -> List[str]:
    """Most frequent ``expected→actual`` pairs; ties keep first-occurrence order."""
    counts: Counter[str] = Counter()
    first_seen: Dict[str, int] = {}
    for index, entry in enumerate(inputs):
        if not entry.is_error:
            continue
        key = entry.mistake_key
        counts[key] += 1
        first_seen.setdefault(key, index)
    ranked: List[Tuple[str, int]] = sorted(
        counts.items(), key=lambda item: (-item[1], first_seen[item[0]])
    )
    return [key for key, _ in ranked[:limit]]


def calculate_difficulty(text: str) -> DifficultyMetrics:
    """Rate a snippet from its text alone so scores compare across users.

    ``score = clamp(1 + 0.5*symbolDensity + 0.3*indentDepth + 0.2*lineComplexity, 1, 2)``
    """
    if not text:
        return DifficultyMetrics(
            score=MIN_DIFFICULTY,
            factors=DifficultyFactors(symbol_density=0.0, indentation_depth=0.0, line_complexity=0.0),
        )
    lines = text.split("\n")
    symbol_density = len(SYMBOL_PATTERN.findall(text)) / len(text)
    indents = [len(line) - len(line.lstrip()) for line in lines]
    indentation_depth = (sum(indents) / len(lines)) / INDENT_NORMALIZER
    line_complexity = (len(text) / len(lines)) / LINE_LENGTH_NORMALIZER

    score = 1.0 + symbol_density * 0.5 + indentation_depth * 0.3 + line_complexity * 0.2
    score = min(MAX_DIFFICULTY, max(MIN_DIFFICULTY, round(score, 2)))
    return DifficultyMetrics(
        score=score,
        factors=DifficultyFactors(
            symbol_density=round(symbol_density, 2),
            indentation_depth=round(indentation_depth, 2),
            line_complexity=round(line_complexity, 2),
        ),
    )


# --- Calculator ------------------------------------------------------------


class MetricsCalculator:
    """Stateless service computing live and final metrics for a session."""

    def __init__(
        self,
        burst_window_seconds: float = BURST_WINDOW_SECONDS,
        pause_threshold_ms: float = PAUSE_THRESHOLD_MS,
        top_mistakes: int = TOP_MISTAKES,
    ) -> None:
        self.burst_window_seconds = burst_window_seconds
        self.pause_threshold_ms = pause_threshold_ms
        self.top_mistakes = top_mistakes

    def calculate_session_metrics(self, session: "TypingSession") -> SessionMetrics:
        """Summary metrics for live preview and persisted records."""
        typed = session.typed_inputs
        elapsed = session.get_elapsed_time()
        total = len(typed)
        correct = sum(1 for i in typed if i.is_correct)
        errors = total - correct
        return SessionMetrics(
            gross_wpm=round(gross_wpm(total, elapsed)),
            net_wpm=round(net_wpm(total, errors, elapsed)),
            accuracy=round(accuracy_percent(correct, total), 1),
            errors=errors,
            corrections=session.corrections,
            total_characters=total,
            correct_characters=correct,
            elapsed_time=elapsed,
        )

    def calculate_detailed_metrics(self, session: "TypingSession") -> DetailedMetrics:
        """Full report: WPM variants, accuracy, errors, timing and difficulty."""
        typed = session.typed_inputs
        elapsed = session.get_elapsed_time()
        metrics = DetailedMetrics(
            wpm=self._wpm_metrics(typed, elapsed),
            accuracy=self._accuracy_metrics(typed, session.reference_time()),
            errors=self._error_metrics(typed),
            timing=self._timing_metrics(typed),
            difficulty=calculate_difficulty(session.target_text),
        )
        logger.debug("Detailed metrics for %s: %s", session.session_id, metrics.wpm)
        return metrics

    def _wpm_metrics(self, typed: Sequence[CharacterInput], elapsed: float) -> WpmMetrics:
        total = len(typed)
        errors = sum(1 for i in typed if not i.is_correct)
        return WpmMetrics(
            gross=round(gross_wpm(total, elapsed)),
            net=round(net_wpm(total, errors, elapsed)),
            burst=round(burst_wpm([i.timestamp for i in typed], self.burst_window_seconds)),
        )

    def _accuracy_metrics(
        self, typed: Sequence[CharacterInput], reference_time: float
    ) -> AccuracyMetrics:
        recent = [i for i in typed if i.timestamp >= reference_time - LAST_MINUTE_SECONDS]

        totals: Dict[str, List[int]] = {}
        for entry in typed:
            bucket = totals.setdefault(entry.expected, [0, 0])
            bucket[1] += 1
            if entry.is_correct:
                bucket[0] += 1
        per_character = {
            char: accuracy_percent(correct, total) for char, (correct, total) in totals.items()
        }
        return AccuracyMetrics(
            overall=self._rounded_accuracy(typed),
            last_minute=self._rounded_accuracy(recent),
            per_character=per_character,
        )

    @staticmethod
    def _rounded_accuracy(inputs: Sequence[CharacterInput]) -> float:
        correct = sum(1 for i in inputs if i.is_correct)
        return round(accuracy_percent(correct, len(inputs)), 1)

    def _error_metrics(self, typed: Sequence[CharacterInput]) -> ErrorMetrics:
        count = sum(1 for i in typed if i.is_error)
        rate = count / max(len(typed), 1) * 100.0
        return ErrorMetrics(
            count=count,
            rate=round(rate, 1),
            top_mistakes=top_mistakes(typed, self.top_mistakes),
        )

    def _timing_metrics(self, typed: Sequence[CharacterInput]) -> TimingMetrics:
        if len(typed) < 2:
            return TimingMetrics(avg_delay=0.0, consistency=0.0, pause_count=0)
        delays = inter_key_delays_ms(typed)
        pauses = sum(1 for d in delays if d > self.pause_threshold_ms)
        return TimingMetrics(
            avg_delay=round(sum(delays) / len(delays)),
            consistency=round(population_std_dev(delays)),
            pause_count=pauses,
        )
