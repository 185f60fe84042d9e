"""Response DTOs returned to the request-handling layer."""

from pydantic import BaseModel, Field

from models.metrics_calculator import DetailedMetrics, SessionMetrics


class _Response(BaseModel):
    model_config = {"frozen": True}


class StartSessionResponse(_Response):
    session_id: str
    snippet: str
    language: str
    difficulty: float


class ProcessInputResponse(_Response):
    """Outcome of one keystroke plus the live metrics preview."""

    correct: bool
    cursor: int = Field(ge=0)
    live_metrics: SessionMetrics
    completed: bool
    state: str
    progress: float
    expected_character: str


class CompleteSessionResponse(_Response):
    metrics: SessionMetrics
    detailed_metrics: DetailedMetrics
    duration_ms: float = Field(ge=0)


class SessionStateResponse(_Response):
    session_id: str
    state: str
    cursor: int
