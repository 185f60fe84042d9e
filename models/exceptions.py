"""Domain exceptions for the typing session engine.

Callers at the request boundary translate these into user-facing responses.
None of them are retried inside the engine.
"""

from typing import Optional


class TypingEngineError(Exception):
    """Base class for all typing engine errors."""

    def __init__(self, message: str = "Typing engine error") -> None:
        """Initialize the exception with an optional message."""
        self.message = message
        super().__init__(self.message)


class InvalidInput(TypingEngineError, ValueError):
    """Raised when a character, id, or payload is malformed."""

    def __init__(self, message: str = "Invalid input") -> None:
        super().__init__(message)


class InvalidStateTransition(TypingEngineError):
    """Raised when an operation is not allowed in the session's current state."""

    def __init__(
        self,
        message: str = "Invalid state transition",
        *,
        state: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        """Initialize with the offending state and the attempted operation."""
        self.state = state
        self.operation = operation
        super().__init__(message)


class SessionNotFound(TypingEngineError):
    """Raised when a session id is unknown or has been evicted."""

    def __init__(self, session_id: str, message: Optional[str] = None) -> None:
        self.session_id = session_id
        super().__init__(message or f"Session {session_id} not found")


class DuplicateSession(TypingEngineError):
    """Raised when registering a session id that is already live."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} is already registered")
