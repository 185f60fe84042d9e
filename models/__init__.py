"""
Models package for the typing session engine.

This package contains the session state machine, the metrics calculator,
the live-session registry and the per-user statistics aggregate.
"""

from .exceptions import (
    DuplicateSession,
    InvalidInput,
    InvalidStateTransition,
    SessionNotFound,
    TypingEngineError,
)

__all__ = [
    "TypingEngineError",
    "InvalidInput",
    "InvalidStateTransition",
    "SessionNotFound",
    "DuplicateSession",
]
