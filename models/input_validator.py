"""Boundary validation for values arriving from the request layer.

Every check raises ``InvalidInput``; nothing is silently coerced.
"""

import re
import uuid
from typing import Any, Optional

from models.exceptions import InvalidInput

BACKSPACE = "\b"

USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{3,64}$")
LANGUAGE_PATTERN = re.compile(r"^[A-Za-z0-9+#\-_. ]{1,50}$")
LIMIT_PATTERN = re.compile(r"^-?[0-9]+$")


class InputValidator:
    """Static validators for characters, ids, and query parameters."""

    @staticmethod
    def validate_single_character(value: Any) -> str:
        """Return ``value`` if it is exactly one symbol (or the backspace sentinel)."""
        if not isinstance(value, str):
            raise InvalidInput("Input must be a string")
        if len(value) != 1:
            raise InvalidInput("Input must be exactly one character")
        return value

    @staticmethod
    def validate_session_id(value: Any) -> str:
        """Session ids are UUID strings."""
        if not isinstance(value, str):
            raise InvalidInput("Session ID must be a string")
        try:
            uuid.UUID(value)
        except ValueError as e:
            raise InvalidInput("Invalid session ID format") from e
        return value

    @staticmethod
    def validate_user_id(value: Any) -> str:
        """User ids are 3-64 characters of letters, digits, underscores or hyphens."""
        if not isinstance(value, str):
            raise InvalidInput("User ID must be a string")
        if not USER_ID_PATTERN.match(value):
            raise InvalidInput("Invalid user ID format")
        return value

    @staticmethod
    def validate_language_name(value: Any) -> str:
        """Validate and strip a language tag such as ``Python`` or ``C++``."""
        if not isinstance(value, str):
            raise InvalidInput("Language name must be a string")
        if not LANGUAGE_PATTERN.match(value) or not value.strip():
            raise InvalidInput("Invalid language name format")
        return value.strip()

    @staticmethod
    def validate_snippet(value: Any) -> str:
        if not isinstance(value, str):
            raise InvalidInput("Snippet must be a string")
        if not value:
            raise InvalidInput("Snippet cannot be empty")
        return value

    @staticmethod
    def validate_limit(
        value: Any, minimum: int = 1, maximum: int = 100, default: Optional[int] = None
    ) -> int:
        """Validate an integer limit, accepting numeric strings from query params.

        Args:
            value: Raw value. ``None`` returns ``default`` when one is given.
            minimum: Smallest allowed value (inclusive).
            maximum: Largest allowed value (inclusive).
            default: Value used when ``value`` is None.
        """
        if value is None and default is not None:
            return default
        if isinstance(value, bool):
            raise InvalidInput("limit must be an integer")
        if isinstance(value, str):
            if not LIMIT_PATTERN.match(value.strip()):
                raise InvalidInput("limit must be an integer")
            try:
                value = int(value)
            except ValueError as e:
                raise InvalidInput("limit must be an integer") from e
        if not isinstance(value, int):
            raise InvalidInput("limit must be an integer")
        if value < minimum or value > maximum:
            raise InvalidInput(f"limit must be between {minimum} and {maximum}")
        return value
