"""Debug utilities for controlling trace output across the engine.

Supports a quiet mode (messages go to the logger at DEBUG level) and a loud
mode (messages are printed to stdout with a ``[DEBUG]`` prefix).
"""

import logging
import os
from typing import Optional

DEBUG_MODE_ENV = "TYPING_ENGINE_DEBUG_MODE"
VALID_MODES = ("quiet", "loud")


class DebugUtil:
    """Route debug messages based on the configured debug mode."""

    def __init__(self, mode: Optional[str] = None) -> None:
        """Initialize the debug mode.

        Args:
            mode: Explicit mode. When omitted, the TYPING_ENGINE_DEBUG_MODE
                environment variable is read. Unknown values fall back to "quiet".
        """
        if mode is None:
            mode = os.environ.get(DEBUG_MODE_ENV, "quiet")
        self._mode = self._normalize(mode)

        self._logger = logging.getLogger(self.__class__.__name__)
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)
            self._logger.setLevel(logging.DEBUG)

    @staticmethod
    def _normalize(mode: str) -> str:
        mode = (mode or "").lower()
        return mode if mode in VALID_MODES else "quiet"

    def debug_mode(self) -> str:
        """Return the current debug mode ("quiet" or "loud")."""
        return self._mode

    def debugMessage(self, *args: object) -> None:
        """Output a debug message according to the current mode.

        In "loud" mode the message is printed to stdout; in "quiet" mode it is
        logged. Empty messages are ignored in quiet mode.
        """
        if self._mode == "loud":
            print("[DEBUG]", *args)
            return
        message = " ".join(str(arg) for arg in args)
        if message:
            self._logger.debug(message)

    def set_mode(self, mode: str) -> None:
        """Change the debug mode. Invalid values default to "quiet"."""
        self._mode = self._normalize(mode)

    def is_loud(self) -> bool:
        """Return True if debug mode is "loud"."""
        return self._mode == "loud"

    def is_quiet(self) -> bool:
        """Return True if debug mode is "quiet"."""
        return self._mode == "quiet"
