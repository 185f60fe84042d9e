"""Helper utilities for the typing engine.

This package contains small utilities shared across models, services and the API.
"""

from .debug_util import DebugUtil  # noqa: F401
