"""SessionRegistry: TTL store owning live typing sessions.

Entries map a session id to the session and its last activity time. Entries
are refreshed on every processed keystroke, removed on completion, and
evicted by a periodic sweep once idle past the timeout. All map access goes
through a single lock, including the background sweep.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from helpers.debug_util import DebugUtil
from models.exceptions import DuplicateSession, SessionNotFound
from models.typing_session import TypingSession

logger = logging.getLogger(__name__)

DEFAULT_IDLE_TIMEOUT_SECONDS = 30 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60


class RegistryEntry:
    """A live session plus the clock time of its last activity."""

    __slots__ = ("session", "last_activity")

    def __init__(self, session: TypingSession, last_activity: float) -> None:
        self.session = session
        self.last_activity = last_activity

    def idle_for(self, now: float) -> float:
        return now - self.last_activity


class SessionRegistry:
    """In-memory TTL cache of live sessions with idle eviction.

    Lookups of missing or expired ids return None rather than raising. The
    clock is injectable so tests can advance virtual time.
    """

    def __init__(
        self,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Optional[Callable[[], float]] = None,
        debug_util: Optional[DebugUtil] = None,
    ) -> None:
        """Create an empty registry.

        Args:
            idle_timeout: Seconds without activity after which an entry expires.
            sweep_interval: Seconds between background sweeps.
            clock: Time source in seconds. Defaults to ``time.monotonic``.
            debug_util: Optional DebugUtil for trace output.
        """
        self.idle_timeout = idle_timeout
        self.sweep_interval = sweep_interval
        self._clock = clock or time.monotonic
        self.debug_util = debug_util or DebugUtil()
        self._entries: Dict[str, RegistryEntry] = {}
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    # --- Internal helpers ------------------------------------------------

    def _is_expired(self, entry: RegistryEntry, now: float) -> bool:
        return entry.idle_for(now) > self.idle_timeout

    def _live_entry(self, session_id: str) -> Optional[RegistryEntry]:
        """Return the entry if present and not expired; drop it if expired.

        Caller must hold the lock.
        """
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        if self._is_expired(entry, self._clock()):
            del self._entries[session_id]
            logger.info("Evicted expired session %s on lookup", session_id)
            return None
        return entry

    # --- Public API ----------------------------------------------------------

    def register(self, session: TypingSession) -> None:
        """Add a new session.

        Raises:
            DuplicateSession: If a live session already uses this id.
        """
        with self._lock:
            if self._live_entry(session.session_id) is not None:
                raise DuplicateSession(session.session_id)
            self._entries[session.session_id] = RegistryEntry(session, self._clock())
        self.debug_util.debugMessage(f"Registered session {session.session_id}")

    def get(self, session_id: str) -> Optional[TypingSession]:
        """Return the live session, or None if unknown or expired."""
        with self._lock:
            entry = self._live_entry(session_id)
            return entry.session if entry else None

    def touch(self, session_id: str) -> bool:
        """Refresh an entry's activity time. Returns False if it is not live."""
        with self._lock:
            entry = self._live_entry(session_id)
            if entry is None:
                return False
            entry.last_activity = self._clock()
            return True

    def remove(self, session_id: str) -> Optional[TypingSession]:
        """Remove an entry and return its session, or None if it was not live."""
        with self._lock:
            entry = self._live_entry(session_id)
            if entry is None:
                return None
            del self._entries[session_id]
        self.debug_util.debugMessage(f"Removed session {session_id}")
        return entry.session

    @contextlib.contextmanager
    def checkout(self, session_id: str) -> Iterator[TypingSession]:
        """Hold the registry lock while operating on one session.

        The entry's activity time is refreshed when the block exits, whether
        or not it raised.

        Raises:
            SessionNotFound: If the id is unknown or expired.
        """
        with self._lock:
            entry = self._live_entry(session_id)
            if entry is None:
                raise SessionNotFound(session_id)
            try:
                yield entry.session
            finally:
                entry.last_activity = self._clock()

    def sweep(self) -> int:
        """Evict every entry idle beyond the timeout.

        Never raises; failures are logged and the sweep reports zero.

        Returns:
            Number of sessions evicted.
        """
        try:
            with self._lock:
                now = self._clock()
                expired: List[Tuple[str, float]] = [
                    (session_id, entry.idle_for(now))
                    for session_id, entry in self._entries.items()
                    if self._is_expired(entry, now)
                ]
                for session_id, _ in expired:
                    del self._entries[session_id]
            for session_id, idle in expired:
                logger.info("Removing abandoned session %s (idle %.0fs)", session_id, idle)
            if expired:
                logger.info("Sweep removed %d abandoned sessions", len(expired))
            return len(expired)
        except Exception:
            logger.exception("Session sweep failed")
            return 0

    def start_sweeper(self) -> None:
        """Run :meth:`sweep` every ``sweep_interval`` seconds on a daemon thread."""
        with self._lock:
            if self._sweeper is not None and self._sweeper.is_alive():
                return
            self._stop_event.clear()
            self._sweeper = threading.Thread(
                target=self._sweep_loop, name="session-registry-sweeper", daemon=True
            )
            self._sweeper.start()
        logger.info("Session sweeper started (interval %ss, timeout %ss)",
                    self.sweep_interval, self.idle_timeout)

    def stop_sweeper(self, timeout: Optional[float] = None) -> None:
        """Stop the background sweep thread if running."""
        self._stop_event.set()
        sweeper = self._sweeper
        if sweeper is not None:
            sweeper.join(timeout)
        self._sweeper = None
        logger.info("Session sweeper stopped")

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.sweep_interval):
            self.sweep()

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, session_id: object) -> bool:
        if not isinstance(session_id, str):
            return False
        return self.get(session_id) is not None
