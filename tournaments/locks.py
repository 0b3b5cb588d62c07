"""Per-tournament mutual exclusion for bracket writers."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class TournamentLockRegistry:
    """Hands out one re-entrant lock per tournament id."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[int, threading.RLock] = {}

    def get(self, tournament_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(tournament_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[tournament_id] = lock
            return lock

    @contextmanager
    def hold(self, tournament_id: int) -> Iterator[None]:
        """Hold the tournament's lock for the duration of a block."""
        lock = self.get(tournament_id)
        with lock:
            logger.debug(f"Acquired lock for tournament {tournament_id}")
            yield

    def discard(self, tournament_id: int) -> None:
        with self._guard:
            self._locks.pop(tournament_id, None)
