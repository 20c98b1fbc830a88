"""
Player activity tracking.

The server is idle when no players are connected or when the process is
not running. Connection notifications come from console pattern matches
and the exit notification from the process supervisor.
"""

import logging
import threading

from ..utils.signals import ResetEvent

logger = logging.getLogger(__name__)


class IdleTracker:
    """Counts connected players and exposes a waitable idle signal."""

    def __init__(self):
        self._lock = threading.Lock()
        self._player_count = 0
        self._idle = ResetEvent(initially_set=True)

    @property
    def player_count(self) -> int:
        with self._lock:
            return self._player_count

    @property
    def is_idle(self) -> bool:
        return self._idle.is_set()

    def on_player_connected(self, *args) -> None:
        with self._lock:
            self._player_count += 1
            count = self._player_count
            self._update_idle(count)
        logger.debug(f"Player connected ({count} online)")

    def on_player_disconnected(self, *args) -> None:
        with self._lock:
            self._player_count -= 1
            count = self._player_count
            self._update_idle(count)
        logger.debug(f"Player disconnected ({count} online)")

    def on_process_exited(self, *args) -> None:
        # Disconnect lines are not printed when the server dies.
        with self._lock:
            self._player_count = 0
            self._idle.set()
        logger.debug("Server process exited, player count reset")

    def _update_idle(self, count: int) -> None:
        if count <= 0:
            self._idle.set()
        else:
            self._idle.clear()

    async def wait_idle(self) -> None:
        await self._idle.wait()
