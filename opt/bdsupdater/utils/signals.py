"""
Level-triggered signals shared between console notifications and the updater.

Notifications may arrive from any thread; waiters always run on the event
loop. A waiter observes the current state of a signal, not the history of
set/clear transitions that happened before it started waiting.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


def _running_loop():
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class ResetEvent:
    """Manual-reset event usable from any thread."""

    def __init__(self, initially_set: bool = False):
        self._event = asyncio.Event()
        self._loop = None
        if initially_set:
            self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def set(self) -> None:
        self._dispatch(self._event.set)

    def clear(self) -> None:
        self._dispatch(self._event.clear)

    async def wait(self) -> None:
        """Return as soon as the event is set."""
        self._loop = asyncio.get_running_loop()
        await self._event.wait()

    def _dispatch(self, action) -> None:
        loop = self._loop
        if loop is None or loop.is_closed() or _running_loop() is loop:
            action()
        else:
            loop.call_soon_threadsafe(action)
