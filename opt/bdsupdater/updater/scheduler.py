"""
Install scheduling.

This module decides when a downloaded build is handed to the installer,
according to the configured installation mode:
- immediate: after a 60 second warning
- scheduled: at the configured time of day, with a 60 second warning
- idle: as soon as no players are connected
"""

import asyncio
import logging
from datetime import datetime, time, timedelta
from typing import Awaitable, Callable

from ..models.update import DownloadedUpdate, InstallationMode
from .idle import IdleTracker
from .installer import Installer

logger = logging.getLogger(__name__)

WARNING_SECONDS = 60


def next_install_time(time_of_day: time, now: datetime,
                      warning_seconds: float = WARNING_SECONDS) -> datetime:
    """
    Next occurrence of time_of_day that still leaves room for the warning.

    If the warning instant (target minus warning_seconds) is not in the
    future any more, the install moves to the same time the next day.

    Args:
        time_of_day: Configured installation time
        now: Current local time
        warning_seconds: Length of the final countdown

    Returns:
        datetime: Install instant
    """
    target = datetime.combine(now.date(), time_of_day)
    if target - timedelta(seconds=warning_seconds) <= now:
        target += timedelta(days=1)
    return target


class InstallScheduler:
    """Waits according to the installation mode, then installs."""

    def __init__(self, installer: Installer, idle_tracker: IdleTracker,
                 broadcast: Callable[[str], Awaitable[None]],
                 warning_seconds: float = WARNING_SECONDS,
                 clock: Callable[[], datetime] = datetime.now,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.installer = installer
        self.idle_tracker = idle_tracker
        self.broadcast = broadcast
        self.warning_seconds = warning_seconds
        self.clock = clock
        self.sleep = sleep

    async def _log_and_send(self, message: str) -> None:
        logger.info(message)
        try:
            await self.broadcast(message)
        except Exception as e:
            logger.warning(f"Could not broadcast message to players: {e}")

    async def schedule_install(self, mode: InstallationMode, installation_time: time,
                               update: DownloadedUpdate) -> int:
        """
        Wait for the moment selected by mode, then install the update.

        Cancelling the calling task aborts the wait; nothing is installed.

        Returns:
            int: Number of files written by the installer
        """
        if mode == InstallationMode.IMMEDIATE:
            await self._log_and_send(
                f"Downloaded new version {update.version}. "
                f"Server will shutdown in {self.warning_seconds:g} seconds to install update."
            )
            await self.sleep(self.warning_seconds)

        elif mode == InstallationMode.SCHEDULED:
            target = next_install_time(installation_time, self.clock(), self.warning_seconds)
            await self._log_and_send(
                f"Downloaded new version {update.version}. "
                f"Server will shutdown at {installation_time.strftime('%H:%M:%S')} to install update."
            )
            await self._wait_until(target - timedelta(seconds=self.warning_seconds))
            await self._log_and_send(
                f"Server will shutdown in {self.warning_seconds:g} seconds to install update."
            )
            await self.sleep(self.warning_seconds)

        else:
            await self._log_and_send(
                f"Downloaded new version {update.version}. "
                "Server will shutdown to install update when all players are offline."
            )
            await self.idle_tracker.wait_idle()

        return await self.installer.install(update)

    async def _wait_until(self, when: datetime) -> None:
        delay = (when - self.clock()).total_seconds()
        logger.info(f"Update installation is scheduled after {timedelta(seconds=max(delay, 0))}.")
        if delay > 0:
            await self.sleep(delay)
