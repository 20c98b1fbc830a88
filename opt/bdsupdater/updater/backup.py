"""
Backup coordination.

This module provides the gate the installer passes through before it
touches the install directory. The backup subsystem reports begin/end
notifications; the gate is closed while a backup is running.
"""

import logging

from ..utils.signals import ResetEvent

logger = logging.getLogger(__name__)


class BackupGate:
    """Open unless the backup subsystem reports a backup in progress."""

    def __init__(self):
        self._open = ResetEvent(initially_set=True)

    @property
    def is_open(self) -> bool:
        return self._open.is_set()

    def on_backup_begin(self, *args) -> None:
        logger.info("Backup started, installs are on hold")
        self._open.clear()

    def on_backup_end(self, *args) -> None:
        logger.info("Backup finished")
        self._open.set()

    async def wait_open(self) -> None:
        """Wait until no backup is running. Never delays a backup from starting."""
        await self._open.wait()
