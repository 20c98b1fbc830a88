"""
Server update installation.

This module performs the install transaction for a downloaded build:
wait for backups, stop the server, copy the archive over the install
directory, start the server again. There is no rollback; a failure
part way leaves the install directory partially updated and is reported
as an InstallError for the operator to look at.
"""

import asyncio
import logging
import zipfile
import zlib
from typing import Iterable

from ..models.update import DownloadedUpdate
from .backup import BackupGate
from .errors import InstallError
from .file_sync import extract_archive

logger = logging.getLogger(__name__)

DEFAULT_STOP_TIMEOUT = 300
STOP_COMMAND = 'stop'

# Raised by zipfile for corrupt, encrypted or unsupported entries
EXTRACT_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, RuntimeError, NotImplementedError, OSError)


class Installer:
    """Installs downloaded server builds into the install directory."""

    def __init__(self, supervisor, backup_gate: BackupGate, install_dir: str,
                 ignore_files: Iterable[str] = (), stop_timeout: float = DEFAULT_STOP_TIMEOUT):
        self.supervisor = supervisor
        self.backup_gate = backup_gate
        self.install_dir = install_dir
        self.ignore_files = frozenset(ignore_files)
        self.stop_timeout = stop_timeout
        self._lock = asyncio.Lock()

    async def install(self, update: DownloadedUpdate) -> int:
        """
        Install a downloaded build.

        Args:
            update: Downloaded archive and its version

        Returns:
            int: Number of files written

        Raises:
            InstallError: If the server cannot be stopped or the archive
                cannot be extracted
        """
        async with self._lock:
            logger.info("Waiting for backup manager to finish its work...")
            await self.backup_gate.wait_open()
            logger.info(f"Installing BDS version {update.version} into '{self.install_dir}'...")

            was_running = self.supervisor.is_running
            if was_running:
                await self._stop_server()

            logger.info("Copying files...")
            result = await self._extract(update)

            logger.info(f"Successfully installed BDS version {update.version}.")

            if was_running:
                logger.info("Starting BDS...")
                await self.supervisor.start()

            return result['files_written']

    async def _stop_server(self) -> None:
        logger.info("Shutting down active BDS instance...")
        await self.supervisor.send_input(STOP_COMMAND)
        try:
            await self.supervisor.wait_for_exit(timeout=self.stop_timeout)
        except asyncio.TimeoutError:
            raise InstallError(f"Server did not exit within {self.stop_timeout} seconds of '{STOP_COMMAND}'")
        await self.supervisor.close()

    async def _extract(self, update: DownloadedUpdate) -> dict:
        """
        Run the extraction in the default executor.

        Once started the copy always runs to completion. A cancellation
        arriving meanwhile is re-raised after the copy finishes.
        """
        loop = asyncio.get_running_loop()
        copy = loop.run_in_executor(
            None, extract_archive, update.archive_path, self.install_dir, self.ignore_files
        )
        try:
            return await asyncio.shield(copy)
        except asyncio.CancelledError:
            logger.warning("Shutdown requested while copying files, finishing the copy first")
            try:
                await copy
            except EXTRACT_ERRORS as e:
                logger.error(f"Failed to install BDS version {update.version}: {e}")
            raise
        except EXTRACT_ERRORS as e:
            raise InstallError(f"Failed to extract {update.archive_path}: {e}")
