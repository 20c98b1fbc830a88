"""
Update orchestration.

This module wires the updater components to the server process and runs
the update loop:
- Discovers the running server version from its console output
- Tracks connected players and backup activity
- Polls for new builds on an interval and installs them according to the
  configured installation mode

The loop starts the first time a server version is seen on the console and
runs until stop() is called.
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional

from ..models.update import UpdateConfig
from ..models.version import Version
from .backup import BackupGate
from .errors import InstallError
from .idle import IdleTracker
from .installer import Installer, DEFAULT_STOP_TIMEOUT
from .scheduler import InstallScheduler, WARNING_SECONDS
from .version_source import VersionSourceClient, DOWNLOAD_PAGE_URL, create_session

logger = logging.getLogger(__name__)

VERSION_PATTERN = r'^.+\sVersion:?\s+(\d+(?:\.\d+){0,3})\s*$'
PLAYER_CONNECTED_PATTERN = r'Player connected:\s*(.+?),\s*xuid'
PLAYER_DISCONNECTED_PATTERN = r'Player disconnected:\s*(.+?),\s*xuid'

STATE_WAITING = 'waiting-for-version'
STATE_CHECKING = 'checking'
STATE_PENDING = 'pending-install'
STATE_INSTALLING = 'installing'
STATE_SLEEPING = 'sleeping'
STATE_STOPPED = 'stopped'


class UpdateOrchestrator:
    """Keeps the dedicated server on its latest release."""

    def __init__(self, config: UpdateConfig, supervisor, install_dir: str,
                 page_url: str = DOWNLOAD_PAGE_URL, stop_timeout: float = DEFAULT_STOP_TIMEOUT,
                 platform: Optional[str] = None, session_factory=create_session,
                 warning_seconds: float = WARNING_SECONDS):
        self.config = config
        self.supervisor = supervisor
        self.page_url = page_url
        self.platform = platform
        self.session_factory = session_factory

        self.idle_tracker = IdleTracker()
        self.backup_gate = BackupGate()
        self.installer = Installer(
            supervisor, self.backup_gate, install_dir,
            ignore_files=config.ignore_files, stop_timeout=stop_timeout,
        )
        self.scheduler = InstallScheduler(
            _TrackingInstaller(self), self.idle_tracker, supervisor.broadcast,
            warning_seconds=warning_seconds,
        )

        self.current_version: Optional[Version] = None
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._check_requested = asyncio.Event()

        self.state = STATE_WAITING
        self.pending_version: Optional[Version] = None
        self.last_check: Optional[datetime] = None
        self.last_result: Optional[str] = None
        self.last_install: Optional[datetime] = None
        self.last_error: Optional[str] = None

    def attach(self) -> None:
        """
        Register console and exit handlers on the process supervisor.

        Must be called from the event loop the orchestrator runs on.
        """
        self._loop = asyncio.get_running_loop()
        self.supervisor.register_match_handler(VERSION_PATTERN, self._on_version_determined)
        self.supervisor.register_match_handler(PLAYER_CONNECTED_PATTERN, self.idle_tracker.on_player_connected)
        self.supervisor.register_match_handler(PLAYER_DISCONNECTED_PATTERN, self.idle_tracker.on_player_disconnected)
        self.supervisor.register_exit_handler(self.idle_tracker.on_process_exited)

    def _on_version_determined(self, match) -> None:
        try:
            version = Version.parse(match.group(1))
        except ValueError as e:
            logger.warning(f"Ignoring unparseable server version {match.group(1)!r}: {e}")
            return

        first_run = self.current_version is None
        self.current_version = version
        logger.info(f"Detected BDS version {version}")

        if first_run:
            self._loop.call_soon_threadsafe(self._start)

    def _start(self) -> None:
        if self._task is None:
            self._task = asyncio.ensure_future(self.run())

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self) -> None:
        """Check for updates every check interval until cancelled."""
        logger.info(f"Auto update started. Current BDS version is {self.current_version}.")
        async with self.session_factory() as session:
            client = VersionSourceClient(session, self.page_url, self.platform)
            try:
                while True:
                    await self.run_cycle(client)
                    await self._sleep_interval()
            finally:
                self.state = STATE_STOPPED

    async def run_cycle(self, client: VersionSourceClient) -> None:
        """
        Run one check, and install what it found.

        Only cancellation escapes; every other failure is logged and the
        loop carries on with its next check.
        """
        self.state = STATE_CHECKING
        try:
            update = await client.check_for_update(self.current_version)
            self.last_check = datetime.now()
            if update is None:
                self.last_result = 'no-update'
                return

            try:
                self.pending_version = update.version
                self.state = STATE_PENDING
                await self.scheduler.schedule_install(
                    self.config.installation_mode, self.config.installation_time, update,
                )
                # A stopped server prints no version line, so record the build here
                self.current_version = update.version
                self.last_result = 'installed'
                self.last_install = datetime.now()
                self.last_error = None
            finally:
                self.pending_version = None
                update.discard()
        except asyncio.CancelledError:
            raise
        except InstallError as e:
            self.last_result = 'install-failed'
            self.last_error = str(e)
            logger.critical(f"Update installation failed, the server needs attention: {e}")
        except Exception as e:
            self.last_result = 'error'
            self.last_error = str(e)
            logger.exception(f"Unhandled exception during update cycle: {e}")

    async def _sleep_interval(self) -> None:
        self.state = STATE_SLEEPING
        try:
            await asyncio.wait_for(self._check_requested.wait(), timeout=self.config.check_interval_seconds)
            logger.info("Update check requested")
        except asyncio.TimeoutError:
            pass
        self._check_requested.clear()

    def request_check(self) -> None:
        """Run the next check now instead of at the end of the interval."""
        self._check_requested.set()

    async def stop(self) -> None:
        """Cancel the update loop and any pending install wait."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        logger.info("Auto update stopped")

    def status(self) -> Dict:
        """Current updater state, JSON-serializable."""
        return {
            'state': self.state,
            'current_version': str(self.current_version) if self.current_version else None,
            'pending_version': str(self.pending_version) if self.pending_version else None,
            'installation_mode': self.config.installation_mode.value,
            'installation_time': self.config.installation_time.strftime('%H:%M'),
            'check_interval_minutes': self.config.check_interval,
            'player_count': self.idle_tracker.player_count,
            'idle': self.idle_tracker.is_idle,
            'backup_gate_open': self.backup_gate.is_open,
            'server_running': self.supervisor.is_running,
            'last_check': self.last_check.isoformat() if self.last_check else None,
            'last_result': self.last_result,
            'last_install': self.last_install.isoformat() if self.last_install else None,
            'last_error': self.last_error,
        }


class _TrackingInstaller:
    """Installer front that reports the installing state to the orchestrator."""

    def __init__(self, orchestrator: UpdateOrchestrator):
        self.orchestrator = orchestrator

    async def install(self, update):
        self.orchestrator.state = STATE_INSTALLING
        return await self.orchestrator.installer.install(update)
