"""
Updater package for the Bedrock server auto-updater.

This package contains the update functionality for:
- Update checking and archive download
- Player activity and backup coordination
- Install scheduling (immediate, scheduled, idle)
- Archive installation into the server directory
- The update loop tying it all together
"""

from .errors import (
    UpdaterError,
    UpdateCheckError,
    DownloadError,
    InstallError,
)

from .idle import IdleTracker
from .backup import BackupGate
from .file_sync import extract_archive
from .installer import Installer
from .scheduler import InstallScheduler, next_install_time
from .version_source import VersionSourceClient, create_session
from .orchestrator import UpdateOrchestrator

__all__ = [
    # Errors
    'UpdaterError',
    'UpdateCheckError',
    'DownloadError',
    'InstallError',
    # Signals
    'IdleTracker',
    'BackupGate',
    # Install
    'extract_archive',
    'Installer',
    'InstallScheduler',
    'next_install_time',
    # Checking
    'VersionSourceClient',
    'create_session',
    # Loop
    'UpdateOrchestrator',
]
