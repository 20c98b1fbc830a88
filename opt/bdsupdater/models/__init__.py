"""
Data models for the Bedrock server auto-updater.
"""

from .version import Version
from .update import (
    InstallationMode,
    UpdateConfig,
    DownloadedUpdate,
    parse_time_of_day,
)

__all__ = [
    'Version',
    'InstallationMode',
    'UpdateConfig',
    'DownloadedUpdate',
    'parse_time_of_day',
]
