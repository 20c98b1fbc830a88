"""
Update configuration and download data models.

This module provides the immutable per-run update configuration and the
transient value describing a downloaded, not yet installed server build.
"""

import os
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Any, Dict, FrozenSet, Optional

from .version import Version

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL = 60.0
DEFAULT_INSTALLATION_TIME = time(4, 0)
DEFAULT_IGNORE_FILES = frozenset({'server.properties', 'whitelist.json', 'permissions.json'})


class InstallationMode(enum.Enum):
    IMMEDIATE = 'immediate'
    SCHEDULED = 'scheduled'
    IDLE = 'idle'

    @classmethod
    def parse(cls, value: Optional[str]) -> 'InstallationMode':
        """
        Map a configured mode string to a mode.

        Unknown values are not rejected: they install when the server is
        idle, same as an explicit 'idle'.
        """
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning(f"Unknown installation mode {value!r}, falling back to 'idle'")
            return cls.IDLE


def parse_time_of_day(value: str) -> time:
    """
    Parse a time of day in HH:MM or HH:MM:SS form.

    Raises:
        ValueError: If the value matches neither form
    """
    text = str(value).strip()
    for fmt in ('%H:%M', '%H:%M:%S'):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time of day: {value!r}")


@dataclass(frozen=True)
class UpdateConfig:
    """Update settings, loaded once at startup and never mutated."""

    check_interval: float = DEFAULT_CHECK_INTERVAL
    installation_mode: InstallationMode = InstallationMode.IDLE
    installation_time: time = DEFAULT_INSTALLATION_TIME
    ignore_files: FrozenSet[str] = field(default=DEFAULT_IGNORE_FILES)

    @property
    def check_interval_seconds(self) -> float:
        return self.check_interval * 60

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UpdateConfig':
        """
        Build the configuration from the raw autoupdate.json record.

        Args:
            data: Dict with UpdateCheckInterval, InstallationMode,
                InstallationTime and IgnoreFiles keys (all optional)

        Returns:
            UpdateConfig: Parsed configuration; invalid values fall back
            to their defaults with a warning
        """
        interval = DEFAULT_CHECK_INTERVAL
        raw_interval = data.get('UpdateCheckInterval', DEFAULT_CHECK_INTERVAL)
        try:
            interval = float(raw_interval)
            if interval <= 0:
                raise ValueError("interval must be positive")
        except (TypeError, ValueError):
            logger.warning(f"Invalid UpdateCheckInterval {raw_interval!r}, using {DEFAULT_CHECK_INTERVAL}")
            interval = DEFAULT_CHECK_INTERVAL

        installation_time = DEFAULT_INSTALLATION_TIME
        raw_time = data.get('InstallationTime')
        if raw_time:
            try:
                installation_time = parse_time_of_day(raw_time)
            except ValueError as e:
                logger.warning(f"{e}, using {DEFAULT_INSTALLATION_TIME.strftime('%H:%M')}")

        ignore_files = data.get('IgnoreFiles')
        if ignore_files is None:
            ignore_files = DEFAULT_IGNORE_FILES

        return cls(
            check_interval=interval,
            installation_mode=InstallationMode.parse(data.get('InstallationMode')),
            installation_time=installation_time,
            ignore_files=frozenset(str(name) for name in ignore_files),
        )


@dataclass(frozen=True)
class DownloadedUpdate:
    """A downloaded server archive waiting to be installed."""

    version: Version
    archive_path: str

    def discard(self) -> None:
        """Delete the temporary archive if it still exists."""
        try:
            if os.path.exists(self.archive_path):
                os.remove(self.archive_path)
                logger.debug(f"Removed update archive {self.archive_path}")
        except OSError as e:
            logger.error(f"Failed to remove update archive {self.archive_path}: {e}")
