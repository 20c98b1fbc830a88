"""
Dynamic Configuration Loader for the Bedrock server auto-updater.

This module provides runtime configuration loading from JSON files with:
- Default values if files don't exist
- Caching with ability to reload
- Defaults written to disk on first run
"""

import os
import json
import logging
from typing import Dict, Any
from pathlib import Path

from .models.update import UpdateConfig
from .updater.installer import DEFAULT_STOP_TIMEOUT
from .updater.version_source import DOWNLOAD_PAGE_URL

logger = logging.getLogger(__name__)

# --- Configuration Directory Paths ---
CONFIG_BASE_DIR = os.environ.get('BDSUPDATER_HOME', '/etc/bdsupdater')
CONFIG_DIR = os.path.join(CONFIG_BASE_DIR, 'config')

# --- Configuration File Paths ---
AUTOUPDATE_CONFIG_PATH = os.path.join(CONFIG_DIR, 'autoupdate.json')
SERVER_CONFIG_PATH = os.path.join(CONFIG_DIR, 'server.json')

# --- Default Configurations ---
DEFAULT_AUTOUPDATE_CONFIG = {
    'UpdateCheckInterval': 60,
    'InstallationMode': 'idle',
    'InstallationTime': '04:00',
    'IgnoreFiles': ['server.properties', 'whitelist.json', 'permissions.json'],
}

DEFAULT_SERVER_CONFIG = {
    'bin_path': '/opt/bedrock-server/bedrock_server',
    'args': [],
    'download_page_url': DOWNLOAD_PAGE_URL,
    'stop_timeout': DEFAULT_STOP_TIMEOUT,
    'api_host': '127.0.0.1',
    'api_port': 8135,
}

# --- Configuration Cache ---
_config_cache: Dict[str, Any] = {}


def _load_config(path: str, default: Dict[str, Any]) -> Dict[str, Any]:
    """
    Load configuration from path merged over the defaults.

    Args:
        path: Configuration file path
        default: Default configuration values

    Returns:
        dict: The loaded configuration merged with defaults
    """
    config = default.copy()

    if os.path.exists(path):
        try:
            with open(path, 'r') as f:
                loaded = json.load(f)
            if not isinstance(loaded, dict):
                raise ValueError("top-level value is not an object")
            config.update(loaded)
        except (OSError, ValueError) as e:
            logger.warning(f"Error loading config from {path}: {e}")

    return config


def _save_config(path: str, config: Dict[str, Any], permissions: int = 0o644) -> bool:
    """
    Save configuration to a JSON file.

    Args:
        path: Path to save the configuration
        config: Configuration dictionary to save
        permissions: File permissions (default 0o644)

    Returns:
        bool: True if saved successfully
    """
    try:
        # Ensure directory exists
        Path(path).parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            json.dump(config, f, indent=2)

        os.chmod(path, permissions)
        return True
    except OSError as e:
        logger.error(f"Failed to save config to {path}: {e}")
        return False


def _get_config(cache_key: str, path: str, default: Dict[str, Any], force_reload: bool) -> Dict[str, Any]:
    if not force_reload and cache_key in _config_cache:
        return _config_cache[cache_key]

    if not os.path.exists(path):
        logger.info(f"Writing default configuration to {path}")
        _save_config(path, default)

    config = _load_config(path, default)
    _config_cache[cache_key] = config
    return config


def get_autoupdate_config(force_reload: bool = False) -> Dict[str, Any]:
    """
    Get the auto-update configuration record.

    Args:
        force_reload: If True, bypass cache and reload from disk

    Returns:
        dict: Configuration with keys:
            - UpdateCheckInterval: Minutes between update checks
            - InstallationMode: 'immediate', 'scheduled' or 'idle'
            - InstallationTime: Time of day for scheduled installs (HH:MM)
            - IgnoreFiles: File names never overwritten by an install
    """
    return _get_config('autoupdate', AUTOUPDATE_CONFIG_PATH, DEFAULT_AUTOUPDATE_CONFIG, force_reload)


def get_server_config(force_reload: bool = False) -> Dict[str, Any]:
    """
    Get the server process and control API configuration.

    Args:
        force_reload: If True, bypass cache and reload from disk

    Returns:
        dict: Configuration with keys:
            - bin_path: Path of the dedicated server executable
            - args: Extra command line arguments
            - download_page_url: Page scanned for new builds
            - stop_timeout: Seconds to wait for the server to stop
            - api_host / api_port: Control API bind address
    """
    return _get_config('server', SERVER_CONFIG_PATH, DEFAULT_SERVER_CONFIG, force_reload)


def load_update_config(force_reload: bool = False) -> UpdateConfig:
    """Get the auto-update configuration as an UpdateConfig."""
    return UpdateConfig.from_dict(get_autoupdate_config(force_reload))


def clear_config_cache():
    """Clear the configuration cache to force reload on next access."""
    _config_cache.clear()
