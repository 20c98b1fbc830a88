"""
Update checking against the official download page.

This module fetches the Bedrock dedicated server download page, finds the
archive link for this platform, and downloads the archive when it is newer
than the running server. Failures are logged and reported as "no update";
the update loop simply tries again on its next interval.
"""

import os
import re
import sys
import asyncio
import logging
import tempfile
from typing import Optional, Tuple

import aiohttp

from ..models.update import DownloadedUpdate
from ..models.version import Version
from .errors import UpdateCheckError, DownloadError

logger = logging.getLogger(__name__)

DOWNLOAD_PAGE_URL = 'https://www.minecraft.net/en-us/download/server/bedrock'

# The download page rejects or degrades requests that don't look like a browser
BROWSER_HEADERS = {
    'accept': 'text/html,application/xhtml+xml,application/xml',
    'user-agent': 'Mozilla/5.0',
    'accept-language': 'en-US,en',
    'accept-encoding': 'gzip, deflate',
}

PAGE_TIMEOUT = aiohttp.ClientTimeout(total=30)
DOWNLOAD_TIMEOUT = aiohttp.ClientTimeout(total=3600)
CHUNK_SIZE = 65536


def get_platform_tag() -> str:
    """Archive flavour matching this host: 'win' or 'linux'."""
    return 'win' if sys.platform == 'win32' else 'linux'


def build_download_url_pattern(platform: str) -> re.Pattern:
    return re.compile(
        r'https?://[^\s"\'<>]+/bin-' + re.escape(platform)
        + r'/bedrock-server-(\d+\.\d+\.\d+(?:\.\d+)?)\.zip'
    )


def create_session() -> aiohttp.ClientSession:
    """Create the HTTP session used for checks and downloads."""
    return aiohttp.ClientSession(headers=BROWSER_HEADERS, auto_decompress=True)


def find_download(content: str, platform: str) -> Tuple[str, Version]:
    """
    Find the archive URL and its version in the download page.

    Args:
        content: Download page HTML
        platform: 'win' or 'linux'

    Returns:
        tuple: (archive URL, version)

    Raises:
        UpdateCheckError: If the page has no link for this platform
    """
    match = build_download_url_pattern(platform).search(content)
    if not match:
        raise UpdateCheckError("Cannot find download url in Bedrock Dedicated Server download page")
    try:
        version = Version.parse(match.group(1))
    except ValueError as e:
        raise UpdateCheckError(f"Cannot parse version in download url {match.group(0)}: {e}")
    return match.group(0), version


class VersionSourceClient:
    """Checks the download page and fetches newer server archives."""

    def __init__(self, session: aiohttp.ClientSession, page_url: str = DOWNLOAD_PAGE_URL,
                 platform: Optional[str] = None):
        self.session = session
        self.page_url = page_url
        self.platform = platform or get_platform_tag()

    async def check_for_update(self, current_version: Version) -> Optional[DownloadedUpdate]:
        """
        Download the latest server archive if it is newer than current_version.

        Args:
            current_version: Version of the running server

        Returns:
            DownloadedUpdate: The downloaded archive, or None when there is
            nothing to install or the check failed
        """
        logger.info("Checking for update...")
        try:
            url, target_version = await self._fetch_latest()
        except UpdateCheckError as e:
            logger.warning(f"Update check failed. {e}")
            return None
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Update check failed. Could not reach {self.page_url}: {e!r}")
            return None

        if not target_version > current_version:
            logger.info(f"Latest version is {target_version}, nothing to do.")
            return None

        logger.info(f"Found latest version {target_version}. Downloading...")
        try:
            archive_path = await self._download(url)
        except DownloadError as e:
            logger.error(f"Failed to download version {target_version}: {e}")
            return None

        logger.info(f"Downloaded version {target_version} to {archive_path}")
        return DownloadedUpdate(target_version, archive_path)

    async def _fetch_latest(self) -> Tuple[str, Version]:
        async with self.session.get(self.page_url, timeout=PAGE_TIMEOUT) as response:
            if response.status < 200 or response.status >= 300:
                raise UpdateCheckError(f"Server returned status code {response.status}.")
            try:
                content = await response.text()
            except UnicodeDecodeError as e:
                raise UpdateCheckError(f"Could not decode download page: {e}")
        return find_download(content, self.platform)

    async def _download(self, url: str) -> str:
        """
        Stream an archive into a new temporary file.

        The partial file is removed if the download fails or is cancelled.

        Returns:
            str: Path of the temporary file
        """
        fd, tmp_path = tempfile.mkstemp(prefix='bds-update-', suffix='.zip')
        success = False
        try:
            with os.fdopen(fd, 'wb') as f:
                async with self.session.get(url, timeout=DOWNLOAD_TIMEOUT) as response:
                    if response.status != 200:
                        raise DownloadError(f"HTTP {response.status}: {response.reason}")
                    bytes_downloaded = 0
                    async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                        f.write(chunk)
                        bytes_downloaded += len(chunk)
            logger.debug(f"Downloaded {bytes_downloaded} bytes from {url}")
            success = True
            return tmp_path
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise DownloadError(repr(e))
        finally:
            if not success and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError as cleanup_error:
                    logger.error(f"Failed to clean up partial download {tmp_path}: {cleanup_error}")
