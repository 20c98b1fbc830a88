"""
File synchronization from a server archive into the install directory.

This module copies the files of a downloaded server archive over an
existing installation, leaving user-managed files (server.properties,
whitelist, permissions...) untouched.
"""

import os
import shutil
import logging
import posixpath
import zipfile
from pathlib import Path
from typing import Dict, Iterable, Optional

logger = logging.getLogger(__name__)


def _should_preserve(entry_name: str, ignore_files: Iterable[str]) -> bool:
    """
    Check if an archive entry must not overwrite the installed file.

    Only the bare file name is compared, so a preserved name is kept at
    any depth in the archive.

    Args:
        entry_name: Bare file name of the archive entry
        ignore_files: File names to preserve

    Returns:
        bool: True if the file should be preserved
    """
    return entry_name in ignore_files


def _get_file_permissions(info: zipfile.ZipInfo) -> Optional[int]:
    """
    Unix permission bits stored in an archive entry.

    Returns:
        int: Permission mode (e.g. 0o755), or None if the archive was
        created without unix attributes
    """
    mode = (info.external_attr >> 16) & 0o777
    return mode or None


def _resolve_destination(install_dir: str, entry_path: str) -> Optional[str]:
    """Destination path of an entry, or None if it would land outside install_dir."""
    root = os.path.abspath(install_dir)
    dst = os.path.abspath(os.path.join(root, *entry_path.split('/')))
    if os.path.commonpath([root, dst]) != root:
        return None
    return dst


def extract_archive(archive_path: str, install_dir: str, ignore_files: Iterable[str] = ()) -> Dict:
    """
    Extract a server archive over the install directory.

    Runs in an executor; blocking I/O. Every file entry is written,
    replacing existing files, except entries whose bare name is in
    ignore_files. Directory entries are skipped; their parents are
    created as files are written.

    Args:
        archive_path: Path of the zip archive
        install_dir: Server install directory
        ignore_files: Bare file names never overwritten

    Returns:
        dict: Extraction statistics (files_written, files_preserved, files_skipped)

    Raises:
        zipfile.BadZipFile: If the archive cannot be read
        OSError: If a file cannot be written
    """
    ignore_files = frozenset(ignore_files)
    result = {
        'files_written': 0,
        'files_preserved': 0,
        'files_skipped': 0,
    }

    Path(install_dir).mkdir(parents=True, exist_ok=True)

    with zipfile.ZipFile(archive_path, 'r') as archive:
        for info in archive.infolist():
            entry_path = info.filename.replace('\\', '/')
            name = posixpath.basename(entry_path)
            if not name:
                continue

            if _should_preserve(name, ignore_files):
                logger.info(f"Preserving {entry_path}")
                result['files_preserved'] += 1
                continue

            dst = _resolve_destination(install_dir, entry_path)
            if dst is None:
                logger.error(f"Security: Skipping archive entry outside install directory: {entry_path}")
                result['files_skipped'] += 1
                continue

            logger.debug(f"Copying {dst}...")
            Path(dst).parent.mkdir(parents=True, exist_ok=True)
            with archive.open(info) as src, open(dst, 'wb') as out:
                shutil.copyfileobj(src, out)

            permissions = _get_file_permissions(info)
            if permissions is not None:
                os.chmod(dst, permissions)

            result['files_written'] += 1

    logger.info(
        f"Extracted {result['files_written']} files into {install_dir} "
        f"({result['files_preserved']} preserved, {result['files_skipped']} skipped)"
    )
    return result
