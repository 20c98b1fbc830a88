"""
Updater exceptions.
"""


class UpdaterError(Exception):
    """Base class for update failures."""


class UpdateCheckError(UpdaterError):
    """The distribution page could not be fetched or understood."""


class DownloadError(UpdaterError):
    """The server archive could not be downloaded."""


class InstallError(UpdaterError):
    """The install transaction failed; the server may be stopped or partially updated."""
