"""Exceptions for backups app."""

from server.apps.drive.exceptions import DriveError, NotFoundError


class BackupNotFoundError(NotFoundError):
    """Raised when an addressed backup does not exist."""

    def __init__(self, identifier: object) -> None:
        """Initialize BackupNotFoundError.

        Args:
            identifier: The backup id that did not resolve.
        """
        super().__init__('backup', identifier)


class RestoreFailedError(DriveError):
    """Raised when a restore aborted; the hierarchy is left unchanged."""


class SnapshotFormatError(DriveError):
    """Raised when a stored snapshot cannot be decoded."""


class ImmutableBackupError(DriveError):
    """Raised on an attempt to change a stored backup."""
