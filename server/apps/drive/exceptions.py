"""Exceptions for drive app.

Every failure of a drive operation is a ``DriveError``; none of them is
fatal to the process and each leaves stored state untouched.
"""

from decimal import Decimal


class DriveError(Exception):
    """Base class for drive operation failures."""


class AuthenticationRequiredError(DriveError):
    """Raised when an operation is invoked without an authenticated caller."""


class ForbiddenError(DriveError):
    """Raised when the caller is not the owner or lacks the role."""


class NotFoundError(DriveError):
    """Raised when an addressed item or user does not exist."""

    def __init__(self, kind: str, identifier: object) -> None:
        """Initialize NotFoundError.

        Args:
            kind: What was looked up (file, folder, user, grant).
            identifier: The id that did not resolve.
        """
        self.kind = kind
        self.identifier = identifier
        super().__init__(f'{kind} not found: {identifier}')


class InvalidParentError(DriveError):
    """Raised when a parent folder is missing, foreign, trashed or a cycle."""


class CorruptHierarchyError(DriveError):
    """Raised when parent pointers revisit a folder (stored cycle)."""


class InvalidNameError(DriveError):
    """Raised when a name (or folder color) is rejected."""


class BlobStoreUnavailableError(DriveError):
    """Raised when the blob store times out; the caller may retry."""


class QuotaExceededError(DriveError):
    """Raised when a write would exceed user's storage quota."""

    def __init__(
        self,
        limit_mb: Decimal,
        used_mb: Decimal,
        required_mb: Decimal,
    ) -> None:
        """Initialize QuotaExceededError.

        Args:
            limit_mb: Total quota limit in megabytes.
            used_mb: Currently used megabytes.
            required_mb: Megabytes needed for the operation.
        """
        self.limit_mb = limit_mb
        self.used_mb = used_mb
        self.required_mb = required_mb

        available = max(Decimal(0), limit_mb - used_mb)
        super().__init__(
            f'Quota exceeded: need {required_mb} MB, '
            f'only {available} MB available '
            f'(limit: {limit_mb}, used: {used_mb})',
        )
