"""Custom storage backend for the S3-compatible blob store."""

import logging
from typing import Any, final, override

from botocore.exceptions import ConnectTimeoutError, ReadTimeoutError
from django.core.files.storage import default_storage
from storages.backends.s3 import S3Storage

from server.apps.drive.exceptions import BlobStoreUnavailableError

logger = logging.getLogger(__name__)

_TIMEOUT_ERRORS = (ConnectTimeoutError, ReadTimeoutError)


@final
class FileStorage(S3Storage):
    """Custom S3 storage backend for drive blobs.

    Extends django-storages S3Storage with:
    - Rollback support for failed metadata inserts
    - Timeouts reported as ``BlobStoreUnavailableError``
    - Enhanced error logging
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save blob to S3 with error handling and logging.

        Args:
            name: Storage key for the blob.
            content: File content (file-like object).
            max_length: Optional maximum length for the key.

        Returns:
            Actual storage key used (may differ from name if conflicts).

        Raises:
            BlobStoreUnavailableError: If the blob store timed out.
        """
        try:
            logger.info('Uploading blob to storage: %s', name)
            saved_name = super().save(name, content, max_length)
        except _TIMEOUT_ERRORS as error:
            logger.warning('Blob store timed out on upload: %s', name)
            raise BlobStoreUnavailableError(str(error)) from error
        except Exception:
            logger.exception('Failed to upload blob to storage: %s', name)
            raise

        logger.info('Successfully uploaded blob: %s', saved_name)
        return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete blob from S3 with error handling and logging.

        Args:
            name: Storage key of blob to delete.

        Raises:
            BlobStoreUnavailableError: If the blob store timed out.
        """
        try:
            logger.info('Deleting blob from storage: %s', name)
            super().delete(name)
        except _TIMEOUT_ERRORS as error:
            logger.warning('Blob store timed out on delete: %s', name)
            raise BlobStoreUnavailableError(str(error)) from error
        except Exception:
            logger.exception('Failed to delete blob from storage: %s', name)
            raise

        logger.info('Successfully deleted blob: %s', name)

    def rollback_upload(self, name: str) -> None:
        """Delete an uploaded blob whose metadata insert failed.

        This is the compensating step of the upload saga. It is
        best-effort: if deletion fails the error is logged, not raised,
        because the metadata transaction has already been rolled back.

        Args:
            name: Storage key of blob to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting blob: %s', name)
            self.delete(name)
        except Exception:
            # The blob stays in storage without metadata
            logger.exception(
                'Failed to rollback upload, orphaned blob: %s',
                name,
            )
        else:
            logger.info('Successfully rolled back blob upload: %s', name)


def get_storage() -> FileStorage:
    """Get the configured default storage backend.

    Returns:
        FileStorage instance with proper S3 configuration.
    """
    return default_storage  # type: ignore[return-value]


def release_blob(blob_reference: str) -> None:
    """Delete a blob after its metadata row was permanently deleted.

    Runs after the database commit. Failures are logged and not
    raised: the metadata is already gone and the orphaned blob can be
    cleaned up later.

    Args:
        blob_reference: Storage key of the released blob.
    """
    if not blob_reference:
        return

    storage = get_storage()
    logger.info('Releasing blob after metadata delete: %s', blob_reference)

    try:
        if storage.exists(blob_reference):
            storage.delete(blob_reference)
        else:
            logger.warning(
                'Blob not found in storage (already deleted?): %s',
                blob_reference,
            )
    except Exception:
        logger.exception(
            'Failed to release blob (orphaned): %s',
            blob_reference,
        )
