"""Business logic for file operations."""

import logging
import uuid
from decimal import Decimal
from typing import Any, BinaryIO

from django.core.files.base import File as DjangoFile
from django.db import transaction
from django.utils import timezone

from server.apps.drive.infrastructure.metadata import (
    build_blob_path,
    bytes_to_mb,
    detect_mime_type,
    validate_name,
)
from server.apps.drive.infrastructure.storage import get_storage
from server.apps.drive.logic.folder_operations import resolve_parent
from server.apps.drive.logic.item_operations import get_item
from server.apps.drive.logic.permissions import (
    Action,
    authorize_item,
    require_capability,
)
from server.apps.drive.logic.profile_operations import lock_hierarchy
from server.apps.drive.logic.quota_operations import check_quota
from server.apps.drive.models import File, ItemType

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def create_file(  # noqa: WPS211
    caller: _User,
    name: str,
    size_mb: Decimal | int,
    mime_type: str,
    blob_reference: str,
    folder_id: uuid.UUID | str | None = None,
) -> File:
    """Create file metadata for an already stored blob.

    The quota check and the insert run under the owner's lock, so two
    concurrent writes can never both pass the check and jointly exceed
    the limit.

    Args:
        caller: Acting user, becomes the owner.
        name: Display name.
        size_mb: Size in megabytes.
        mime_type: MIME type; guessed from name when empty.
        blob_reference: Storage key of the content.
        folder_id: Containing folder id, None for root level.

    Returns:
        Created File instance.

    Raises:
        InvalidNameError: If name is empty.
        InvalidParentError: If folder is missing, foreign or trashed.
        QuotaExceededError: If the file does not fit in the quota.
        ValueError: If size is negative.
    """
    require_capability(caller, Action.CREATE)
    name = validate_name(name)
    size = Decimal(size_mb)
    if size < 0:
        raise ValueError('File size cannot be negative')

    with transaction.atomic():
        lock_hierarchy(caller)
        folder = resolve_parent(caller, folder_id)
        check_quota(caller, size)
        file_instance = File.objects.create(
            owner=caller,
            folder=folder,
            name=name,
            size_mb=size,
            mime_type=mime_type or detect_mime_type(name),
            blob_reference=blob_reference,
        )

    logger.info(
        'File record created in database: %s (ID: %s, size: %s MB)',
        name,
        file_instance.pk,
        size,
    )
    return file_instance


def upload_file(
    caller: _User,
    name: str,
    content: BinaryIO | DjangoFile,
    folder_id: uuid.UUID | str | None = None,
    mime_type: str = '',
) -> File:
    """Upload content to the blob store and create its file record.

    Runs as a saga: the blob is written first, metadata second. If the
    metadata step fails or is cancelled, the blob is deleted again
    (compensation). Metadata is never written for a failed blob write.

    Args:
        caller: Acting user, becomes the owner.
        name: Display name.
        content: File-like object to upload.
        folder_id: Containing folder id, None for root level.
        mime_type: MIME type; guessed from name when empty.

    Returns:
        Created File instance.

    Raises:
        QuotaExceededError: If the upload does not fit in the quota.
        BlobStoreUnavailableError: If the blob store timed out.
    """
    require_capability(caller, Action.CREATE)
    name = validate_name(name)
    resolve_parent(caller, folder_id)

    size_mb = bytes_to_mb(_get_content_size(content))
    # Reject early, before any bytes move; re-checked under the lock
    check_quota(caller, size_mb)

    storage = get_storage()
    # Resolve key collisions up front so rollback targets the written key
    blob_path = storage.get_available_name(build_blob_path(caller.pk, name))

    # Step 1: Upload to storage first
    try:
        saved_name = storage.save(blob_path, content)
    except BaseException:
        # A cancelled upload may have left a partial object behind
        storage.rollback_upload(blob_path)
        raise

    # Step 2: Create database record
    try:
        file_instance = create_file(
            caller,
            name,
            size_mb,
            mime_type or detect_mime_type(name),
            saved_name,
            folder_id,
        )
    except BaseException:
        logger.exception(
            'Database insert failed, rolling back storage upload: %s',
            saved_name,
        )
        storage.rollback_upload(saved_name)
        raise

    return file_instance


def open_file(
    caller: _User,
    file_id: uuid.UUID | str,
) -> tuple[File, DjangoFile]:
    """Open a file's content for reading and stamp its access time.

    Args:
        caller: Acting user.
        file_id: File id.

    Returns:
        The file record and an open storage file.

    Raises:
        NotFoundError: If file not found.
        ForbiddenError: If the caller may not view the file.
    """
    file_instance = get_item(ItemType.FILE, file_id)
    authorize_item(caller, file_instance, Action.VIEW)

    accessed_at = timezone.now()
    File.objects.filter(pk=file_instance.pk).update(last_accessed_at=accessed_at)
    file_instance.last_accessed_at = accessed_at

    logger.info(
        'Opening file: %s (ID: %s)',
        file_instance.blob_reference,
        file_instance.pk,
    )
    return file_instance, get_storage().open(file_instance.blob_reference, 'rb')


def _get_content_size(content: BinaryIO | DjangoFile) -> int:
    """Get size of an upload.

    Args:
        content: File-like object.

    Returns:
        Size in bytes.
    """
    if hasattr(content, 'size'):
        return content.size
    size = len(content.read())
    content.seek(0)
    return size
