"""Business logic for snapshot backups of a user's hierarchy."""

import logging
import uuid
from decimal import Decimal
from typing import Any, NamedTuple

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from server.apps.backups.exceptions import (
    BackupNotFoundError,
    RestoreFailedError,
    SnapshotFormatError,
)
from server.apps.backups.logic import snapshot
from server.apps.backups.models import Backup
from server.apps.drive.exceptions import CorruptHierarchyError, ForbiddenError
from server.apps.drive.infrastructure.metadata import validate_name
from server.apps.drive.logic.bulk_operations import export_all, replace_all
from server.apps.drive.logic.permissions import (
    Action,
    is_allowed,
    require_capability,
)
from server.apps.drive.logic.profile_operations import lock_hierarchy

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


class RestoreSummary(NamedTuple):
    """Number of records a restore wrote back."""

    folders: int
    files: int


def create_backup(caller: _User, name: str) -> Backup:
    """Capture the caller's whole hierarchy, trashed items included.

    The hierarchy is read under the caller's lock, so the snapshot is
    consistent with respect to every other writer.

    Args:
        caller: Acting user, owner of the hierarchy.
        name: Backup name.

    Returns:
        Stored Backup.

    Raises:
        InvalidNameError: If name is empty.
    """
    require_capability(caller, Action.BACKUP)
    name = validate_name(name)

    with transaction.atomic():
        lock_hierarchy(caller)
        hierarchy = export_all(caller)
        backup = Backup.objects.create(
            owner=caller,
            name=name,
            schema_version=snapshot.SCHEMA_VERSION,
            folders=[snapshot.encode_folder(folder) for folder in hierarchy.folders],
            files=[snapshot.encode_file(file_) for file_ in hierarchy.files],
            folder_count=len(hierarchy.folders),
            file_count=len(hierarchy.files),
            total_size_mb=sum(
                (file_.size_mb for file_ in hierarchy.files),
                Decimal(0),
            ),
        )

    logger.info(
        'Backup created for user %s: %s (ID: %s, %d folders, %d files, %s MB)',
        caller.get_username(),
        name,
        backup.pk,
        backup.folder_count,
        backup.file_count,
        backup.total_size_mb,
    )
    return backup


def get_backup(caller: _User, backup_id: uuid.UUID | str) -> Backup:
    """Get a backup the caller owns.

    Args:
        caller: Acting user.
        backup_id: Backup id.

    Returns:
        Backup instance.

    Raises:
        BackupNotFoundError: If the backup does not exist.
        ForbiddenError: If the caller does not own it.
    """
    require_capability(caller, Action.BACKUP)
    try:
        backup = Backup.objects.get(pk=backup_id)
    except (Backup.DoesNotExist, ValidationError):
        raise BackupNotFoundError(backup_id) from None

    if backup.owner_id != caller.pk:
        logger.warning(
            'User %s tried to access backup %s of user %s',
            caller.get_username(),
            backup.pk,
            backup.owner_id,
        )
        raise ForbiddenError('Backup belongs to another user')
    return backup


def list_backups(caller: _User) -> list[Backup]:
    """List the caller's backups, newest first.

    Args:
        caller: Acting user.

    Returns:
        Backups without their captured rows.
    """
    require_capability(caller, Action.BACKUP)
    return list(Backup.objects.filter(owner=caller).defer('folders', 'files'))


def get_latest_backup(caller: _User) -> Backup | None:
    """Get the caller's most recent backup.

    Args:
        caller: Acting user.

    Returns:
        Newest Backup, or None if there is none.
    """
    require_capability(caller, Action.BACKUP)
    return Backup.objects.filter(owner=caller).defer('folders', 'files').first()


def list_all_backups(caller: _User) -> list[Backup]:
    """List every user's backups (admin only).

    Args:
        caller: Acting admin.

    Returns:
        Backups of all users, newest first.
    """
    require_capability(caller, Action.MANAGE_USERS)
    return list(
        Backup.objects.select_related('owner').defer('folders', 'files'),
    )


def restore_backup(caller: _User, backup_id: uuid.UUID | str) -> RestoreSummary:
    """Replace the caller's hierarchy with a backup's contents.

    Destructive: every current folder and file of the caller is
    removed, then the snapshot is written back with original ids. The
    whole restore is one transaction; on failure nothing changes.
    Only metadata comes back. Blobs erased after the backup was taken
    stay missing.

    Args:
        caller: Acting user, owner of the backup.
        backup_id: Backup id.

    Returns:
        RestoreSummary with the restored folder and file counts.

    Raises:
        BackupNotFoundError: If the backup does not exist.
        ForbiddenError: If the caller does not own the backup.
        RestoreFailedError: If decoding or writing failed.
    """
    backup = get_backup(caller, backup_id)

    try:
        decoded = snapshot.decode(
            backup.schema_version,
            backup.folders,
            backup.files,
        )
        restored = replace_all(caller, decoded.folders, decoded.files)
    except (DatabaseError, SnapshotFormatError, CorruptHierarchyError) as error:
        logger.exception(
            'Restore of backup %s failed for user %s, hierarchy unchanged',
            backup.pk,
            caller.get_username(),
        )
        raise RestoreFailedError(
            f'Restore of backup {backup.pk} failed: {error}',
        ) from error

    logger.info(
        'Backup %s restored for user %s: %d folders, %d files',
        backup.pk,
        caller.get_username(),
        len(restored.folders),
        len(restored.files),
    )
    return RestoreSummary(
        folders=len(restored.folders),
        files=len(restored.files),
    )


def delete_backup(caller: _User, backup_id: uuid.UUID | str) -> None:
    """Delete a backup (owner or admin).

    Args:
        caller: Acting user.
        backup_id: Backup id.

    Raises:
        BackupNotFoundError: If the backup does not exist.
        ForbiddenError: If the caller neither owns it nor is admin.
    """
    role = require_capability(caller, Action.BACKUP)
    try:
        backup = Backup.objects.only('id', 'owner_id', 'name').get(pk=backup_id)
    except (Backup.DoesNotExist, ValidationError):
        raise BackupNotFoundError(backup_id) from None

    if backup.owner_id != caller.pk and not is_allowed(role, Action.OVERRIDE):
        raise ForbiddenError('Backup belongs to another user')

    Backup.objects.filter(pk=backup.pk).delete()
    logger.info(
        'Backup deleted by %s: %s (ID: %s)',
        caller.get_username(),
        backup.name,
        backup.pk,
    )
