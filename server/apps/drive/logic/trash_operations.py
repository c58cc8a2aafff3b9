"""Business logic for trash (soft delete) and permanent deletion."""

import logging
import uuid
from decimal import Decimal
from functools import partial
from typing import Any, NamedTuple

from django.db import transaction
from django.db.models import Q

from server.apps.drive.infrastructure.storage import release_blob
from server.apps.drive.logic.folder_operations import collect_subtree_ids
from server.apps.drive.logic.item_operations import (
    get_item,
    locked_item,
    save_item,
)
from server.apps.drive.logic.permissions import (
    Action,
    authorize_item,
    require_capability,
    require_self_or_admin,
)
from server.apps.drive.logic.profile_operations import lock_hierarchy
from server.apps.drive.models import (
    File,
    Folder,
    HierarchyItem,
    ItemType,
    ShareGrant,
)

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


class DeletionSummary(NamedTuple):
    """What a permanent deletion removed."""

    folders: int
    files: int
    freed_mb: Decimal

    def __add__(self, other: object) -> 'DeletionSummary':
        """Combine two summaries field by field."""
        if not isinstance(other, DeletionSummary):
            return NotImplemented
        return DeletionSummary(
            folders=self.folders + other.folders,
            files=self.files + other.files,
            freed_mb=self.freed_mb + other.freed_mb,
        )


_EMPTY_SUMMARY = DeletionSummary(folders=0, files=0, freed_mb=Decimal(0))


class TrashListing(NamedTuple):
    """Trashed folders and files, most recently trashed first."""

    folders: list[Folder]
    files: list[File]


def move_to_trash(
    caller: _User,
    item_type: ItemType | str,
    item_id: uuid.UUID | str,
) -> HierarchyItem:
    """Move folder or file to trash (soft delete).

    Only the addressed item is flagged; the contents of a trashed
    folder stay in place and come back with it. Quota is released
    because trashed files do not count toward usage.

    Args:
        caller: Acting user.
        item_type: 'folder' or 'file'.
        item_id: Item id.

    Returns:
        Updated item (unchanged if it was already trashed).
    """
    with locked_item(caller, item_type, item_id, Action.TRASH) as item:
        if item.trashed:
            return item
        item.trashed = True
        save_item(item, 'trashed')

    logger.info('Moved to trash: %s %s (%s)', item.item_type, item.pk, item.name)
    return item


def restore_from_trash(
    caller: _User,
    item_type: ItemType | str,
    item_id: uuid.UUID | str,
) -> HierarchyItem:
    """Restore folder or file from trash.

    If the former parent is itself trashed or gone, the item is
    restored to root level instead.

    Args:
        caller: Acting user.
        item_type: 'folder' or 'file'.
        item_id: Item id.

    Returns:
        Updated item (unchanged if it was not trashed).
    """
    with locked_item(caller, item_type, item_id, Action.TRASH) as item:
        if not item.trashed:
            return item

        item.trashed = False
        changed = ['trashed']

        parent_id = item.parent_ref
        if parent_id is not None and not Folder.objects.filter(
            id=parent_id,
            trashed=False,
        ).exists():
            logger.info(
                'Parent %s of %s %s unavailable, restoring to root',
                parent_id,
                item.item_type,
                item.pk,
            )
            setattr(item, item.parent_field, None)
            changed.append(item.parent_field)

        save_item(item, *changed)

    logger.info('Restored from trash: %s %s (%s)', item.item_type, item.pk, item.name)
    return item


def purge_item(item: HierarchyItem) -> DeletionSummary:
    """Erase an item's records and schedule release of its blobs.

    Folders cascade: every descendant folder and file goes too. Blobs
    are released only after the transaction commits. The caller must
    be inside ``transaction.atomic()`` holding the owner's lock.

    Args:
        item: Folder or file to erase.

    Returns:
        DeletionSummary of the erased records.
    """
    if isinstance(item, Folder):
        folder_ids = collect_subtree_ids(item.pk)
        files = File.objects.filter(folder_id__in=folder_ids)
    else:
        folder_ids = []
        files = File.objects.filter(pk=item.pk)

    file_rows = list(files.values_list('id', 'blob_reference', 'size_mb', 'trashed'))
    file_ids = [row[0] for row in file_rows]
    freed_mb = sum(
        (size for _, _, size, trashed in file_rows if not trashed),
        Decimal(0),
    )

    ShareGrant.objects.filter(
        Q(item_type=ItemType.FILE, item_id__in=file_ids)
        | Q(item_type=ItemType.FOLDER, item_id__in=folder_ids),
    ).delete()
    files.delete()
    Folder.objects.filter(pk__in=folder_ids).delete()

    for _, blob_reference, _, _ in file_rows:
        transaction.on_commit(partial(release_blob, blob_reference))

    logger.info(
        'Permanently deleted %s %s: %d folders, %d files, %s MB freed',
        item.item_type,
        item.pk,
        len(folder_ids),
        len(file_rows),
        freed_mb,
    )
    return DeletionSummary(
        folders=len(folder_ids),
        files=len(file_rows),
        freed_mb=freed_mb,
    )


def permanently_delete(
    caller: _User,
    item_type: ItemType | str,
    item_id: uuid.UUID | str,
) -> DeletionSummary:
    """Permanently delete a folder or file, trashed or not.

    Removes records from the database, releases blobs from storage
    and frees quota. Folders are deleted with all their contents.

    Args:
        caller: Acting user.
        item_type: 'folder' or 'file'.
        item_id: Item id.

    Returns:
        DeletionSummary of the erased records.

    Raises:
        NotFoundError: If item not found.
        ForbiddenError: If the caller may not delete it.
        CorruptHierarchyError: If the subtree contains a cycle.
    """
    item = get_item(item_type, item_id)
    authorize_item(caller, item, Action.DELETE)

    with transaction.atomic():
        lock_hierarchy(item.owner)
        # Gone meanwhile: deleting twice frees nothing twice
        if not type(item).objects.filter(pk=item.pk).exists():
            return _EMPTY_SUMMARY
        return purge_item(item)


def list_trash(caller: _User, owner: _User | None = None) -> TrashListing:
    """List all items in a user's trash.

    Args:
        caller: Acting user.
        owner: Whose trash to list, the caller by default.

    Returns:
        TrashListing, most recently trashed first.
    """
    owner = owner or caller
    require_self_or_admin(caller, owner)

    return TrashListing(
        folders=list(
            Folder.objects.filter(owner=owner, trashed=True).order_by('-updated_at'),
        ),
        files=list(
            File.objects.filter(owner=owner, trashed=True).order_by('-updated_at'),
        ),
    )


def empty_trash(caller: _User) -> DeletionSummary:
    """Permanently delete everything in the caller's trash.

    Args:
        caller: Acting user.

    Returns:
        Combined DeletionSummary.
    """
    require_capability(caller, Action.DELETE)
    summary = _EMPTY_SUMMARY

    with transaction.atomic():
        lock_hierarchy(caller)
        for folder in Folder.objects.filter(owner=caller, trashed=True):
            # Already erased with a trashed ancestor
            if Folder.objects.filter(pk=folder.pk).exists():
                summary += purge_item(folder)
        for file_instance in File.objects.filter(owner=caller, trashed=True):
            summary += purge_item(file_instance)

    logger.info(
        'Trash emptied for user %s: %d folders, %d files deleted',
        caller.get_username(),
        summary.folders,
        summary.files,
    )
    return summary
