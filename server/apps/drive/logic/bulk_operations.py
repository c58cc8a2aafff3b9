"""Bulk export and replacement of a user's whole hierarchy.

These primitives serve snapshot backups. They bypass per-item
authorization; callers authorize the owner before using them.
"""

import logging
import uuid
from collections.abc import Sequence
from typing import Any, NamedTuple

from django.db import transaction
from django.db.models import Q

from server.apps.drive.exceptions import CorruptHierarchyError
from server.apps.drive.logic.profile_operations import lock_hierarchy
from server.apps.drive.models import File, Folder, ItemType, ShareGrant

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


class HierarchyExport(NamedTuple):
    """Every folder and file of one owner, trashed ones included."""

    folders: list[Folder]
    files: list[File]


def export_all(owner: _User) -> HierarchyExport:
    """Read the owner's complete hierarchy.

    Call inside ``transaction.atomic()`` holding ``lock_hierarchy(owner)``
    to get a consistent view.

    Args:
        owner: Owner of the hierarchy.

    Returns:
        HierarchyExport with folders and files, oldest first.
    """
    return HierarchyExport(
        folders=list(Folder.objects.filter(owner=owner).order_by('created_at', 'id')),
        files=list(File.objects.filter(owner=owner).order_by('created_at', 'id')),
    )


def order_parents_first(folders: Sequence[Folder]) -> list[Folder]:
    """Order folders so that every parent precedes its children.

    Args:
        folders: Folders of one hierarchy.

    Returns:
        The same folders, parents first.

    Raises:
        CorruptHierarchyError: If a parent is outside the set or the
            parent pointers form a cycle.
    """
    by_id = {folder.pk: folder for folder in folders}
    children: dict[uuid.UUID | None, list[Folder]] = {}
    for folder in folders:
        if folder.parent_id is not None and folder.parent_id not in by_id:
            raise CorruptHierarchyError(
                f'Folder {folder.pk} references unknown parent {folder.parent_id}',
            )
        children.setdefault(folder.parent_id, []).append(folder)

    ordered: list[Folder] = []
    frontier = children.get(None, [])
    while frontier:
        ordered.extend(frontier)
        frontier = [
            child
            for parent in frontier
            for child in children.get(parent.pk, [])
        ]

    # Anything unreachable from a root sits on a cycle
    if len(ordered) != len(by_id):
        raise CorruptHierarchyError('Folder parent pointers form a cycle')
    return ordered


def replace_all(
    owner: _User,
    folders: Sequence[Folder],
    files: Sequence[File],
) -> HierarchyExport:
    """Atomically replace the owner's hierarchy with the given records.

    Deletes every current folder and file of the owner, then inserts
    the given folders (parents first) and files with their own ids and
    timestamps. Share grants on items that no longer exist are pruned.
    Blob bytes are not touched. On any failure the transaction rolls
    back and the previous hierarchy stays in place.

    Args:
        owner: Owner of the hierarchy.
        folders: Unsaved Folder instances.
        files: Unsaved File instances.

    Returns:
        HierarchyExport of the inserted records.

    Raises:
        CorruptHierarchyError: If a record references a folder outside
            the given set, or the folders form a cycle.
    """
    ordered_folders = order_parents_first(folders)
    folder_ids = {folder.pk for folder in ordered_folders}
    for file_instance in files:
        if file_instance.folder_id is not None and (
            file_instance.folder_id not in folder_ids
        ):
            raise CorruptHierarchyError(
                f'File {file_instance.pk} references unknown folder '
                f'{file_instance.folder_id}',
            )

    for item in (*ordered_folders, *files):
        item.owner = owner

    with transaction.atomic():
        lock_hierarchy(owner)
        deleted_files, _ = File.objects.filter(owner=owner).delete()
        deleted_folders, _ = Folder.objects.filter(owner=owner).delete()

        created_folders = Folder.objects.bulk_create(ordered_folders)
        created_files = File.objects.bulk_create(files)

        ShareGrant.objects.filter(granted_by=owner).exclude(
            Q(item_type=ItemType.FOLDER, item_id__in=folder_ids)
            | Q(item_type=ItemType.FILE, item_id__in=[item.pk for item in files]),
        ).delete()

    logger.info(
        'Replaced hierarchy of user %s: %d folders, %d files removed; '
        '%d folders, %d files inserted',
        owner.get_username(),
        deleted_folders,
        deleted_files,
        len(created_folders),
        len(created_files),
    )
    return HierarchyExport(folders=created_folders, files=created_files)
