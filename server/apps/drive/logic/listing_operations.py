"""Business logic for browsing, search and the library views."""

import enum
import logging
import uuid
from typing import Any, NamedTuple

from django.conf import settings

from server.apps.drive.exceptions import NotFoundError
from server.apps.drive.logic.folder_operations import get_folder
from server.apps.drive.logic.permissions import (
    require_authenticated,
    require_self_or_admin,
)
from server.apps.drive.models import File, Folder, ItemType

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


class ItemFilter(enum.StrEnum):
    """Views over a user's hierarchy."""

    ACTIVE = 'active'
    TRASHED = 'trashed'
    STARRED = 'starred'
    PUBLIC = 'public'


class Listing(NamedTuple):
    """Folders and files of one view."""

    folders: list[Folder]
    files: list[File]


def list_items(
    caller: _User,
    parent_id: uuid.UUID | str | None = None,
    item_filter: ItemFilter | str = ItemFilter.ACTIVE,
    owner: _User | None = None,
) -> Listing:
    """List a user's folders and files.

    The active view lists direct children of ``parent_id`` (None for
    root level). Trashed, starred and public views are flat over the
    whole hierarchy. Results are newest-created first, the trash view
    most recently trashed first.

    Args:
        caller: Acting user.
        parent_id: Folder to browse in the active view.
        item_filter: One of active, trashed, starred, public.
        owner: Whose items to list, the caller by default.

    Returns:
        Listing of matching folders and files.

    Raises:
        NotFoundError: If the browsed folder is missing, trashed or
            belongs to someone else.
        ForbiddenError: If a non-admin lists another user's items.
    """
    owner = owner or caller
    require_self_or_admin(caller, owner)
    item_filter = ItemFilter(item_filter)

    folders = Folder.objects.filter(owner=owner)
    files = File.objects.filter(owner=owner)

    if item_filter == ItemFilter.ACTIVE:
        if parent_id is not None:
            parent = get_folder(parent_id)
            if parent.owner_id != owner.pk or parent.trashed:
                raise NotFoundError(ItemType.FOLDER, parent_id)
        folders = folders.filter(trashed=False, parent_id=parent_id)
        files = files.filter(trashed=False, folder_id=parent_id)
    elif item_filter == ItemFilter.TRASHED:
        folders = folders.filter(trashed=True).order_by('-updated_at')
        files = files.filter(trashed=True).order_by('-updated_at')
    elif item_filter == ItemFilter.STARRED:
        folders = folders.filter(trashed=False, starred=True)
        files = files.filter(trashed=False, starred=True)
    else:
        folders = folders.filter(trashed=False, is_public=True)
        files = files.filter(trashed=False, is_public=True)

    return Listing(folders=list(folders), files=list(files))


def list_public_library(caller: _User) -> Listing:
    """List public, non-trashed items of every user.

    Args:
        caller: Acting user.

    Returns:
        Listing, newest first.
    """
    require_authenticated(caller)
    return Listing(
        folders=list(
            Folder.objects.filter(is_public=True, trashed=False).select_related('owner'),
        ),
        files=list(
            File.objects.filter(is_public=True, trashed=False).select_related('owner'),
        ),
    )


def search_files(caller: _User, substring: str) -> list[File]:
    """Search the caller's active files by name.

    Args:
        caller: Acting user.
        substring: Case-insensitive part of the name.

    Returns:
        Matching files, newest first.
    """
    require_self_or_admin(caller, caller)
    logger.debug('Searching files of %s for %r', caller.get_username(), substring)
    return list(
        File.objects.filter(
            owner=caller,
            trashed=False,
            name__icontains=substring,
        ),
    )


def list_recent_files(caller: _User, limit: int | None = None) -> list[File]:
    """List the caller's most recently opened active files.

    Args:
        caller: Acting user.
        limit: Maximum number of files, DRIVE_RECENT_FILES_LIMIT by default.

    Returns:
        Files ordered by last access, most recent first.
    """
    require_self_or_admin(caller, caller)
    limit = limit or settings.DRIVE_RECENT_FILES_LIMIT
    return list(
        File.objects.filter(
            owner=caller,
            trashed=False,
        ).order_by('-last_accessed_at')[:limit],
    )
