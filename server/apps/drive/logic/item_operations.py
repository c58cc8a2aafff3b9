"""Business logic shared by folders and files, addressed by (type, id)."""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Final

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from server.apps.drive.exceptions import NotFoundError
from server.apps.drive.infrastructure.metadata import validate_name
from server.apps.drive.logic.folder_operations import (
    ensure_not_descendant,
    resolve_parent,
)
from server.apps.drive.logic.permissions import Action, authorize_item
from server.apps.drive.logic.profile_operations import lock_hierarchy
from server.apps.drive.models import File, Folder, HierarchyItem, ItemType

# User type for Django's dynamic user model
_User = Any

_ItemId = uuid.UUID | str

_MODELS: Final[dict[str, type[Folder] | type[File]]] = {
    ItemType.FOLDER: Folder,
    ItemType.FILE: File,
}

logger = logging.getLogger(__name__)


def get_item(item_type: ItemType | str, item_id: _ItemId) -> HierarchyItem:
    """Get folder or file by type and id, trashed or not.

    Args:
        item_type: 'folder' or 'file'.
        item_id: Item id.

    Returns:
        Folder or File instance.

    Raises:
        NotFoundError: If the item does not exist.
        ValueError: If item_type is unknown.
    """
    model = _MODELS[ItemType(item_type)]
    try:
        return model.objects.get(id=item_id)
    except (model.DoesNotExist, ValidationError):
        raise NotFoundError(item_type, item_id) from None


def save_item(item: HierarchyItem, *fields: str) -> None:
    """Save changed fields and stamp ``updated_at``.

    Args:
        item: Folder or file.
        fields: Names of the changed fields.
    """
    item.updated_at = timezone.now()
    item.save(update_fields=[*fields, 'updated_at'])


@contextmanager
def locked_item(
    caller: _User,
    item_type: ItemType | str,
    item_id: _ItemId,
    action: Action,
) -> Iterator[HierarchyItem]:
    """Authorize an action and hold the owner's lock around it.

    The item is re-read after the lock is taken, so the body always
    sees the latest committed state.

    Args:
        caller: Acting user.
        item_type: 'folder' or 'file'.
        item_id: Item id.
        action: Action being performed.

    Yields:
        The locked, fresh item.

    Raises:
        NotFoundError: If the item does not exist.
        ForbiddenError: If the caller may not perform the action.
    """
    item = get_item(item_type, item_id)
    authorize_item(caller, item, action)

    with transaction.atomic():
        lock_hierarchy(item.owner)
        try:
            item.refresh_from_db()
        except item.DoesNotExist:
            raise NotFoundError(item_type, item_id) from None
        yield item


def rename(
    caller: _User,
    item_type: ItemType | str,
    item_id: _ItemId,
    new_name: str,
) -> HierarchyItem:
    """Rename a folder or file.

    Args:
        caller: Acting user.
        item_type: 'folder' or 'file'.
        item_id: Item id.
        new_name: New name.

    Returns:
        Updated item.

    Raises:
        InvalidNameError: If new_name is empty.
    """
    new_name = validate_name(new_name)

    with locked_item(caller, item_type, item_id, Action.MODIFY) as item:
        old_name = item.name
        item.name = new_name
        save_item(item, 'name')

    logger.info(
        'Renamed %s %s: %s -> %s',
        item.item_type,
        item.pk,
        old_name,
        new_name,
    )
    return item


def move(
    caller: _User,
    item_type: ItemType | str,
    item_id: _ItemId,
    new_parent_id: _ItemId | None,
) -> HierarchyItem:
    """Move a folder or file to another folder (None for root).

    Args:
        caller: Acting user.
        item_type: 'folder' or 'file'.
        item_id: Item id.
        new_parent_id: Target folder id, None for root level.

    Returns:
        Updated item.

    Raises:
        InvalidParentError: If target is missing, foreign, trashed or
            inside the moved folder.
        CorruptHierarchyError: If the target's ancestry has a cycle.
    """
    with locked_item(caller, item_type, item_id, Action.MODIFY) as item:
        parent = resolve_parent(item.owner, new_parent_id)
        if parent is not None and isinstance(item, Folder):
            ensure_not_descendant(item, parent)

        setattr(item, item.parent_field, parent)
        save_item(item, item.parent_field)

    logger.info(
        'Moved %s %s to %s',
        item.item_type,
        item.pk,
        new_parent_id or 'root',
    )
    return item


def toggle_star(
    caller: _User,
    item_type: ItemType | str,
    item_id: _ItemId,
    starred: bool,
) -> HierarchyItem:
    """Star or unstar a folder or file.

    Args:
        caller: Acting user.
        item_type: 'folder' or 'file'.
        item_id: Item id.
        starred: New starred flag.

    Returns:
        Updated item.
    """
    with locked_item(caller, item_type, item_id, Action.MODIFY) as item:
        item.starred = starred
        save_item(item, 'starred')

    logger.debug('Starred %s %s: %s', item.item_type, item.pk, starred)
    return item


def toggle_public(
    caller: _User,
    item_type: ItemType | str,
    item_id: _ItemId,
    is_public: bool,
) -> HierarchyItem:
    """Make a single folder or file public or private.

    Visibility never propagates: files and subfolders of a public
    folder keep their own flag.

    Args:
        caller: Acting user.
        item_type: 'folder' or 'file'.
        item_id: Item id.
        is_public: New visibility.

    Returns:
        Updated item.
    """
    with locked_item(caller, item_type, item_id, Action.SHARE) as item:
        item.is_public = is_public
        save_item(item, 'is_public')

    logger.info('Visibility of %s %s: public=%s', item.item_type, item.pk, is_public)
    return item
