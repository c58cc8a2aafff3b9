"""Business logic for folders and hierarchy walks.

Parent pointers are walked iteratively with a visited set. A stored
cycle raises ``CorruptHierarchyError`` instead of looping forever.
"""

import logging
import uuid
from collections.abc import Iterator
from typing import Any, NamedTuple

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from server.apps.drive.exceptions import (
    CorruptHierarchyError,
    InvalidParentError,
    NotFoundError,
)
from server.apps.drive.infrastructure.metadata import (
    validate_color,
    validate_name,
)
from server.apps.drive.logic.permissions import (
    Action,
    authorize_item,
    can_view,
    is_allowed,
    require_capability,
)
from server.apps.drive.logic.profile_operations import lock_hierarchy
from server.apps.drive.models import Folder, ItemType

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


class Crumb(NamedTuple):
    """One step of a breadcrumb path."""

    id: uuid.UUID
    name: str


def get_folder(folder_id: uuid.UUID | str) -> Folder:
    """Get folder by id.

    Args:
        folder_id: Folder id.

    Returns:
        Folder instance.

    Raises:
        NotFoundError: If folder not found.
    """
    try:
        return Folder.objects.get(id=folder_id)
    except (Folder.DoesNotExist, ValidationError):
        raise NotFoundError(ItemType.FOLDER, folder_id) from None


def resolve_parent(
    owner: _User,
    parent_id: uuid.UUID | str | None,
) -> Folder | None:
    """Resolve and validate a parent folder for an owner's item.

    Args:
        owner: Owner of the item being placed.
        parent_id: Target folder id, None for root level.

    Returns:
        Parent folder, or None for root level.

    Raises:
        InvalidParentError: If parent is missing, foreign or trashed.
    """
    if parent_id is None:
        return None

    try:
        parent = Folder.objects.filter(id=parent_id).first()
    except ValidationError:
        parent = None

    if parent is None:
        raise InvalidParentError(f'Parent folder not found: {parent_id}')
    if parent.owner_id != owner.pk:
        raise InvalidParentError(
            f'Parent folder {parent_id} belongs to another user',
        )
    if parent.trashed:
        raise InvalidParentError(f'Parent folder {parent_id} is in trash')
    return parent


def walk_up(folder_id: uuid.UUID) -> Iterator[dict[str, Any]]:
    """Walk parent pointers from a folder up to its root.

    Args:
        folder_id: Starting folder id (yielded first).

    Yields:
        Rows with ``id``, ``name`` and ``parent_id``, leaf to root.

    Raises:
        CorruptHierarchyError: If a folder is revisited or a parent
            pointer dangles.
    """
    visited: set[uuid.UUID] = set()
    current: uuid.UUID | None = folder_id

    while current is not None:
        if current in visited:
            logger.error('Cycle in folder hierarchy at %s', current)
            raise CorruptHierarchyError(
                f'Folder {current} is its own ancestor',
            )
        visited.add(current)

        row = Folder.objects.filter(id=current).values(
            'id',
            'name',
            'parent_id',
        ).first()
        if row is None:
            raise CorruptHierarchyError(f'Dangling parent pointer: {current}')

        yield row
        current = row['parent_id']


def collect_subtree_ids(folder_id: uuid.UUID) -> list[uuid.UUID]:
    """Collect a folder and all of its descendants, breadth first.

    Args:
        folder_id: Root of the subtree.

    Returns:
        Folder ids, the root first.

    Raises:
        CorruptHierarchyError: If a folder is reached twice.
    """
    visited = {folder_id}
    ordered = [folder_id]
    frontier = [folder_id]

    while frontier:
        children = Folder.objects.filter(
            parent_id__in=frontier,
        ).values_list('id', flat=True)
        frontier = []
        for child_id in children:
            if child_id in visited:
                raise CorruptHierarchyError(
                    f'Folder {child_id} reached twice below {folder_id}',
                )
            visited.add(child_id)
            ordered.append(child_id)
            frontier.append(child_id)

    return ordered


def ensure_not_descendant(folder: Folder, new_parent: Folder) -> None:
    """Reject moving a folder below itself.

    Args:
        folder: Folder being moved.
        new_parent: Proposed parent.

    Raises:
        InvalidParentError: If new_parent is folder or one of its
            descendants.
    """
    for row in walk_up(new_parent.pk):
        if row['id'] == folder.pk:
            raise InvalidParentError(
                f'Cannot move folder {folder.pk} into its own subtree',
            )


def create_folder(
    caller: _User,
    name: str,
    parent_id: uuid.UUID | str | None = None,
) -> Folder:
    """Create a folder owned by the caller.

    Args:
        caller: Acting user, becomes the owner.
        name: Folder name.
        parent_id: Parent folder id, None for a root folder.

    Returns:
        Created Folder instance.

    Raises:
        InvalidNameError: If name is empty.
        InvalidParentError: If parent is missing, foreign or trashed.
    """
    require_capability(caller, Action.CREATE)
    name = validate_name(name)

    with transaction.atomic():
        lock_hierarchy(caller)
        parent = resolve_parent(caller, parent_id)
        folder = Folder.objects.create(
            owner=caller,
            parent=parent,
            name=name,
        )

    logger.info(
        'Folder created: %s (ID: %s, parent: %s)',
        name,
        folder.pk,
        parent_id,
    )
    return folder


def set_folder_color(
    caller: _User,
    folder_id: uuid.UUID | str,
    color: str | None,
) -> Folder:
    """Set or clear the display color of a folder.

    Args:
        caller: Acting user.
        folder_id: Folder id.
        color: Hex color (#RRGGBB) or None to clear.

    Returns:
        Updated Folder instance.
    """
    color = validate_color(color)
    folder = get_folder(folder_id)
    authorize_item(caller, folder, Action.MODIFY)

    folder.color = color
    folder.updated_at = timezone.now()
    folder.save(update_fields=['color', 'updated_at'])
    logger.info('Folder color set: %s -> %s', folder.pk, color)
    return folder


def get_breadcrumb_path(
    caller: _User,
    folder_id: uuid.UUID | str,
) -> list[Crumb]:
    """Get the path from the root down to a folder.

    Viewers who reach the folder through a grant or because it is
    public only see the ancestors they may view themselves: the path
    is cut at the first ancestor hidden from them.

    Args:
        caller: Acting user.
        folder_id: Leaf folder id.

    Returns:
        Crumbs ordered root to leaf, the folder itself last.

    Raises:
        NotFoundError: If folder not found.
        ForbiddenError: If the caller may not view the folder.
        CorruptHierarchyError: If parent pointers form a cycle.
    """
    folder = get_folder(folder_id)
    role = authorize_item(caller, folder, Action.VIEW)
    sees_all = folder.owner_id == caller.pk or is_allowed(role, Action.OVERRIDE)

    crumbs: list[Crumb] = []
    for row in walk_up(folder.pk):
        if crumbs and not sees_all:
            ancestor = Folder.objects.get(pk=row['id'])
            if not can_view(caller, ancestor):
                break
        crumbs.append(Crumb(id=row['id'], name=row['name']))
    crumbs.reverse()
    return crumbs
