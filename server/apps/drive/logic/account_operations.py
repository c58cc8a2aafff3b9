"""Business logic for admin account management."""

import logging
from functools import partial
from typing import Any

from django.db import transaction
from django.db.models import Q

from server.apps.drive.exceptions import ForbiddenError
from server.apps.drive.infrastructure.storage import release_blob
from server.apps.drive.logic.permissions import Action, require_capability
from server.apps.drive.logic.profile_operations import lock_hierarchy
from server.apps.drive.models import (
    File,
    Folder,
    ItemType,
    Role,
    ShareGrant,
    UserProfile,
)

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def set_role(caller: _User, user: _User, role: Role | str) -> UserProfile:
    """Change a user's role (admin only).

    Args:
        caller: Acting admin.
        user: User whose role changes.
        role: New role.

    Returns:
        Updated UserProfile.

    Raises:
        ForbiddenError: If the caller is not an admin.
        ValueError: If the role is unknown.
    """
    require_capability(caller, Action.MANAGE_USERS)
    role = Role(role)

    with transaction.atomic():
        profile = lock_hierarchy(user)
        old_role = profile.role
        profile.role = role
        profile.save(update_fields=['role'])

    logger.info(
        'Role of user %s changed by %s: %s -> %s',
        user.get_username(),
        caller.get_username(),
        old_role,
        role,
    )
    return profile


def delete_account(caller: _User, user: _User) -> int:
    """Delete a user with everything they own (admin only).

    Folders, files, backups, profile and grants given or received go
    with the user row. Grants other users hold on the deleted items are
    removed too. Blobs are released once the deletion commits.

    Args:
        caller: Acting admin.
        user: User to delete.

    Returns:
        Number of released blobs.

    Raises:
        ForbiddenError: If the caller is not an admin or deletes
            their own account.
    """
    require_capability(caller, Action.MANAGE_USERS)
    if caller.pk == user.pk:
        raise ForbiddenError('Admins cannot delete their own account')

    username = user.get_username()
    with transaction.atomic():
        lock_hierarchy(user)
        blob_references = list(
            File.objects.filter(owner=user).values_list('blob_reference', flat=True),
        )
        ShareGrant.objects.filter(
            Q(
                item_type=ItemType.FILE,
                item_id__in=File.objects.filter(owner=user).values('id'),
            )
            | Q(
                item_type=ItemType.FOLDER,
                item_id__in=Folder.objects.filter(owner=user).values('id'),
            ),
        ).delete()
        user.delete()

        for blob_reference in blob_references:
            transaction.on_commit(partial(release_blob, blob_reference))

    logger.info(
        'Account %s deleted by %s, %d blobs scheduled for release',
        username,
        caller.get_username(),
        len(blob_references),
    )
    return len(blob_references)
