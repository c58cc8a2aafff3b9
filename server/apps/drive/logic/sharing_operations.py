"""Business logic for share grants."""

import logging
import uuid
from typing import Any

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db.models import Q

from server.apps.drive.exceptions import ForbiddenError, NotFoundError
from server.apps.drive.logic.item_operations import get_item
from server.apps.drive.logic.listing_operations import Listing
from server.apps.drive.logic.permissions import (
    Action,
    authorize_item,
    is_allowed,
    require_authenticated,
    require_capability,
)
from server.apps.drive.models import (
    File,
    Folder,
    ItemType,
    SharePermission,
    ShareGrant,
)

User = get_user_model()

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def grant(  # noqa: WPS211
    caller: _User,
    item_type: ItemType | str,
    item_id: uuid.UUID | str,
    grantee_id: int,
    permission: SharePermission | str = SharePermission.VIEWER,
) -> ShareGrant:
    """Share one item with another user.

    Granting the same permission twice returns the existing grant.

    Args:
        caller: Acting user, must own the item.
        item_type: 'folder' or 'file'.
        item_id: Item id.
        grantee_id: User receiving the grant.
        permission: viewer, commenter or editor.

    Returns:
        The ShareGrant.

    Raises:
        NotFoundError: If the item or the grantee does not exist.
        ForbiddenError: If the caller does not own the item.
    """
    require_capability(caller, Action.SHARE)
    item = get_item(item_type, item_id)

    grantee = User.objects.filter(pk=grantee_id).first()
    if grantee is None:
        raise NotFoundError('user', grantee_id)

    if item.owner_id != caller.pk:
        logger.warning(
            'User %s tried to share %s %s owned by %s',
            caller.get_username(),
            item.item_type,
            item.pk,
            item.owner_id,
        )
        raise ForbiddenError('Only the owner can share an item')

    share, created = ShareGrant.objects.get_or_create(
        item_type=item.item_type,
        item_id=item.pk,
        granted_by=caller,
        granted_to=grantee,
        permission=SharePermission(permission),
    )
    if created:
        logger.info(
            'Shared %s %s with %s as %s',
            item.item_type,
            item.pk,
            grantee.get_username(),
            share.permission,
        )
    return share


def grant_by_email(  # noqa: WPS211
    caller: _User,
    item_type: ItemType | str,
    item_id: uuid.UUID | str,
    email: str,
    permission: SharePermission | str = SharePermission.VIEWER,
) -> ShareGrant:
    """Share one item with the user registered under an email.

    Args:
        caller: Acting user, must own the item.
        item_type: 'folder' or 'file'.
        item_id: Item id.
        email: Grantee's email (case-insensitive).
        permission: viewer, commenter or editor.

    Returns:
        The ShareGrant.

    Raises:
        NotFoundError: If no user has that email.
    """
    grantee = User.objects.filter(email__iexact=email).first()
    if grantee is None:
        raise NotFoundError('user', email)
    return grant(caller, item_type, item_id, grantee.pk, permission)


def revoke(caller: _User, grant_id: uuid.UUID | str) -> None:
    """Remove a share grant.

    Args:
        caller: Acting user, the grantor, the item owner or an admin.
        grant_id: Grant id.

    Raises:
        NotFoundError: If the grant does not exist.
        ForbiddenError: If the caller is neither grantor, owner nor admin.
    """
    role = require_capability(caller, Action.SHARE)
    try:
        share = ShareGrant.objects.get(pk=grant_id)
    except (ShareGrant.DoesNotExist, ValidationError):
        raise NotFoundError('grant', grant_id) from None

    model = Folder if share.item_type == ItemType.FOLDER else File
    item_owner_ids = model.objects.filter(
        pk=share.item_id,
    ).values_list('owner_id', flat=True)
    allowed = (
        caller.pk in {share.granted_by_id, *item_owner_ids}
        or is_allowed(role, Action.OVERRIDE)
    )
    if not allowed:
        raise ForbiddenError('Only the grantor or the owner can revoke a grant')

    share.delete()
    logger.info('Revoked grant %s on %s %s', grant_id, share.item_type, share.item_id)


def list_grants(
    caller: _User,
    item_type: ItemType | str,
    item_id: uuid.UUID | str,
) -> list[ShareGrant]:
    """List grants on one item.

    Args:
        caller: Acting user, the owner or an admin.
        item_type: 'folder' or 'file'.
        item_id: Item id.

    Returns:
        Grants, newest first.
    """
    item = get_item(item_type, item_id)
    authorize_item(caller, item, Action.SHARE)
    return list(
        ShareGrant.objects.filter(
            item_type=item.item_type,
            item_id=item.pk,
        ).select_related('granted_to'),
    )


def list_shared_with(caller: _User) -> Listing:
    """List active items other users shared with the caller.

    Args:
        caller: Acting user.

    Returns:
        Listing of shared folders and files, newest first.
    """
    require_authenticated(caller)
    received = ShareGrant.objects.filter(granted_to=caller)

    def shared_ids(item_type: ItemType) -> Q:
        return Q(
            id__in=received.filter(item_type=item_type).values('item_id'),
            trashed=False,
        )

    return Listing(
        folders=list(Folder.objects.filter(shared_ids(ItemType.FOLDER))),
        files=list(File.objects.filter(shared_ids(ItemType.FILE))),
    )
