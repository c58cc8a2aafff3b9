"""Role capability table and item authorization.

Every public drive operation checks its caller here once, at entry,
instead of comparing role strings at each call site.
"""

import enum
import logging
from collections.abc import Mapping
from typing import Any, Final

from server.apps.drive.exceptions import (
    AuthenticationRequiredError,
    ForbiddenError,
)
from server.apps.drive.logic.profile_operations import get_or_create_profile
from server.apps.drive.models import (
    HierarchyItem,
    Role,
    SharePermission,
    ShareGrant,
)

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


class Action(enum.StrEnum):
    """Operation classes gated by role."""

    VIEW = 'view'
    CREATE = 'create'
    MODIFY = 'modify'
    TRASH = 'trash'
    DELETE = 'delete'
    SHARE = 'share'
    BACKUP = 'backup'
    EDIT_SHARED = 'edit_shared'
    MANAGE_USERS = 'manage_users'
    OVERRIDE = 'override'


_WRITER_ACTIONS: Final = frozenset((
    Action.VIEW,
    Action.CREATE,
    Action.MODIFY,
    Action.TRASH,
    Action.DELETE,
    Action.SHARE,
    Action.BACKUP,
))

CAPABILITIES: Final[Mapping[Role, frozenset[Action]]] = {
    Role.READER: frozenset((Action.VIEW,)),
    Role.WRITER: _WRITER_ACTIONS,
    Role.EDITOR: _WRITER_ACTIONS | {Action.EDIT_SHARED},
    Role.ADMIN: frozenset(Action),
}


def is_allowed(role: Role | str, action: Action) -> bool:
    """Look up (role, action) in the capability table.

    Args:
        role: Role of the caller.
        action: Requested action.

    Returns:
        True if the role may perform the action.
    """
    try:
        return action in CAPABILITIES[Role(role)]
    except ValueError:
        return False


def require_authenticated(caller: _User | None) -> None:
    """Check that an operation has an authenticated caller.

    Args:
        caller: Acting user or None.

    Raises:
        AuthenticationRequiredError: If there is no authenticated caller.
    """
    if caller is None or not caller.is_authenticated:
        raise AuthenticationRequiredError('Authentication required')


def require_capability(caller: _User | None, action: Action) -> Role:
    """Check that the caller's role allows an action.

    Args:
        caller: Acting user.
        action: Requested action.

    Returns:
        The caller's role.

    Raises:
        AuthenticationRequiredError: If there is no authenticated caller.
        ForbiddenError: If the role does not allow the action.
    """
    require_authenticated(caller)
    role = Role(get_or_create_profile(caller).role)
    if not is_allowed(role, action):
        logger.warning(
            'Role %s of user %s may not %s',
            role,
            caller.get_username(),
            action,
        )
        raise ForbiddenError(f'Role {role} may not {action}')
    return role


def has_grant(
    user: _User,
    item: HierarchyItem,
    permission: SharePermission | None = None,
) -> bool:
    """Check whether an item was shared with a user.

    Args:
        user: Grantee.
        item: Shared folder or file.
        permission: Required permission, any permission when None.

    Returns:
        True if a matching grant exists.
    """
    grants = ShareGrant.objects.filter(
        item_type=item.item_type,
        item_id=item.pk,
        granted_to=user,
    )
    if permission is not None:
        grants = grants.filter(permission=permission)
    return grants.exists()


def can_view(caller: _User, item: HierarchyItem) -> bool:
    """Check, without raising, whether the caller may view an item.

    Args:
        caller: Authenticated acting user.
        item: Folder or file.

    Returns:
        True for owners, admins, public items and granted items.
    """
    role = get_or_create_profile(caller).role
    if item.owner_id == caller.pk or is_allowed(role, Action.OVERRIDE):
        return True
    return (item.is_public and not item.trashed) or has_grant(caller, item)


def authorize_item(
    caller: _User | None,
    item: HierarchyItem,
    action: Action,
) -> Role:
    """Check that the caller may perform an action on one item.

    Owners act within their role and admins act on any item. Besides
    that, an editor may modify an item granted to them with editor
    permission, and anyone may view an item that is public or shared
    with them.

    Args:
        caller: Acting user.
        item: Target folder or file.
        action: Requested action.

    Returns:
        The caller's role.

    Raises:
        AuthenticationRequiredError: If there is no authenticated caller.
        ForbiddenError: If the caller may not act on the item.
    """
    role = require_capability(caller, action)

    if item.owner_id == caller.pk or is_allowed(role, Action.OVERRIDE):
        return role

    if action == Action.VIEW:
        if (item.is_public and not item.trashed) or has_grant(caller, item):
            return role
    elif action == Action.MODIFY and is_allowed(role, Action.EDIT_SHARED):
        if has_grant(caller, item, SharePermission.EDITOR):
            return role

    logger.warning(
        'User %s may not %s %s %s',
        caller.get_username(),
        action,
        item.item_type,
        item.pk,
    )
    raise ForbiddenError(f'Not allowed to {action} this {item.item_type}')


def require_self_or_admin(caller: _User | None, user: _User) -> Role:
    """Check that the caller acts on their own account or is an admin.

    Args:
        caller: Acting user.
        user: Account addressed by the operation.

    Returns:
        The caller's role.

    Raises:
        AuthenticationRequiredError: If there is no authenticated caller.
        ForbiddenError: If the caller is another non-admin user.
    """
    role = require_capability(caller, Action.VIEW)
    if caller.pk != user.pk and not is_allowed(role, Action.OVERRIDE):
        raise ForbiddenError('Not allowed to act on another account')
    return role
