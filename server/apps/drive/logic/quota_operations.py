"""Business logic for storage quota operations."""

import logging
from decimal import Decimal
from typing import Any, NamedTuple

from django.db import transaction
from django.db.models import Sum

from server.apps.drive.exceptions import QuotaExceededError
from server.apps.drive.logic.permissions import Action, require_capability
from server.apps.drive.logic.profile_operations import (
    get_or_create_profile,
    lock_hierarchy,
)
from server.apps.drive.models import File

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


class Usage(NamedTuple):
    """Storage usage of one user, in megabytes."""

    used_mb: Decimal
    limit_mb: Decimal

    def available_mb(self) -> Decimal:
        """Get available storage space.

        Returns:
            Available megabytes (never negative).
        """
        return max(Decimal(0), self.limit_mb - self.used_mb)


def calculate_used_mb(user: _User) -> Decimal:
    """Sum sizes of the user's non-trashed files.

    Always recomputed from the file rows, so usage can never drift
    from what is actually stored.

    Args:
        user: User to calculate usage for.

    Returns:
        Used megabytes.
    """
    total = File.objects.filter(
        owner=user,
        trashed=False,
    ).aggregate(total=Sum('size_mb'))['total']
    return Decimal(total or 0)


def get_usage(user: _User) -> Usage:
    """Get current usage and limit for a user.

    Creates the profile on demand if it doesn't exist.

    Args:
        user: User to get usage for.

    Returns:
        Usage with used and limit megabytes.
    """
    profile = get_or_create_profile(user)
    return Usage(
        used_mb=calculate_used_mb(user),
        limit_mb=Decimal(profile.storage_limit_mb),
    )


def check_available(user: _User, incoming_size_mb: Decimal | int) -> bool:
    """Check if user has room for an incoming write.

    Args:
        user: User to check quota for.
        incoming_size_mb: Size of the write in megabytes.

    Returns:
        True iff used + incoming <= limit.
    """
    usage = get_usage(user)
    return usage.used_mb + Decimal(incoming_size_mb) <= usage.limit_mb


def check_quota(user: _User, size_mb: Decimal | int) -> None:
    """Check if user has enough quota for a write.

    Callers that go on to insert must hold ``lock_hierarchy(user)``
    so that no concurrent write can pass the same check.

    Args:
        user: User to check quota for.
        size_mb: Size of the write in megabytes.

    Raises:
        QuotaExceededError: If the write would exceed quota.
    """
    usage = get_usage(user)
    required = Decimal(size_mb)

    if usage.used_mb + required > usage.limit_mb:
        logger.warning(
            'Quota exceeded for user %s: need %s MB, have %s MB available',
            user.get_username(),
            required,
            usage.available_mb(),
        )
        raise QuotaExceededError(
            limit_mb=usage.limit_mb,
            used_mb=usage.used_mb,
            required_mb=required,
        )


def set_limit(caller: _User, user: _User, new_limit_mb: int) -> Usage:
    """Change a user's storage limit (admin only).

    Never evicts files: a user already above the new limit stays over
    quota and further writes are rejected until usage drops.

    Args:
        caller: Acting admin.
        user: User whose limit changes.
        new_limit_mb: New limit in megabytes.

    Returns:
        Usage after the change.

    Raises:
        ForbiddenError: If the caller is not an admin.
        ValueError: If the limit is negative.
    """
    require_capability(caller, Action.MANAGE_USERS)
    if new_limit_mb < 0:
        raise ValueError('Storage limit cannot be negative')

    with transaction.atomic():
        profile = lock_hierarchy(user)
        old_limit = profile.storage_limit_mb
        profile.storage_limit_mb = new_limit_mb
        profile.save(update_fields=['storage_limit_mb'])

    logger.info(
        'Storage limit of user %s changed by %s: %d -> %d MB',
        user.get_username(),
        caller.get_username(),
        old_limit,
        new_limit_mb,
    )

    return get_usage(user)
