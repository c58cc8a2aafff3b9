"""Business logic for drive profiles and the per-user lock."""

import logging
from typing import Any

from django.conf import settings

from server.apps.drive.models import UserProfile

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def get_or_create_profile(user: _User) -> UserProfile:
    """Get or create drive profile for user (on-demand creation).

    Args:
        user: User to get profile for.

    Returns:
        UserProfile instance for the user.
    """
    profile, created = UserProfile.objects.get_or_create(
        user=user,
        defaults={
            'role': settings.DRIVE_DEFAULT_ROLE,
            'storage_limit_mb': settings.DRIVE_DEFAULT_STORAGE_LIMIT_MB,
        },
    )
    if created:
        logger.info(
            'Created drive profile for user %s: role=%s, limit=%d MB',
            user.get_username(),
            profile.role,
            profile.storage_limit_mb,
        )
    return profile


def lock_hierarchy(user: _User) -> UserProfile:
    """Take the per-user serialization lock.

    Locks the user's profile row until the surrounding transaction
    ends. Every operation that mutates a user's hierarchy takes this
    lock first, so quota check-then-insert and snapshot restore never
    interleave with other writers of the same user.

    Must be called inside ``transaction.atomic()``.

    Args:
        user: Owner whose hierarchy is locked.

    Returns:
        Locked UserProfile instance.
    """
    # Make sure the row exists before locking it
    get_or_create_profile(user)
    return UserProfile.objects.select_for_update().get(user=user)
