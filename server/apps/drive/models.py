"""Database models for drive app."""

import uuid
from decimal import Decimal
from typing import Final, final, override

from django.conf import settings
from django.db import models
from django.utils import timezone

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_BLOB_REFERENCE_MAX_LENGTH: Final = 1024
_COLOR_MAX_LENGTH: Final = 7  # Hex color: #RRGGBB
_ROLE_MAX_LENGTH: Final = 16
_CHOICE_MAX_LENGTH: Final = 16

# Sizes are megabytes with microbyte-ish precision
SIZE_MAX_DIGITS: Final = 16
SIZE_DECIMAL_PLACES: Final = 6

# Default storage limit: 500 MB
DEFAULT_STORAGE_LIMIT_MB: Final = 500


class Role(models.TextChoices):
    """Account role, gating which operations a caller may invoke."""

    READER = 'reader', 'Reader'
    WRITER = 'writer', 'Writer'
    EDITOR = 'editor', 'Editor'
    ADMIN = 'admin', 'Admin'


class ItemType(models.TextChoices):
    """Kind of hierarchy item addressed by id."""

    FILE = 'file', 'File'
    FOLDER = 'folder', 'Folder'


class SharePermission(models.TextChoices):
    """Permission carried by a share grant."""

    VIEWER = 'viewer', 'Viewer'
    COMMENTER = 'commenter', 'Commenter'
    EDITOR = 'editor', 'Editor'


@final
class UserProfile(models.Model):
    """Drive profile of a user: role and storage limit.

    Created on demand. The profile row doubles as the per-user lock
    taken by every mutating hierarchy operation.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='drive_profile',
        primary_key=True,
    )

    role = models.CharField(
        max_length=_ROLE_MAX_LENGTH,
        choices=Role.choices,
        default=Role.READER,
    )

    storage_limit_mb = models.PositiveIntegerField(
        default=DEFAULT_STORAGE_LIMIT_MB,
        help_text='Storage quota limit in megabytes',
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'User Profile'  # type: ignore[mutable-override]
        verbose_name_plural = 'User Profiles'  # type: ignore[mutable-override]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.get_username()} ({self.role})'


class HierarchyItem(models.Model):
    """Fields shared by folders and files.

    Timestamps are plain defaults, not ``auto_now``, so snapshot restore
    can write captured values back unchanged.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='drive_%(class)ss',
        db_index=True,
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    is_public = models.BooleanField(default=False)
    starred = models.BooleanField(default=False)
    trashed = models.BooleanField(default=False)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    item_type: str
    parent_field: str

    class Meta:
        """Model metadata."""

        abstract = True
        ordering = ['-created_at']

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner_id}:{self.name}'

    @property
    def parent_ref(self) -> uuid.UUID | None:
        """Id of the containing folder, None at root level."""
        return getattr(self, f'{self.parent_field}_id')


@final
class Folder(HierarchyItem):
    """Folder in a user's hierarchy.

    ``parent`` is None for root-level folders. Parent and child always
    share an owner.
    """

    parent = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='children',
    )

    color = models.CharField(
        max_length=_COLOR_MAX_LENGTH,
        null=True,
        blank=True,
        help_text='Hex color code for UI display (e.g., #FF5733)',
    )

    item_type = ItemType.FOLDER
    parent_field = 'parent'

    class Meta(HierarchyItem.Meta):
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]

        indexes = [
            models.Index(
                fields=['owner', 'parent'],
                name='drive_folder_owner_parent_idx',
            ),
        ]


@final
class File(HierarchyItem):
    """File metadata; bytes live in the blob store.

    ``blob_reference`` is the storage key of the content, ``folder`` is
    None for root-level files.
    """

    folder = models.ForeignKey(
        Folder,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='files',
    )

    size_mb = models.DecimalField(
        max_digits=SIZE_MAX_DIGITS,
        decimal_places=SIZE_DECIMAL_PLACES,
        default=Decimal(0),
        help_text='File size in megabytes',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        default='application/octet-stream',
    )

    blob_reference = models.CharField(
        max_length=_BLOB_REFERENCE_MAX_LENGTH,
        help_text='Storage key: {user_id}/{timestamp}_{filename}',
    )

    last_accessed_at = models.DateTimeField(default=timezone.now)

    item_type = ItemType.FILE
    parent_field = 'folder'

    class Meta(HierarchyItem.Meta):
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]

        indexes = [
            models.Index(
                fields=['owner', 'folder'],
                name='drive_file_owner_folder_idx',
            ),
            models.Index(
                fields=['owner', '-last_accessed_at'],
                name='drive_file_owner_recent_idx',
            ),
        ]


@final
class ShareGrant(models.Model):
    """Permission on a single item granted by its owner to another user.

    Grants address items by (item_type, item_id) and never propagate to
    the children of a shared folder.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    item_type = models.CharField(
        max_length=_CHOICE_MAX_LENGTH,
        choices=ItemType.choices,
    )

    item_id = models.UUIDField(db_index=True)

    granted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='drive_grants_given',
    )

    granted_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='drive_grants_received',
    )

    permission = models.CharField(
        max_length=_CHOICE_MAX_LENGTH,
        choices=SharePermission.choices,
        default=SharePermission.VIEWER,
    )

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        """Model metadata."""

        verbose_name = 'Share Grant'  # type: ignore[mutable-override]
        verbose_name_plural = 'Share Grants'  # type: ignore[mutable-override]
        ordering = ['-created_at']

        indexes = [
            models.Index(
                fields=['item_type', 'item_id'],
                name='drive_grant_item_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return (
            f'{self.item_type}:{self.item_id} -> '
            f'{self.granted_to_id} ({self.permission})'
        )
