"""Database models for backups app."""

import uuid
from decimal import Decimal
from typing import Any, ClassVar, Final, final, override

from django.conf import settings
from django.db import models
from django.utils import timezone

from server.apps.backups.exceptions import ImmutableBackupError
from server.apps.drive.models import SIZE_DECIMAL_PLACES, SIZE_MAX_DIGITS

_NAME_MAX_LENGTH: Final = 255


@final
class Backup(models.Model):
    """Point-in-time snapshot of one user's whole hierarchy.

    ``folders`` and ``files`` hold field-for-field copies of every
    record, trashed ones included, keyed by ``schema_version``. A stored
    backup is never updated.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='drive_backups',
        db_index=True,
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    schema_version = models.PositiveSmallIntegerField(
        help_text='Layout version of the captured records',
    )

    folders = models.JSONField(default=list)
    files = models.JSONField(default=list)

    folder_count = models.PositiveIntegerField(default=0)
    file_count = models.PositiveIntegerField(default=0)

    total_size_mb = models.DecimalField(
        max_digits=SIZE_MAX_DIGITS,
        decimal_places=SIZE_DECIMAL_PLACES,
        default=Decimal(0),
    )

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        """Model metadata."""

        verbose_name = 'Backup'  # type: ignore[mutable-override]
        verbose_name_plural = 'Backups'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['-created_at']

        indexes: ClassVar[list[models.Index]] = [
            models.Index(
                fields=['owner', '-created_at'],
                name='backup_owner_created_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.name} ({self.folder_count} folders, {self.file_count} files)'

    @override
    def save(self, *args: Any, **kwargs: Any) -> None:
        """Insert the backup; stored backups cannot be changed.

        Raises:
            ImmutableBackupError: If the backup was already stored.
        """
        if not self._state.adding:
            raise ImmutableBackupError(f'Backup {self.pk} is immutable')
        super().save(*args, **kwargs)
