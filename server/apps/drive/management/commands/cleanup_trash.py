"""Management command to purge items that stayed in trash too long."""

import logging
from datetime import timedelta
from itertools import chain
from typing import Any, Final

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from server.apps.drive.exceptions import DriveError
from server.apps.drive.logic.profile_operations import lock_hierarchy
from server.apps.drive.logic.trash_operations import purge_item
from server.apps.drive.models import File, Folder, HierarchyItem

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Permanently delete items trashed more than the retention period ago."""

    help = 'Purge items that stayed in trash longer than DRIVE_TRASH_RETENTION_DAYS'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be purged without deleting',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max items to process (default: {_DEFAULT_BATCH_SIZE})',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the cleanup command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        batch_size = options['batch_size']
        retention_days = settings.DRIVE_TRASH_RETENTION_DAYS

        cutoff = timezone.now() - timedelta(days=retention_days)

        self.stdout.write(
            f'Looking for items trashed before {cutoff} '
            f'(older than {retention_days} days)',
        )

        # Folders first: their purge takes the files inside along
        expired = list(chain(
            Folder.objects.filter(
                trashed=True,
                updated_at__lte=cutoff,
            ).select_related('owner').order_by('updated_at'),
            File.objects.filter(
                trashed=True,
                updated_at__lte=cutoff,
            ).select_related('owner').order_by('updated_at'),
        ))[:batch_size]

        count = 0
        failed = 0

        for item in expired:
            if dry_run:
                self.stdout.write(
                    f'Would purge: {item.item_type} {item.name} '
                    f'(user: {item.owner.get_username()}, '
                    f'trashed: {item.updated_at})',
                )
                count += 1
                continue

            try:
                purged = self._purge(item)
            except DriveError as exc:
                self.stderr.write(f'Failed to purge {item.pk}: {exc}')
                logger.exception(
                    'Failed to purge %s from trash: %s',
                    item.item_type,
                    item.pk,
                )
                failed += 1
                continue

            if purged:
                count += 1
                logger.info(
                    'Purged %s from trash: %s (ID: %s)',
                    item.item_type,
                    item.name,
                    item.pk,
                )

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would purge {count} items from trash'),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Purged {count} items from trash, {failed} failed',
                ),
            )

    def _purge(self, item: HierarchyItem) -> bool:
        with transaction.atomic():
            lock_hierarchy(item.owner)
            # Already erased together with an expired folder
            if not type(item).objects.filter(pk=item.pk, trashed=True).exists():
                return False
            purge_item(item)
        return True
