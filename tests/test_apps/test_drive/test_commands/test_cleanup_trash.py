"""Tests for cleanup_trash management command."""

from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from server.apps.drive.models import File, Folder


def _trashed_days_ago(days):
    return timezone.now() - timedelta(days=days)


@pytest.mark.django_db
class TestCleanupTrashCommand:
    """Tests for cleanup_trash management command."""

    def test_cleanup_purges_old_items(self, user, make_file):
        """Test cleanup purges items trashed more than 30 days ago."""
        old_file = make_file(user, 'old.txt', trashed=True, updated_at=_trashed_days_ago(31))

        out = StringIO()
        call_command('cleanup_trash', stdout=out)

        assert not File.objects.filter(pk=old_file.pk).exists()
        assert 'Purged 1 items from trash, 0 failed' in out.getvalue()

    def test_cleanup_preserves_recent_and_active_items(self, user, make_file):
        """Test cleanup keeps recently trashed and active items."""
        recent = make_file(user, 'recent.txt', trashed=True, updated_at=_trashed_days_ago(29))
        active = make_file(user, 'active.txt', updated_at=_trashed_days_ago(90))

        out = StringIO()
        call_command('cleanup_trash', stdout=out)

        assert File.objects.filter(pk__in=[recent.pk, active.pk]).count() == 2
        assert 'Purged 0 items' in out.getvalue()

    def test_cleanup_purges_folder_contents(self, user, make_folder, make_file):
        """Test an expired folder goes together with everything inside."""
        folder = make_folder(user, 'Old', trashed=True, updated_at=_trashed_days_ago(40))
        make_file(user, 'inside.txt', folder=folder)
        make_file(
            user,
            'inside-trashed.txt',
            folder=folder,
            trashed=True,
            updated_at=_trashed_days_ago(40),
        )

        out = StringIO()
        call_command('cleanup_trash', stdout=out)

        assert not Folder.objects.exists()
        assert not File.objects.exists()
        # The trashed file went with its folder
        assert 'Purged 1 items' in out.getvalue()

    def test_cleanup_respects_retention_setting(self, user, make_file, settings):
        """Test the retention period comes from settings."""
        settings.DRIVE_TRASH_RETENTION_DAYS = 7
        make_file(user, 'week-old.txt', trashed=True, updated_at=_trashed_days_ago(8))

        call_command('cleanup_trash', stdout=StringIO())

        assert not File.objects.exists()

    def test_cleanup_batch_limit(self, user, make_file):
        """Test cleanup respects --batch-size option."""
        for index in range(5):
            make_file(
                user,
                f'file{index}.txt',
                trashed=True,
                updated_at=_trashed_days_ago(31),
            )

        out = StringIO()
        call_command('cleanup_trash', '--batch-size=2', stdout=out)

        assert File.objects.filter(owner=user).count() == 3
        assert 'Purged 2 items' in out.getvalue()

    def test_cleanup_dry_run(self, user, make_file):
        """Test cleanup --dry-run doesn't delete."""
        old_file = make_file(user, 'old.txt', trashed=True, updated_at=_trashed_days_ago(31))

        out = StringIO()
        call_command('cleanup_trash', '--dry-run', stdout=out)

        assert File.objects.filter(pk=old_file.pk).exists()
        output = out.getvalue()
        assert 'Would purge: file old.txt' in output
        assert 'Would purge 1 items from trash' in output
