"""Tests for snapshot backup and restore."""

import threading
import time
import uuid
from decimal import Decimal

import pytest
from django.db import IntegrityError, connection

from server.apps.backups.exceptions import (
    BackupNotFoundError,
    ImmutableBackupError,
    RestoreFailedError,
)
from server.apps.backups.logic.backup_operations import (
    create_backup,
    delete_backup,
    get_latest_backup,
    list_all_backups,
    list_backups,
    restore_backup,
)
from server.apps.backups.models import Backup
from server.apps.drive.exceptions import ForbiddenError
from server.apps.drive.logic.file_operations import create_file
from server.apps.drive.logic.item_operations import rename
from server.apps.drive.logic.listing_operations import list_items
from server.apps.drive.logic.trash_operations import permanently_delete
from server.apps.drive.models import File, Folder, ItemType, ShareGrant


def _hierarchy(owner):
    """Ids, names and parent links of the owner's items."""
    return (
        set(Folder.objects.filter(owner=owner).values_list('id', 'name', 'parent_id')),
        set(File.objects.filter(owner=owner).values_list('id', 'name', 'folder_id')),
    )


@pytest.fixture
def tree(user, make_folder, make_file):
    """Two folders with three files, one of them trashed.

    Returns:
        Dict of the created items.
    """
    docs = make_folder(user, 'Docs')
    year = make_folder(user, '2024', parent=docs, color='#FF0000')
    return {
        'docs': docs,
        'year': year,
        'report': make_file(user, 'report.pdf', size_mb='2', folder=year),
        'notes': make_file(user, 'notes.txt', size_mb='0.5', folder=docs, starred=True),
        'old': make_file(user, 'old.txt', size_mb='1', trashed=True),
    }


@pytest.mark.django_db
def test_create_backup_captures_everything(user, tree):
    """Test the snapshot holds active and trashed items with counts."""
    backup = create_backup(user, 'B1')

    assert backup.schema_version == 1
    assert backup.folder_count == 2
    assert backup.file_count == 3
    assert backup.total_size_mb == Decimal('3.5')
    assert {row['id'] for row in backup.files} == {
        str(tree[name].pk) for name in ('report', 'notes', 'old')
    }


@pytest.mark.django_db
def test_create_backup_reader_forbidden(reader):
    """Test readers cannot take backups."""
    with pytest.raises(ForbiddenError):
        create_backup(reader, 'B1')


@pytest.mark.django_db
def test_backup_is_immutable(user, tree):
    """Test later live changes never alter a stored backup."""
    backup = create_backup(user, 'B1')

    rename(user, ItemType.FILE, tree['report'].pk, 'renamed.pdf')
    backup.refresh_from_db()

    assert 'renamed.pdf' not in {row['name'] for row in backup.files}

    backup.name = 'changed'
    with pytest.raises(ImmutableBackupError):
        backup.save()


@pytest.mark.django_db
def test_backup_round_trip(user, tree):
    """Test restore right after backup reproduces the same hierarchy."""
    before = _hierarchy(user)
    backup = create_backup(user, 'B1')

    summary = restore_backup(user, backup.pk)

    assert summary.folders == 2
    assert summary.files == 3
    assert _hierarchy(user) == before


@pytest.mark.django_db
def test_restore_preserves_fields(user, tree):
    """Test restored records keep timestamps, flags and sizes."""
    backup = create_backup(user, 'B1')
    original = File.objects.get(pk=tree['notes'].pk)

    restore_backup(user, backup.pk)

    restored = File.objects.get(pk=original.pk)
    for field in ('created_at', 'updated_at', 'last_accessed_at', 'size_mb', 'starred'):
        assert getattr(restored, field) == getattr(original, field)
    assert Folder.objects.get(pk=tree['year'].pk).color == '#FF0000'
    assert File.objects.get(pk=tree['old'].pk).trashed


@pytest.mark.django_db
def test_restore_after_permanent_delete(user, make_folder, make_file):
    """Test deleted items come back with their original ids."""
    docs = make_folder(user, 'Docs')
    year = make_folder(user, '2024', parent=docs)
    files = [
        make_file(user, 'a.txt', folder=docs),
        make_file(user, 'b.txt', folder=year),
        make_file(user, 'c.txt'),
    ]
    backup = create_backup(user, 'B1')

    permanently_delete(user, ItemType.FOLDER, docs.pk)
    permanently_delete(user, ItemType.FILE, files[2].pk)
    assert not File.objects.filter(owner=user).exists()

    restore_backup(user, backup.pk)

    assert set(Folder.objects.filter(owner=user, trashed=False).values_list('id', flat=True)) == {
        docs.pk,
        year.pk,
    }
    assert set(File.objects.filter(owner=user, trashed=False).values_list('id', flat=True)) == {
        file_instance.pk for file_instance in files
    }
    assert len(list_items(user).folders) == 1


@pytest.mark.django_db
def test_restore_removes_items_created_after_backup(user, tree, make_file):
    """Test restore is destructive for items newer than the backup."""
    backup = create_backup(user, 'B1')
    newer = make_file(user, 'newer.txt')

    restore_backup(user, backup.pk)

    assert not File.objects.filter(pk=newer.pk).exists()


@pytest.mark.django_db
def test_restore_is_atomic(user, tree, make_file, monkeypatch):
    """Test a failing insert leaves the pre-restore hierarchy intact."""
    backup = create_backup(user, 'B1')
    make_file(user, 'after-backup.txt')
    rename(user, ItemType.FOLDER, tree['docs'].pk, 'Documents')
    before = _hierarchy(user)

    real_bulk_create = File.objects.bulk_create

    def failing_bulk_create(objs, *args, **kwargs):
        # Part of the rows go in before the failure
        real_bulk_create(objs[:1], *args, **kwargs)
        raise IntegrityError('simulated insert failure')

    monkeypatch.setattr(File.objects, 'bulk_create', failing_bulk_create)

    with pytest.raises(RestoreFailedError):
        restore_backup(user, backup.pk)

    assert _hierarchy(user) == before


@pytest.mark.django_db
def test_restore_unknown_schema_version(user, tree):
    """Test an undecodable snapshot fails without touching the hierarchy."""
    before = _hierarchy(user)
    backup = Backup.objects.create(
        owner=user,
        name='future',
        schema_version=99,
    )

    with pytest.raises(RestoreFailedError):
        restore_backup(user, backup.pk)

    assert _hierarchy(user) == before


@pytest.mark.django_db
def test_restore_malformed_rows(user, tree):
    """Test a snapshot with broken parent links fails cleanly."""
    before = _hierarchy(user)
    backup = create_backup(user, 'B1')
    broken_files = [dict(row, folder_id=str(uuid.uuid4())) for row in backup.files]
    broken = Backup.objects.create(
        owner=user,
        name='broken',
        schema_version=backup.schema_version,
        folders=backup.folders,
        files=broken_files,
    )

    with pytest.raises(RestoreFailedError):
        restore_backup(user, broken.pk)

    assert _hierarchy(user) == before


@pytest.mark.django_db
def test_restore_forbidden_and_not_found(user, other_user, tree):
    """Test only the owner restores, unknown ids are not found."""
    backup = create_backup(user, 'B1')

    with pytest.raises(ForbiddenError):
        restore_backup(other_user, backup.pk)

    with pytest.raises(BackupNotFoundError):
        restore_backup(user, uuid.uuid4())

    with pytest.raises(BackupNotFoundError):
        restore_backup(user, 'not-a-uuid')


@pytest.mark.django_db
def test_restore_prunes_grants_of_missing_items(user, other_user, tree, make_file):
    """Test grants survive for restored items and go for the rest."""
    backup = create_backup(user, 'B1')
    newer = make_file(user, 'newer.txt')
    for item in (tree['report'], newer):
        ShareGrant.objects.create(
            item_type=ItemType.FILE,
            item_id=item.pk,
            granted_by=user,
            granted_to=other_user,
        )

    restore_backup(user, backup.pk)

    assert list(ShareGrant.objects.values_list('item_id', flat=True)) == [
        tree['report'].pk,
    ]


@pytest.mark.django_db
def test_list_backups_newest_first(user, other_user):
    """Test listings are per owner and newest first."""
    first = create_backup(user, 'first')
    second = create_backup(user, 'second')
    create_backup(other_user, 'foreign')

    assert [backup.pk for backup in list_backups(user)] == [second.pk, first.pk]
    assert get_latest_backup(user).pk == second.pk
    assert get_latest_backup(user).name == 'second'


@pytest.mark.django_db
def test_get_latest_backup_none(user):
    """Test a user without backups has no latest one."""
    assert get_latest_backup(user) is None


@pytest.mark.django_db
def test_list_all_backups_admin_only(user, other_user, admin):
    """Test admins see every backup."""
    create_backup(user, 'mine')
    create_backup(other_user, 'theirs')

    assert {backup.name for backup in list_all_backups(admin)} == {'mine', 'theirs'}

    with pytest.raises(ForbiddenError):
        list_all_backups(user)


@pytest.mark.django_db
def test_delete_backup(user, other_user, admin):
    """Test owner and admin delete backups, others cannot."""
    mine = create_backup(user, 'mine')
    second = create_backup(user, 'second')

    with pytest.raises(ForbiddenError):
        delete_backup(other_user, mine.pk)

    delete_backup(user, mine.pk)
    delete_backup(admin, second.pk)

    assert not Backup.objects.exists()

    with pytest.raises(BackupNotFoundError):
        delete_backup(user, mine.pk)


@pytest.mark.django_db(transaction=True)
def test_restore_excludes_concurrent_writers(user, tree, monkeypatch):
    """Test a write issued mid-restore waits and lands after it."""
    backup = create_backup(user, 'B1')
    restoring = threading.Event()
    real_bulk_create = Folder.objects.bulk_create

    def slow_bulk_create(objs, *args, **kwargs):
        restoring.set()
        # Old rows are deleted, new ones not yet inserted
        time.sleep(0.3)
        return real_bulk_create(objs, *args, **kwargs)

    monkeypatch.setattr(Folder.objects, 'bulk_create', slow_bulk_create)
    outcomes = []

    def write():
        restoring.wait(timeout=5)
        try:
            create_file(user, 'late.txt', Decimal(1), 'text/plain', f'{user.pk}/late.txt')
        except Exception as error:
            outcomes.append(type(error).__name__)
        else:
            outcomes.append('created')
        finally:
            connection.close()

    writer = threading.Thread(target=write)
    writer.start()
    summary = restore_backup(user, backup.pk)
    writer.join(timeout=30)

    assert outcomes == ['created']
    assert summary.files == 3
    names = set(File.objects.filter(owner=user).values_list('name', flat=True))
    assert names == {'report.pdf', 'notes.txt', 'old.txt', 'late.txt'}
