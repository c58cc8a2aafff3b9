"""Tests for whole-hierarchy export and replacement."""

import uuid

import pytest

from server.apps.drive.exceptions import CorruptHierarchyError
from server.apps.drive.logic.bulk_operations import (
    export_all,
    order_parents_first,
    replace_all,
)
from server.apps.drive.models import File, Folder, ItemType, ShareGrant


@pytest.mark.django_db
def test_export_all_includes_trashed(user, other_user, make_folder, make_file):
    """Test the export holds active and trashed items of one owner."""
    folder = make_folder(user, 'Docs', trashed=True)
    active = make_file(user, 'a.txt', folder=folder)
    binned = make_file(user, 'b.txt', trashed=True)
    make_file(other_user, 'foreign.txt')

    hierarchy = export_all(user)

    assert [item.pk for item in hierarchy.folders] == [folder.pk]
    assert {item.pk for item in hierarchy.files} == {active.pk, binned.pk}


def test_order_parents_first():
    """Test parents are placed before their children."""
    top = Folder(id=uuid.uuid4(), name='top')
    middle = Folder(id=uuid.uuid4(), name='middle', parent_id=top.pk)
    leaf = Folder(id=uuid.uuid4(), name='leaf', parent_id=middle.pk)

    ordered = order_parents_first([leaf, middle, top])

    assert ordered == [top, middle, leaf]


def test_order_parents_first_rejects_cycle():
    """Test folders pointing at each other are rejected."""
    first_id, second_id = uuid.uuid4(), uuid.uuid4()
    folders = [
        Folder(id=first_id, name='first', parent_id=second_id),
        Folder(id=second_id, name='second', parent_id=first_id),
    ]

    with pytest.raises(CorruptHierarchyError, match='cycle'):
        order_parents_first(folders)


def test_order_parents_first_rejects_unknown_parent():
    """Test a parent outside the set is rejected."""
    orphan = Folder(id=uuid.uuid4(), name='orphan', parent_id=uuid.uuid4())

    with pytest.raises(CorruptHierarchyError, match='unknown parent'):
        order_parents_first([orphan])


@pytest.mark.django_db
def test_replace_all_swaps_hierarchy(user, make_folder, make_file):
    """Test current items are replaced by the given records."""
    make_folder(user, 'Current')
    make_file(user, 'current.txt')
    folder_id = uuid.uuid4()
    replacement_folder = Folder(id=folder_id, name='Restored')
    replacement_file = File(
        id=uuid.uuid4(),
        name='restored.txt',
        folder_id=folder_id,
        blob_reference='k/restored',
    )

    replace_all(user, [replacement_folder], [replacement_file])

    assert list(Folder.objects.filter(owner=user).values_list('name', flat=True)) == [
        'Restored',
    ]
    restored = File.objects.get(owner=user)
    assert restored.pk == replacement_file.pk
    assert restored.folder_id == folder_id


@pytest.mark.django_db
def test_replace_all_rejects_unknown_folder(user, make_file):
    """Test nothing changes when a file points outside the set."""
    current = make_file(user, 'current.txt')
    stray = File(id=uuid.uuid4(), name='stray.txt', folder_id=uuid.uuid4())

    with pytest.raises(CorruptHierarchyError):
        replace_all(user, [], [stray])

    assert list(File.objects.filter(owner=user)) == [current]


@pytest.mark.django_db
def test_replace_all_prunes_grants(user, other_user, make_file):
    """Test grants on items missing after replacement are removed."""
    kept = make_file(user, 'kept.txt')
    dropped = make_file(user, 'dropped.txt')
    for item in (kept, dropped):
        ShareGrant.objects.create(
            item_type=ItemType.FILE,
            item_id=item.pk,
            granted_by=user,
            granted_to=other_user,
        )
    kept_copy = File(id=kept.pk, name=kept.name, blob_reference=kept.blob_reference)

    replace_all(user, [], [kept_copy])

    assert list(ShareGrant.objects.values_list('item_id', flat=True)) == [kept.pk]
