"""Tests for share grants."""

import uuid

import pytest

from server.apps.drive.exceptions import ForbiddenError, NotFoundError
from server.apps.drive.logic.sharing_operations import (
    grant,
    grant_by_email,
    list_grants,
    list_shared_with,
    revoke,
)
from server.apps.drive.models import ItemType, SharePermission, ShareGrant


@pytest.mark.django_db
def test_grant_creates_share(user, other_user, make_file):
    """Test the owner shares a file with another user."""
    file_instance = make_file(user, 'a.txt')

    share = grant(
        user,
        ItemType.FILE,
        file_instance.pk,
        other_user.pk,
        SharePermission.COMMENTER,
    )

    assert share.item_id == file_instance.pk
    assert share.granted_by == user
    assert share.granted_to == other_user
    assert share.permission == SharePermission.COMMENTER


@pytest.mark.django_db
def test_grant_twice_is_harmless(user, other_user, make_folder):
    """Test a duplicate grant returns the existing one."""
    folder = make_folder(user, 'Docs')

    first = grant(user, ItemType.FOLDER, folder.pk, other_user.pk)
    second = grant(user, ItemType.FOLDER, folder.pk, other_user.pk)

    assert first.pk == second.pk
    assert ShareGrant.objects.count() == 1


@pytest.mark.django_db
def test_grant_missing_grantee_or_item(user, make_file):
    """Test unknown grantees and items are not found."""
    file_instance = make_file(user, 'a.txt')

    with pytest.raises(NotFoundError, match='user'):
        grant(user, ItemType.FILE, file_instance.pk, 999999)

    with pytest.raises(NotFoundError):
        grant(user, ItemType.FILE, uuid.uuid4(), user.pk)


@pytest.mark.django_db
def test_grant_by_non_owner_forbidden(user, other_user, admin, make_file):
    """Test only the owner may grant, admins included."""
    file_instance = make_file(user, 'a.txt')

    with pytest.raises(ForbiddenError):
        grant(other_user, ItemType.FILE, file_instance.pk, other_user.pk)

    with pytest.raises(ForbiddenError):
        grant(admin, ItemType.FILE, file_instance.pk, other_user.pk)

    assert not ShareGrant.objects.exists()


@pytest.mark.django_db
def test_grant_reader_forbidden(reader, user, make_file):
    """Test readers cannot share their own items."""
    file_instance = make_file(reader, 'a.txt')

    with pytest.raises(ForbiddenError):
        grant(reader, ItemType.FILE, file_instance.pk, user.pk)


@pytest.mark.django_db
def test_grant_by_email(user, other_user, make_file):
    """Test sharing addressed by the grantee's email."""
    file_instance = make_file(user, 'a.txt')

    share = grant_by_email(user, ItemType.FILE, file_instance.pk, 'OtherUser@Example.com')

    assert share.granted_to == other_user

    with pytest.raises(NotFoundError):
        grant_by_email(user, ItemType.FILE, file_instance.pk, 'nobody@example.com')


@pytest.mark.django_db
def test_revoke(user, other_user, admin, make_file):
    """Test grantor and admin may revoke, others may not."""
    file_instance = make_file(user, 'a.txt')
    first = grant(user, ItemType.FILE, file_instance.pk, other_user.pk)
    second = grant(user, ItemType.FILE, file_instance.pk, admin.pk)

    with pytest.raises(ForbiddenError):
        revoke(other_user, first.pk)

    revoke(user, first.pk)
    revoke(admin, second.pk)

    assert not ShareGrant.objects.exists()

    with pytest.raises(NotFoundError):
        revoke(user, first.pk)


@pytest.mark.django_db
def test_owner_revokes_grant_given_by_someone_else(user, other_user, admin, make_file):
    """Test the item owner may revoke any grant on the item."""
    file_instance = make_file(user, 'a.txt')
    share = ShareGrant.objects.create(
        item_type=ItemType.FILE,
        item_id=file_instance.pk,
        granted_by=admin,
        granted_to=other_user,
    )

    revoke(user, share.pk)

    assert not ShareGrant.objects.exists()


@pytest.mark.django_db
def test_list_grants(user, other_user, editor, make_folder):
    """Test the owner lists grants of one item."""
    folder = make_folder(user, 'Docs')
    grant(user, ItemType.FOLDER, folder.pk, other_user.pk)
    grant(user, ItemType.FOLDER, folder.pk, editor.pk, SharePermission.EDITOR)

    grants = list_grants(user, ItemType.FOLDER, folder.pk)

    assert {share.granted_to for share in grants} == {other_user, editor}

    with pytest.raises(ForbiddenError):
        list_grants(other_user, ItemType.FOLDER, folder.pk)


@pytest.mark.django_db
def test_list_shared_with(user, other_user, make_folder, make_file):
    """Test shared-with-me lists active items granted to the caller."""
    folder = make_folder(user, 'Docs')
    shared_file = make_file(user, 'a.txt')
    binned = make_file(user, 'b.txt')
    make_file(user, 'unshared.txt')
    for item_type, item in (
        (ItemType.FOLDER, folder),
        (ItemType.FILE, shared_file),
        (ItemType.FILE, binned),
    ):
        grant(user, item_type, item.pk, other_user.pk)
    binned.trashed = True
    binned.save(update_fields=['trashed'])

    shared = list_shared_with(other_user)

    assert [item.pk for item in shared.folders] == [folder.pk]
    assert [item.pk for item in shared.files] == [shared_file.pk]
    assert list_shared_with(user).files == []
