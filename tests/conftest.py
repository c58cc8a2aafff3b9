"""Shared fixtures for drive and backups tests."""

from decimal import Decimal

import boto3
import pytest
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from moto import mock_aws

from server.apps.drive.models import File, Folder, Role, UserProfile

User = get_user_model()


@pytest.fixture
def make_user(db):
    """Factory creating users with a drive profile of a given role.

    Returns:
        Callable taking username, role and storage limit.
    """
    def factory(username, role=Role.WRITER, storage_limit_mb=500):
        new_user = User.objects.create_user(
            username=username,
            password='testpass123',
            email=f'{username}@example.com',
        )
        UserProfile.objects.create(
            user=new_user,
            role=role,
            storage_limit_mb=storage_limit_mb,
        )
        return new_user

    return factory


@pytest.fixture
def user(make_user):
    """Create test user with writer role.

    Returns:
        User instance for testing.
    """
    return make_user('testuser')


@pytest.fixture
def other_user(make_user):
    """Create second writer for isolation tests.

    Returns:
        Second user instance.
    """
    return make_user('otheruser')


@pytest.fixture
def reader(make_user):
    """Create user with read-only role.

    Returns:
        Reader user instance.
    """
    return make_user('reader', role=Role.READER)


@pytest.fixture
def editor(make_user):
    """Create user with editor role.

    Returns:
        Editor user instance.
    """
    return make_user('editor', role=Role.EDITOR)


@pytest.fixture
def admin(make_user):
    """Create user with admin role.

    Returns:
        Admin user instance.
    """
    return make_user('admin', role=Role.ADMIN)


@pytest.fixture
def mock_s3():
    """Mock S3 service with drive-blobs bucket.

    Yields:
        boto3 S3 bucket resource.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        yield conn.create_bucket(Bucket='drive-blobs')


@pytest.fixture
def sample_file_content():
    """Sample file content for testing.

    Returns:
        ContentFile with test data.
    """
    return ContentFile(b'test file content', name='test.txt')


@pytest.fixture
def make_folder(db):
    """Factory creating folders without going through the logic layer.

    Returns:
        Callable taking owner, name and folder fields.
    """
    def factory(owner, name, parent=None, **fields):
        return Folder.objects.create(
            owner=owner,
            name=name,
            parent=parent,
            **fields,
        )

    return factory


@pytest.fixture
def make_file(db):
    """Factory creating file records without quota checks.

    Returns:
        Callable taking owner, name, size and file fields.
    """
    def factory(owner, name, size_mb='1', folder=None, **fields):
        fields.setdefault('blob_reference', f'{owner.pk}/{name}')
        return File.objects.create(
            owner=owner,
            name=name,
            size_mb=Decimal(size_mb),
            folder=folder,
            mime_type='text/plain',
            **fields,
        )

    return factory
