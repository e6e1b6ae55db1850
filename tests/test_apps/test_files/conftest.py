"""Shared fixtures for files app tests."""

import boto3
import pytest
from django.contrib.auth import get_user_model
from moto import mock_aws

from server.apps.files.infrastructure.storage import FileStorage
from server.apps.files.logic.file_operations import FileService
from server.apps.files.logic.folder_operations import FolderService
from server.apps.files.models import File

User = get_user_model()

TEST_BUCKET = 'file-storage'


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def mock_s3():
    """Mock S3 service with the storage bucket.

    Yields:
        boto3 S3 resource with the bucket created.
    """
    with mock_aws():
        # Create S3 resource
        conn = boto3.resource('s3', region_name='us-east-1')

        # Create bucket
        conn.create_bucket(Bucket=TEST_BUCKET)

        yield conn


@pytest.fixture
def storage(mock_s3):
    """Storage backend talking to the mocked bucket.

    Returns:
        FileStorage instance.
    """
    return FileStorage(
        bucket_name=TEST_BUCKET,
        access_key='testing',
        secret_key='testing',
        region_name='us-east-1',
        file_overwrite=False,
        default_acl=None,
    )


@pytest.fixture
def folder_service(db):
    """Folder service on the default database.

    Returns:
        FolderService instance.
    """
    return FolderService()


@pytest.fixture
def file_service(storage, folder_service):
    """File service wired to the mocked bucket.

    Returns:
        FileService instance.
    """
    return FileService(storage=storage, folders=folder_service)


@pytest.fixture
def make_file(user):
    """Factory creating file rows without touching storage.

    Returns:
        Callable creating File instances.
    """
    counter = iter(range(1, 10_000))

    def factory(**fields):
        number = next(counter)
        defaults = {
            'owner': user,
            'filename': f'generated-{number}.txt',
            'original_name': f'file{number}.txt',
            'mime_type': 'text/plain',
            'size': 100,
            'path': f'owners/{user.pk}/2026/01/01/generated-{number}.txt',
            'bucket': TEST_BUCKET,
        }
        defaults.update(fields)
        return File.objects.create(**defaults)

    return factory


@pytest.fixture
def bucket_keys(mock_s3):
    """Lister for keys currently stored in the mocked bucket.

    Returns:
        Callable taking an optional prefix.
    """
    def list_keys(prefix=''):
        bucket = mock_s3.Bucket(TEST_BUCKET)
        return [summary.key for summary in bucket.objects.filter(Prefix=prefix)]

    return list_keys
