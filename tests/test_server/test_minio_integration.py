"""Integration tests for MinIO S3 storage.

These tests run the storage backend against a live MinIO server
(e.g. from Docker Compose). They are skipped by default; run them
with ``pytest -m integration``.
"""
import os
import uuid
from typing import Final

import boto3
import pytest
from botocore.exceptions import ClientError

from server.apps.files.infrastructure.storage import FileStorage

_TEST_BUCKET: Final = os.getenv('AWS_STORAGE_BUCKET_NAME', 'file-storage')
_TEST_FILE_CONTENT: Final = b'Hello from MinIO integration test!'

pytestmark = pytest.mark.integration


@pytest.fixture
def minio_storage() -> FileStorage:
    """Storage backend pointed at MinIO, with the bucket created.

    Returns:
        Configured FileStorage.
    """
    endpoint_url = os.getenv('AWS_S3_ENDPOINT_URL', 'http://minio:9000')
    access_key = os.getenv('AWS_ACCESS_KEY_ID', 'minioadmin')
    secret_key = os.getenv('AWS_SECRET_ACCESS_KEY', 'minioadmin')

    client = boto3.client(
        's3',
        endpoint_url=endpoint_url,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        region_name='us-east-1',
    )
    try:
        client.head_bucket(Bucket=_TEST_BUCKET)
    except ClientError:
        client.create_bucket(Bucket=_TEST_BUCKET)

    return FileStorage(
        bucket_name=_TEST_BUCKET,
        access_key=access_key,
        secret_key=secret_key,
        endpoint_url=endpoint_url,
        region_name='us-east-1',
        file_overwrite=False,
        default_acl=None,
    )


@pytest.fixture
def prefix() -> str:
    """Key prefix unique to one test run.

    Returns:
        Prefix under the owners namespace.
    """
    return f'owners/integration-{uuid.uuid4()}/'


def test_put_and_open_object(minio_storage: FileStorage, prefix: str) -> None:
    """Test writing and reading an object."""
    key = minio_storage.put_object(
        f'{prefix}hello.txt',
        _TEST_FILE_CONTENT,
        'text/plain',
    )

    with minio_storage.open_object(key) as stream:
        assert stream.read() == _TEST_FILE_CONTENT

    minio_storage.delete(key)


def test_copy_and_list(minio_storage: FileStorage, prefix: str) -> None:
    """Test server-side copy and prefix listing."""
    source = minio_storage.put_object(
        f'{prefix}a.txt',
        _TEST_FILE_CONTENT,
        'text/plain',
    )

    minio_storage.copy_object(source, f'{prefix}b.txt')

    assert minio_storage.list_keys(prefix) == [
        f'{prefix}a.txt',
        f'{prefix}b.txt',
    ]

    for key in minio_storage.list_keys(prefix):
        minio_storage.delete(key)


def test_rollback_upload(minio_storage: FileStorage, prefix: str) -> None:
    """Test rollback removes an uploaded object."""
    key = minio_storage.put_object(
        f'{prefix}rollback.txt',
        _TEST_FILE_CONTENT,
        'text/plain',
    )

    minio_storage.rollback_upload(key)

    assert not minio_storage.exists(key)
    assert minio_storage.list_keys(prefix) == []
