"""Tests for cleanup_orphans management command."""

from io import StringIO

import pytest
from django.core.management import call_command

from server.apps.files.management.commands import cleanup_orphans

pytestmark = pytest.mark.django_db


@pytest.fixture
def command_storage(storage, monkeypatch):
    """Point the command at the mocked bucket.

    Returns:
        FileStorage used by the command.
    """
    monkeypatch.setattr(cleanup_orphans, 'get_storage', lambda: storage)
    return storage


@pytest.fixture
def objects(command_storage, file_service, user):
    """One tracked file, two orphans and a key outside the owners prefix.

    Returns:
        Dictionary of the created keys.
    """
    tracked = file_service.upload_file(user, b'x', 'kept.txt')
    orphan_a = command_storage.put_object('owners/1/2026/01/01/a.txt', b'a', 'text/plain')
    orphan_b = command_storage.put_object('owners/2/2026/01/01/b.txt', b'b', 'text/plain')
    outside = command_storage.put_object('static/logo.png', b'p', 'image/png')
    return {
        'tracked': tracked['id'],
        'orphans': [orphan_a, orphan_b],
        'outside': outside,
    }


def _run(*args):
    out = StringIO()
    err = StringIO()
    call_command('cleanup_orphans', *args, stdout=out, stderr=err)
    return out.getvalue(), err.getvalue()


def test_cleanup_orphans_deletes_untracked_objects(objects, bucket_keys):
    """Test only objects without a file row are deleted."""
    output, _ = _run()

    keys = bucket_keys()
    assert 'Deleted 2 orphaned objects, 0 failed' in output
    assert not set(objects['orphans']) & set(keys)
    assert objects['outside'] in keys
    assert len(keys) == 2


def test_cleanup_orphans_dry_run(objects, bucket_keys):
    """Test dry run lists orphans without deleting them."""
    output, _ = _run('--dry-run')

    assert 'Would delete 2 orphaned objects' in output
    for key in objects['orphans']:
        assert f'Would delete: {key}' in output
    assert len(bucket_keys()) == 4


def test_cleanup_orphans_batch_size(objects, bucket_keys):
    """Test the batch size caps deletions per run."""
    output, _ = _run('--batch-size', '1')

    assert 'Deleted 1 orphaned objects, 0 failed' in output
    assert len(bucket_keys()) == 3


def test_cleanup_orphans_reports_failures(objects, command_storage, monkeypatch):
    """Test failed deletions are counted and reported."""
    def failing_delete(name):
        raise OSError('storage unavailable')

    monkeypatch.setattr(command_storage, 'delete', failing_delete)

    output, errors = _run()

    assert 'Deleted 0 orphaned objects, 2 failed' in output
    assert 'Failed to delete owners/1/2026/01/01/a.txt' in errors


def test_cleanup_orphans_empty_bucket(command_storage):
    """Test running against an empty bucket."""
    output, _ = _run()

    assert 'Deleted 0 orphaned objects, 0 failed' in output
