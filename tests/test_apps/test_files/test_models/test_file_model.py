"""Tests for File model."""

import pytest
from django.db import IntegrityError, transaction
from django.db.models import RestrictedError

from server.apps.files.models import FileShare, Folder

pytestmark = pytest.mark.django_db


def test_file_creation(make_file, user):
    """Test creating a file row."""
    file_instance = make_file(original_name='report.PDF', mime_type='application/pdf')

    assert file_instance.id is not None
    assert file_instance.owner == user
    assert file_instance.folder is None
    assert file_instance.created_at is not None
    assert str(file_instance) == f'{user}:report.PDF'


def test_get_extension(make_file):
    """Test extension comes from the display name."""
    assert make_file(original_name='report.PDF').get_extension() == 'pdf'
    assert make_file(original_name='Makefile').get_extension() == ''


def test_get_category(make_file):
    """Test category comes from the MIME type."""
    assert make_file(mime_type='image/png').get_category() == 'image'
    assert make_file(mime_type='').get_category() == 'other'


def test_as_dict_hides_storage_details(make_file):
    """Test the projection omits object key, bucket and storage filename."""
    file_instance = make_file(
        original_name='photo.jpg',
        mime_type='image/jpeg',
        size=1536,
    )

    projection = file_instance.as_dict()

    assert projection['id'] == str(file_instance.id)
    assert projection['original_name'] == 'photo.jpg'
    assert projection['folder_id'] is None
    assert projection['extension'] == 'jpg'
    assert projection['formatted_size'] == '1.50 KB'
    assert projection['category'] == 'image'
    assert projection['is_image'] is True
    assert projection['is_video'] is False
    assert projection['is_pdf'] is False
    assert projection['can_preview'] is True
    assert 'path' not in projection
    assert 'bucket' not in projection
    assert 'filename' not in projection


def test_as_dict_folder_id(make_file, user):
    """Test the projection carries the folder id as a string."""
    folder = Folder.objects.create(name='Docs', owner=user)

    projection = make_file(folder=folder).as_dict()

    assert projection['folder_id'] == str(folder.id)


def test_path_is_unique(make_file):
    """Test two rows cannot share an object key."""
    first = make_file()

    with pytest.raises(IntegrityError), transaction.atomic():
        make_file(path=first.path)


def test_folder_with_files_is_protected(make_file, user):
    """Test a folder cannot be deleted from under its files."""
    folder = Folder.objects.create(name='Docs', owner=user)
    make_file(folder=folder)

    with pytest.raises(RestrictedError):
        folder.delete()


def test_shares_cascade_with_file(make_file, user):
    """Test share rows go away with the file."""
    file_instance = make_file()
    FileShare.objects.create(
        file=file_instance,
        share_code='abc123',
        created_by=user,
    )

    file_instance.delete()

    assert not FileShare.objects.exists()
