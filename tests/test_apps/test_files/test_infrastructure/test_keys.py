"""Tests for object key generation."""

import re
from datetime import UTC, datetime

from server.apps.files.infrastructure.keys import (
    generate_storage_path,
    generate_unique_filename,
)

_UUID_PATTERN = '[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}'


def test_generate_unique_filename_keeps_extension():
    """Test generated names keep the original extension."""
    filename = generate_unique_filename('invoice.pdf')

    assert re.fullmatch(f'{_UUID_PATTERN}\\.pdf', filename)


def test_generate_unique_filename_without_extension():
    """Test names without extension produce a bare UUID."""
    assert re.fullmatch(_UUID_PATTERN, generate_unique_filename('README'))


def test_generate_unique_filename_never_repeats():
    """Test the same original name gives different storage names."""
    names = {generate_unique_filename('photo.jpg') for _ in range(100)}

    assert len(names) == 100


def test_generate_storage_path_layout():
    """Test keys are partitioned by owner and date."""
    moment = datetime(2026, 3, 7, 23, 59, tzinfo=UTC)

    path = generate_storage_path(42, 'abc.pdf', now=moment)

    assert path == 'owners/42/2026/03/07/abc.pdf'


def test_generate_storage_path_defaults_to_now():
    """Test keys use today's date when no moment is given."""
    today = datetime.now(tz=UTC)

    path = generate_storage_path(7, 'abc.pdf')

    assert path.startswith('owners/7/{0:%Y}/'.format(today))
    assert path.endswith('/abc.pdf')
