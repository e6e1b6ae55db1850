"""Object key generation for uploaded files.

Keys are decoupled from the logical folder a file appears under:
they are partitioned by owner and upload date, so moving or renaming
a file never touches the object store.
"""

import uuid
from datetime import datetime
from pathlib import PurePosixPath

from django.utils import timezone

from server.apps.files.infrastructure.metadata import owner_prefix


def generate_unique_filename(original_name: str) -> str:
    """Generate a storage-facing filename.

    Example: 'invoice.pdf' -> '3f2b...-9c1d.pdf'

    Args:
        original_name: Name the user uploaded the file with.

    Returns:
        Random UUID followed by the original extension (if any).
    """
    extension = PurePosixPath(original_name).suffix
    return f'{uuid.uuid4()}{extension}'


def generate_storage_path(
    owner_id: object,
    filename: str,
    now: datetime | None = None,
) -> str:
    """Build the object key for a freshly generated filename.

    Example: (42, 'abc.pdf') -> 'owners/42/2026/10/19/abc.pdf'

    Args:
        owner_id: Owner's primary key.
        filename: Generated storage filename.
        now: Upload moment, defaults to the current time (UTC).

    Returns:
        Object key partitioned by owner and upload date.
    """
    moment = now or timezone.now()
    return '{prefix}{year:04d}/{month:02d}/{day:02d}/{filename}'.format(
        prefix=owner_prefix(owner_id),
        year=moment.year,
        month=moment.month,
        day=moment.day,
        filename=filename,
    )
