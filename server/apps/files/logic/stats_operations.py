"""Business logic for storage statistics."""

import logging
from typing import Any

from django.db import DEFAULT_DB_ALIAS
from django.db.models import Count, Sum

from server.apps.files.infrastructure.metadata import get_file_category
from server.apps.files.models import File, Folder

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def get_storage_stats(
    owner: _User,
    using: str = DEFAULT_DB_ALIAS,
) -> dict[str, Any]:
    """Summarize an owner's storage usage.

    Totals come from one aggregate query. The category breakdown is
    grouped by MIME type in the database, so Python only folds one
    row per distinct type into categories.

    Args:
        owner: Owner to summarize.
        using: Database alias.

    Returns:
        Dictionary with 'total_files', 'total_folders', 'total_size'
        and 'category_stats' (category -> {'count', 'size'}).
    """
    files = File.objects.db_manager(using).filter(owner=owner)

    totals = files.aggregate(
        total_files=Count('id'),
        total_size=Sum('size'),
    )

    category_stats: dict[str, dict[str, int]] = {}
    per_mime_type = files.order_by().values('mime_type').annotate(
        count=Count('id'),
        size=Sum('size'),
    )
    for row in per_mime_type:
        category = get_file_category(row['mime_type'])
        bucket = category_stats.setdefault(category, {'count': 0, 'size': 0})
        bucket['count'] += row['count']
        bucket['size'] += row['size'] or 0

    total_folders = Folder.objects.db_manager(using).filter(owner=owner).count()

    logger.debug(
        'Storage stats for owner %s: %d files, %d folders',
        owner.pk,
        totals['total_files'],
        total_folders,
    )
    return {
        'total_files': totals['total_files'],
        'total_folders': total_folders,
        'total_size': totals['total_size'] or 0,
        'category_stats': category_stats,
    }
