"""Management command to delete objects that have no file record."""

import logging
from typing import Any, Final

from django.core.management.base import BaseCommand

from server.apps.files.infrastructure.metadata import OWNERS_PREFIX
from server.apps.files.logic.file_operations import get_storage
from server.apps.files.models import File

_DEFAULT_BATCH_SIZE: Final = 1000
# Keys per database lookup, below SQLite's parameter limit
_LOOKUP_CHUNK_SIZE: Final = 500

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Remove objects left behind by interrupted uploads and copies.

    An upload writes the object before the database row. If the
    process dies in between, the object stays in the bucket with no
    row pointing at it; this command finds and deletes such objects.
    """

    help = 'Delete stored objects that no file record points at'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without deleting',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max objects to delete (default: {_DEFAULT_BATCH_SIZE})',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the cleanup command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        batch_size = options['batch_size']
        storage = get_storage()

        self.stdout.write(
            f'Scanning bucket {storage.bucket_name} under {OWNERS_PREFIX}/',
        )

        keys = storage.list_keys(f'{OWNERS_PREFIX}/')
        known: set[str] = set()
        for start in range(0, len(keys), _LOOKUP_CHUNK_SIZE):
            chunk = keys[start:start + _LOOKUP_CHUNK_SIZE]
            known.update(
                File.objects.filter(path__in=chunk).values_list(
                    'path',
                    flat=True,
                ),
            )
        orphans = [key for key in keys if key not in known][:batch_size]

        count = 0
        failed = 0

        for key in orphans:
            if dry_run:
                self.stdout.write(f'Would delete: {key}')
                count += 1
                continue

            try:
                storage.delete(key)
                count += 1
                logger.info('Deleted orphaned object: %s', key)
            except Exception as exc:
                self.stderr.write(f'Failed to delete {key}: {exc}')
                logger.exception('Failed to delete orphaned object: %s', key)
                failed += 1

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would delete {count} orphaned objects'),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Deleted {count} orphaned objects, {failed} failed',
                ),
            )
