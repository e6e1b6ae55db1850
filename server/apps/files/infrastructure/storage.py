"""Custom storage backend for S3-compatible storage."""

import logging
from typing import IO, Any, final

from typing_extensions import override

from django.core.files.base import ContentFile
from storages.backends.s3 import S3Storage

logger = logging.getLogger(__name__)


@final
class FileStorage(S3Storage):
    """Custom S3 storage backend for user files.

    Extends django-storages S3Storage with:
    - Key-addressed put/open/copy primitives used by the file service
    - Rollback support for failed DB operations
    - Enhanced error logging
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save file to S3 with error handling and logging.

        Args:
            name: Storage path for the file.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Actual storage path used (may differ from name if conflicts).

        Raises:
            Exception: If S3 upload fails.
        """
        try:
            logger.info('Uploading file to storage: %s', name)
            saved_name = super().save(name, content, max_length)
            logger.info('Successfully uploaded file: %s', saved_name)
        except Exception:
            logger.exception('Failed to upload file to storage: %s', name)
            raise
        else:
            return saved_name

    def put_object(self, key: str, content: bytes, content_type: str) -> str:
        """Write raw bytes under a key with an explicit content type.

        Args:
            key: Object key.
            content: Object bytes.
            content_type: MIME type stored as the object's ContentType.

        Returns:
            Key the object was saved under.
        """
        content_file = ContentFile(content)
        content_file.content_type = content_type  # type: ignore[attr-defined]
        return self.save(key, content_file)

    def open_object(self, key: str) -> IO[bytes]:
        """Open a read stream for an object.

        Args:
            key: Object key.

        Returns:
            Readable binary stream.

        Raises:
            Exception: If the object cannot be opened.
        """
        try:
            logger.info('Opening file from storage: %s', key)
            return self.open(key, 'rb')
        except Exception:
            logger.exception('Failed to open file from storage: %s', key)
            raise

    @override
    def delete(self, name: str) -> None:
        """Delete file from S3 with error handling and logging.

        Args:
            name: Storage path of file to delete.

        Raises:
            Exception: If S3 delete fails.
        """
        try:
            logger.info('Deleting file from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted file: %s', name)
        except Exception:
            logger.exception('Failed to delete file from storage: %s', name)
            raise

    def rollback_upload(self, name: str) -> None:
        """Delete uploaded file for DB transaction rollback.

        This method is called when a database transaction fails after
        a file has been successfully uploaded to S3. It attempts to
        delete the file to maintain consistency.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised, as the DB rollback has already occurred.

        Args:
            name: Storage path of file to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting file: %s', name)
            self.delete(name)
            logger.info('Successfully rolled back file upload: %s', name)
        except Exception:
            # The cleanup_orphans command picks the object up later
            logger.exception(
                'Failed to rollback upload, orphaned file: %s',
                name,
            )

    def copy_object(self, source: str, destination: str) -> None:
        """Copy an object to a new key with a server-side copy.

        Args:
            source: Source storage path.
            destination: Destination storage path.

        Raises:
            Exception: If the copy fails.
        """
        try:
            logger.info('Copying file: %s -> %s', source, destination)
            copy_source = {
                'Bucket': self.bucket_name,
                'Key': source,
            }
            self.bucket.copy(copy_source, destination)
            logger.info('Copied file: %s -> %s', source, destination)
        except Exception:
            logger.exception('Copy failed: %s -> %s', source, destination)
            raise

    def list_keys(self, prefix: str) -> list[str]:
        """List every object key under a prefix.

        Args:
            prefix: Key prefix (e.g., 'owners/').

        Returns:
            Object keys in lexicographic order.
        """
        return [
            summary.key
            for summary in self.bucket.objects.filter(Prefix=prefix)
        ]
