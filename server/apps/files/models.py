"""Database models for files app."""

import uuid
from typing import Any, ClassVar, Final, final

from typing_extensions import override

from django.conf import settings
from django.db import models

from server.apps.files.infrastructure.metadata import (
    can_preview,
    format_file_size,
    get_file_category,
    get_file_extension,
    is_image,
    is_pdf,
    is_video,
)

# Constants for field max lengths
NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_PATH_MAX_LENGTH: Final = 500
_BUCKET_MAX_LENGTH: Final = 100
_SHARE_CODE_MAX_LENGTH: Final = 100


@final
class Folder(models.Model):
    """Named folder in an owner's private tree.

    Folders of one owner form a forest: ``parent`` is null for
    top-level folders, and names are unique among siblings.
    Folders are never deleted while they contain anything.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    name = models.CharField(
        max_length=NAME_MAX_LENGTH,
    )

    parent = models.ForeignKey(
        'self',
        on_delete=models.RESTRICT,
        related_name='children',
        null=True,
        blank=True,
        help_text='Parent folder, empty for top-level folders',
    )

    # Owner relationship
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='folders',
        db_index=True,
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['name']

        indexes: ClassVar[list[models.Index]] = [
            # Optimize folder contents queries
            models.Index(
                fields=['owner', 'parent'],
                name='folders_owner_parent_idx',
            ),
        ]

        constraints: ClassVar[list[models.BaseConstraint]] = [
            # Sibling names are unique per owner
            models.UniqueConstraint(
                fields=['owner', 'parent', 'name'],
                name='folders_sibling_name_unique',
            ),
            # NULL parents never collide in SQL, cover top-level separately
            models.UniqueConstraint(
                fields=['owner', 'name'],
                condition=models.Q(parent__isnull=True),
                name='folders_root_name_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner}:{self.name}'

    def is_root(self) -> bool:
        """Check whether the folder sits at the top of the tree."""
        return self.parent_id is None

    def as_dict(self) -> dict[str, Any]:
        """Project the folder into a transport-safe dictionary.

        Returns:
            Folder fields for the caller.
        """
        return {
            'id': str(self.id),
            'name': self.name,
            'parent_id': _optional_str(self.parent_id),
            'owner_id': self.owner_id,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


@final
class File(models.Model):
    """File stored in S3-compatible storage.

    Each file belongs to a user and sits in one of the user's folders
    (or at the root). The object key in ``path`` follows the pattern
    owners/{owner_id}/{year}/{month}/{day}/{filename} and does not
    depend on the folder, so moves and renames are metadata-only.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    filename = models.CharField(
        max_length=NAME_MAX_LENGTH,
        help_text='Generated storage filename (UUID + extension)',
    )

    original_name = models.CharField(
        max_length=NAME_MAX_LENGTH,
        help_text='Name shown to the owner',
    )

    # File metadata (cached for performance)
    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        blank=True,
        default='',
    )

    size = models.BigIntegerField(
        default=0,
        help_text='File size in bytes',
    )

    path = models.CharField(
        max_length=_PATH_MAX_LENGTH,
        unique=True,
        help_text='Object key: owners/{owner_id}/YYYY/MM/DD/{filename}',
    )

    bucket = models.CharField(
        max_length=_BUCKET_MAX_LENGTH,
        help_text='Object storage bucket name',
    )

    folder = models.ForeignKey(
        Folder,
        on_delete=models.RESTRICT,
        related_name='files',
        null=True,
        blank=True,
        help_text='Containing folder, empty for the root',
    )

    # Owner relationship
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='files',
        db_index=True,
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['-created_at']

        indexes: ClassVar[list[models.Index]] = [
            # Optimize folder listing queries
            models.Index(
                fields=['owner', 'folder'],
                name='files_owner_folder_idx',
            ),
            # Optimize recent files queries
            models.Index(
                fields=['owner', '-created_at'],
                name='files_owner_recent_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner}:{self.original_name}'

    def get_extension(self) -> str:
        """Extract file extension from the display name.

        Example: 'report.PDF' -> 'pdf'

        Returns:
            Extension without dot (lowercase).
        """
        return get_file_extension(self.original_name)

    def get_category(self) -> str:
        """Classify the file by its MIME type."""
        return get_file_category(self.mime_type)

    def as_dict(self) -> dict[str, Any]:
        """Project the file into a transport-safe dictionary.

        The storage filename, object key and bucket are internal and
        never leave the service layer.

        Returns:
            File fields plus derived display helpers.
        """
        return {
            'id': str(self.id),
            'original_name': self.original_name,
            'mime_type': self.mime_type,
            'size': self.size,
            'folder_id': _optional_str(self.folder_id),
            'owner_id': self.owner_id,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
            'extension': self.get_extension(),
            'formatted_size': format_file_size(self.size),
            'category': self.get_category(),
            'is_image': is_image(self.mime_type),
            'is_video': is_video(self.mime_type),
            'is_pdf': is_pdf(self.mime_type),
            'can_preview': can_preview(self.mime_type),
        }


@final
class FileShare(models.Model):
    """Share link pointing at a file.

    Shares are created by the sharing feature; the files app only
    removes them together with the file they point at.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    file = models.ForeignKey(
        File,
        on_delete=models.CASCADE,
        related_name='shares',
    )

    share_code = models.CharField(
        max_length=_SHARE_CODE_MAX_LENGTH,
        unique=True,
    )

    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text='Empty means the share never expires',
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='file_shares',
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File Share'  # type: ignore[mutable-override]
        verbose_name_plural = 'File Shares'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['-created_at']

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.share_code} -> {self.file_id}'


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)
