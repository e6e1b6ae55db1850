"""Metadata utilities for files: MIME types, categories, sizes."""

import mimetypes
from pathlib import PurePosixPath
from typing import Final

from server.apps.files.exceptions import StorageKeyError

DEFAULT_MIME_TYPE: Final = 'application/octet-stream'

# Prefix under which every owner's objects are stored
OWNERS_PREFIX: Final = 'owners'

_SIZE_UNITS: Final = ('B', 'KB', 'MB', 'GB', 'TB')
_SIZE_STEP: Final = 1024

IMAGE_MIME_TYPES: Final = (
    'image/jpeg',
    'image/png',
    'image/gif',
    'image/webp',
    'image/svg+xml',
    'image/bmp',
)

VIDEO_MIME_TYPES: Final = (
    'video/mp4',
    'video/mpeg',
    'video/quicktime',
    'video/x-msvideo',
    'video/x-flv',
    'video/webm',
    'video/x-matroska',
)

PDF_MIME_TYPE: Final = 'application/pdf'

# MIME types a category filter expands to
CATEGORY_MIME_TYPES: Final[dict[str, tuple[str, ...]]] = {
    'image': IMAGE_MIME_TYPES,
    'video': VIDEO_MIME_TYPES,
    'document': (
        PDF_MIME_TYPE,
        'application/msword',
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
        'application/vnd.ms-excel',
        'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    ),
    'audio': (
        'audio/mpeg',
        'audio/wav',
        'audio/ogg',
        'audio/mp4',
        'audio/webm',
    ),
    'archive': (
        'application/zip',
        'application/x-rar-compressed',
        'application/x-7z-compressed',
        'application/x-tar',
        'application/gzip',
    ),
    'text': (
        'text/plain',
        'text/csv',
        'text/html',
        'text/css',
        'text/javascript',
    ),
}

_DOCUMENT_MARKERS: Final = (
    'document',
    'word',
    'excel',
    'powerpoint',
    'spreadsheet',
    'presentation',
)
_ARCHIVE_MARKERS: Final = ('zip', 'rar', '7z', 'tar', 'gzip')


def detect_mime_type(filename: str) -> str:
    """Detect MIME type from filename.

    Uses Python's built-in mimetypes module to guess MIME type
    from filename extension.

    Args:
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return DEFAULT_MIME_TYPE
    return mime_type


def get_file_extension(filename: str) -> str:
    """Get file extension from filename.

    Args:
        filename: Filename (e.g., 'document.pdf').

    Returns:
        Extension without dot, lowercase (e.g., 'pdf').
        Returns empty string if no extension.
    """
    extension = PurePosixPath(filename).suffix
    return extension.lstrip('.').lower()


def is_image(mime_type: str | None) -> bool:
    """Check whether the MIME type is a known image type."""
    return mime_type in IMAGE_MIME_TYPES


def is_video(mime_type: str | None) -> bool:
    """Check whether the MIME type is a known video type."""
    return mime_type in VIDEO_MIME_TYPES


def is_pdf(mime_type: str | None) -> bool:
    """Check whether the MIME type is PDF."""
    return mime_type == PDF_MIME_TYPE


def can_preview(mime_type: str | None) -> bool:
    """Check whether the file can be shown inline.

    Args:
        mime_type: MIME type of the file.

    Returns:
        True for images, videos and PDFs.
    """
    return is_image(mime_type) or is_video(mime_type) or is_pdf(mime_type)


def get_file_category(mime_type: str | None) -> str:  # noqa: WPS212
    """Classify a MIME type into a coarse category.

    Known image and video types and PDF are matched exactly, the rest
    by prefix or by marker substrings.

    Args:
        mime_type: MIME type (may be empty or None).

    Returns:
        One of: image, video, document, audio, archive, text, other.
    """
    if not mime_type:
        return 'other'
    if is_image(mime_type):
        return 'image'
    if is_video(mime_type):
        return 'video'
    if is_pdf(mime_type):
        return 'document'
    if mime_type.startswith('audio/'):
        return 'audio'
    if any(marker in mime_type for marker in _DOCUMENT_MARKERS):
        return 'document'
    if any(marker in mime_type for marker in _ARCHIVE_MARKERS):
        return 'archive'
    if mime_type.startswith('text/'):
        return 'text'
    return 'other'


def get_category_mime_types(category: str) -> tuple[str, ...] | None:
    """Get the MIME types a category filter expands to.

    Args:
        category: Category name.

    Returns:
        Tuple of MIME types, or None for an unknown category.
    """
    return CATEGORY_MIME_TYPES.get(category)


def format_file_size(size_bytes: int | None) -> str:
    """Format a byte count for display.

    Example: 1536 -> '1.50 KB'

    Args:
        size_bytes: Size in bytes.

    Returns:
        Size with two decimals and a binary unit.
    """
    if not size_bytes:
        return '0 B'

    size = float(size_bytes)
    unit_index = 0
    while size >= _SIZE_STEP and unit_index < len(_SIZE_UNITS) - 1:
        size /= _SIZE_STEP
        unit_index += 1

    return f'{size:.2f} {_SIZE_UNITS[unit_index]}'


def owner_prefix(owner_id: object) -> str:
    """Build the object key prefix for an owner.

    Args:
        owner_id: Owner's primary key.

    Returns:
        Prefix such as 'owners/42/'.
    """
    return f'{OWNERS_PREFIX}/{owner_id}/'


def validate_storage_path(owner_id: object, storage_path: str) -> None:
    """Validate storage path follows owner isolation rules.

    Ensures the object key lives under the owner's prefix to maintain
    multi-user isolation. This is a critical security check.

    Args:
        owner_id: Owner's primary key.
        storage_path: Proposed object key.

    Raises:
        StorageKeyError: If the key is empty, escapes with '..' or is
            outside the owner's prefix.
    """
    if not storage_path:
        raise StorageKeyError('Storage path cannot be empty')

    if '..' in PurePosixPath(storage_path).parts:
        raise StorageKeyError('Storage path must not contain ".."')

    if not storage_path.startswith(owner_prefix(owner_id)):
        raise StorageKeyError(
            f'Storage path is outside the prefix of owner {owner_id}',
        )
