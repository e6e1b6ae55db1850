"""Helpers shared by folder and file operations."""

import math
import uuid
from typing import Any, Final, TypeVar

from django.db.models import Model, QuerySet

from server.apps.files.exceptions import BadRequestError
from server.apps.files.models import NAME_MAX_LENGTH

_ModelT = TypeVar('_ModelT', bound=Model)

# Values callers may use for "no folder" (the top of the tree)
ROOT: Final = 'root'
ROOT_SENTINELS: Final = frozenset((ROOT, 'null'))

DEFAULT_PAGE_SIZE: Final = 20
MAX_PAGE_SIZE: Final = 100

_ORDER_DIRECTIONS: Final = frozenset(('asc', 'desc'))

FolderRef = str | uuid.UUID | None


def is_root(folder_ref: FolderRef) -> bool:
    """Check whether a folder reference points at the root.

    Args:
        folder_ref: Folder id, root sentinel string or None.

    Returns:
        True for None and the root sentinels.
    """
    if folder_ref is None:
        return True
    return isinstance(folder_ref, str) and folder_ref.lower() in ROOT_SENTINELS


def resolve_folder_id(folder_ref: FolderRef) -> str | uuid.UUID | None:
    """Turn a folder reference into a value for a ``folder_id`` column.

    Args:
        folder_ref: Folder id, root sentinel string or None.

    Returns:
        None for the root, the id otherwise.
    """
    if is_root(folder_ref):
        return None
    return folder_ref


def validate_name(name: str | None, label: str = 'Name') -> str:
    """Validate a folder or file display name.

    Args:
        name: Proposed name.
        label: What the name belongs to, used in the error message.

    Returns:
        The name with surrounding whitespace removed.

    Raises:
        BadRequestError: If the name is empty or too long.
    """
    cleaned = (name or '').strip()
    if not cleaned:
        raise BadRequestError(f'{label} cannot be empty')
    if len(cleaned) > NAME_MAX_LENGTH:
        raise BadRequestError(
            f'{label} cannot be longer than {NAME_MAX_LENGTH} characters',
        )
    return cleaned


def build_ordering(sort: str, order: str, allowed: frozenset[str]) -> str:
    """Build an ``order_by`` expression from sort parameters.

    Args:
        sort: Field name to sort by.
        order: 'asc' or 'desc' (any case).
        allowed: Field names the caller may sort by.

    Returns:
        Field name, prefixed with '-' for descending order.

    Raises:
        BadRequestError: If the field or direction is not allowed.
    """
    direction = order.lower()
    if sort not in allowed:
        raise BadRequestError(f'Cannot sort by {sort!r}')
    if direction not in _ORDER_DIRECTIONS:
        raise BadRequestError(f'Unknown sort order {order!r}')
    return f'-{sort}' if direction == 'desc' else sort


def paginate(
    queryset: QuerySet[_ModelT],
    page: int,
    limit: int,
) -> tuple[list[_ModelT], dict[str, int]]:
    """Slice a queryset into one page.

    Args:
        queryset: Filtered and ordered queryset.
        page: 1-based page number.
        limit: Page size (1..100).

    Returns:
        Tuple of page rows and pagination info
        (total, page, page_size, total_pages).

    Raises:
        BadRequestError: If page or limit is out of range.
    """
    if page < 1:
        raise BadRequestError('Page must be at least 1')
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise BadRequestError(f'Limit must be between 1 and {MAX_PAGE_SIZE}')

    total = queryset.count()
    offset = (page - 1) * limit
    rows = list(queryset[offset:offset + limit])

    return rows, {
        'total': total,
        'page': page,
        'page_size': limit,
        'total_pages': math.ceil(total / limit),
    }


def page_result(
    rows: list[Any],
    pagination: dict[str, int],
) -> dict[str, Any]:
    """Shape a page of models into the list response."""
    return {
        'items': [row.as_dict() for row in rows],
        'pagination': pagination,
    }
