"""Business logic for folder operations.

Folders of one owner form a forest. Every operation here keeps the
forest acyclic and sibling names unique, and never crosses owners.
"""

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Final

from django.core.exceptions import ValidationError
from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction

from server.apps.files.exceptions import (
    BadRequestError,
    FolderNotEmptyError,
    NotFoundError,
)
from server.apps.files.logic.common import (
    DEFAULT_PAGE_SIZE,
    FolderRef,
    build_ordering,
    is_root,
    page_result,
    paginate,
    resolve_folder_id,
    validate_name,
)
from server.apps.files.models import File, Folder

# User type for Django's dynamic user model
_User = Any

_FOLDER_SORT_FIELDS: Final = frozenset(('created_at', 'name', 'updated_at'))
# Folder sort field -> matching file field in folder contents
_CONTENT_FILE_SORT: Final = {
    'created_at': 'created_at',
    'name': 'original_name',
    'updated_at': 'updated_at',
}
_DUPLICATE_NAME_MESSAGE: Final = 'A folder with this name already exists here'
_NOT_FOUND_MESSAGE: Final = 'Folder not found'

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FolderFilters:
    """Query parameters for listing folders.

    ``parent_id`` of None lists every folder; a root sentinel
    ('root' or 'null') lists top-level folders only.
    """

    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    search: str | None = None
    parent_id: FolderRef = None
    sort: str = 'created_at'
    order: str = 'desc'


def as_folder_uuid(folder_id: str | uuid.UUID) -> uuid.UUID:
    """Parse a folder id.

    Args:
        folder_id: Id as given by the caller.

    Returns:
        Parsed UUID.

    Raises:
        NotFoundError: If the id is malformed (no such folder can exist).
    """
    if isinstance(folder_id, uuid.UUID):
        return folder_id
    try:
        return uuid.UUID(str(folder_id))
    except ValueError as error:
        raise NotFoundError(_NOT_FOUND_MESSAGE) from error


class FolderService:
    """Structural operations on an owner's folder tree.

    Args:
        using: Database alias holding folder and file metadata.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS) -> None:
        self._using = using
        self._folders = Folder.objects.db_manager(using)
        self._files = File.objects.db_manager(using)

    def get_owned_folder(
        self,
        folder_id: str | uuid.UUID,
        owner: _User,
    ) -> Folder:
        """Get a folder by id, scoped to its owner.

        Args:
            folder_id: Folder id.
            owner: Expected owner.

        Returns:
            Folder instance.

        Raises:
            NotFoundError: If the folder does not exist or is not owned.
        """
        try:
            return self._folders.get(id=as_folder_uuid(folder_id), owner=owner)
        except (Folder.DoesNotExist, ValidationError) as error:
            raise NotFoundError(_NOT_FOUND_MESSAGE) from error

    def list_folders(
        self,
        owner: _User,
        filters: FolderFilters | None = None,
    ) -> dict[str, Any]:
        """List the owner's folders, one page at a time.

        Args:
            owner: Owner of the folders.
            filters: Search, parent, sort and pagination parameters.

        Returns:
            Dictionary with 'items' and 'pagination'.

        Raises:
            BadRequestError: If sort or pagination parameters are invalid.
        """
        filters = filters or FolderFilters()
        queryset = self._folders.filter(owner=owner)

        if filters.search:
            queryset = queryset.filter(name__icontains=filters.search)

        if filters.parent_id is not None:
            if is_root(filters.parent_id):
                queryset = queryset.filter(parent__isnull=True)
            else:
                queryset = queryset.filter(
                    parent_id=as_folder_uuid(filters.parent_id),
                )

        queryset = queryset.order_by(
            build_ordering(filters.sort, filters.order, _FOLDER_SORT_FIELDS),
        )
        rows, pagination = paginate(queryset, filters.page, filters.limit)
        return page_result(rows, pagination)

    def get_folder(self, folder_id: str | uuid.UUID, owner: _User) -> dict[str, Any]:
        """Get folder details with its parent and direct children.

        Args:
            folder_id: Folder id.
            owner: Owner of the folder.

        Returns:
            Folder projection with 'parent' summary and 'children' list.

        Raises:
            NotFoundError: If the folder does not exist or is not owned.
        """
        folder = self.get_owned_folder(folder_id, owner)
        parent = None
        if folder.parent_id is not None:
            parent = self._folders.filter(id=folder.parent_id).values(
                'id',
                'name',
            ).first()

        children = self._folders.filter(owner=owner, parent=folder).order_by('name')
        return {
            **folder.as_dict(),
            'parent': _summary(parent),
            'children': [child.as_dict() for child in children],
        }

    def get_tree(self, owner: _User) -> list[dict[str, Any]]:
        """Build the owner's whole folder tree.

        Loads all folders in one query and assembles the nesting in
        memory from an id -> children map.

        Args:
            owner: Owner of the tree.

        Returns:
            Top-level folder projections, each with nested 'children'.
        """
        children_by_parent: dict[uuid.UUID | None, list[Folder]] = defaultdict(list)
        for folder in self._folders.filter(owner=owner).order_by('name'):
            children_by_parent[folder.parent_id].append(folder)

        def build(parent_id: uuid.UUID | None) -> list[dict[str, Any]]:
            return [
                {**child.as_dict(), 'children': build(child.id)}
                for child in children_by_parent.get(parent_id, ())
            ]

        return build(None)

    def get_contents(
        self,
        folder_ref: FolderRef,
        owner: _User,
        search: str | None = None,
        sort: str = 'created_at',
        order: str = 'desc',
    ) -> dict[str, Any]:
        """List folders and files directly inside a folder.

        Args:
            folder_ref: Folder id or a root sentinel.
            owner: Owner of the folder.
            search: Optional case-insensitive name filter.
            sort: One of created_at, name, updated_at.
            order: 'asc' or 'desc'.

        Returns:
            Dictionary with 'folders', 'files' and 'total'.

        Raises:
            NotFoundError: If a non-root folder does not exist or is not owned.
            BadRequestError: If sort parameters are invalid.
        """
        folder_id = resolve_folder_id(folder_ref)
        if folder_id is not None:
            folder_id = self.get_owned_folder(folder_id, owner).id

        folder_ordering = build_ordering(sort, order, _FOLDER_SORT_FIELDS)
        file_ordering = build_ordering(
            _CONTENT_FILE_SORT[sort],
            order,
            frozenset(_CONTENT_FILE_SORT.values()),
        )

        folders = self._folders.filter(owner=owner, parent_id=folder_id)
        files = self._files.filter(owner=owner, folder_id=folder_id)
        if search:
            folders = folders.filter(name__icontains=search)
            files = files.filter(original_name__icontains=search)

        folder_items = [
            row.as_dict() for row in folders.order_by(folder_ordering)
        ]
        file_items = [row.as_dict() for row in files.order_by(file_ordering)]
        return {
            'folders': folder_items,
            'files': file_items,
            'total': len(folder_items) + len(file_items),
        }

    def create_folder(
        self,
        owner: _User,
        name: str,
        parent_id: FolderRef = None,
    ) -> dict[str, Any]:
        """Create a folder.

        Args:
            owner: Owner of the new folder.
            name: Folder name, unique among its siblings.
            parent_id: Parent folder id, None or a root sentinel for top level.

        Returns:
            Projection of the created folder.

        Raises:
            NotFoundError: If the parent does not exist or is not owned.
            BadRequestError: If the name is invalid or taken by a sibling.
        """
        name = validate_name(name, 'Folder name')
        parent = None
        if not is_root(parent_id):
            parent = self.get_owned_folder(parent_id, owner)

        parent_pk = parent.id if parent else None
        if self._sibling_exists(owner, parent_pk, name):
            raise BadRequestError(_DUPLICATE_NAME_MESSAGE)

        try:
            with transaction.atomic(using=self._using):
                folder = self._folders.create(
                    name=name,
                    parent=parent,
                    owner=owner,
                )
        except IntegrityError as error:
            # Lost a race against a concurrent create with the same name
            raise BadRequestError(_DUPLICATE_NAME_MESSAGE) from error

        logger.info(
            'Folder created: %s (ID: %s) by owner %s',
            folder.name,
            folder.id,
            owner.pk,
        )
        return folder.as_dict()

    def update_folder(
        self,
        folder_id: str | uuid.UUID,
        owner: _User,
        name: str | None = None,
        parent_id: FolderRef = None,
    ) -> dict[str, Any]:
        """Rename and/or reparent a folder.

        Pass ``parent_id='root'`` to move a folder to the top level;
        None leaves the parent unchanged.

        Args:
            folder_id: Folder to update.
            owner: Owner of the folder.
            name: New name, None to keep the current one.
            parent_id: New parent id, a root sentinel, or None.

        Returns:
            Projection of the updated folder.

        Raises:
            NotFoundError: If the folder or the new parent is missing.
            BadRequestError: If the move would create a cycle or a
                duplicate sibling name.
        """
        folder = self.get_owned_folder(folder_id, owner)
        target_parent_id = folder.parent_id

        if parent_id is not None:
            target_parent_id = None if is_root(parent_id) else as_folder_uuid(parent_id)

        if target_parent_id != folder.parent_id:
            self._check_new_parent(folder, target_parent_id, owner)

        new_name = folder.name if name is None else validate_name(name, 'Folder name')
        moved = target_parent_id != folder.parent_id
        renamed = new_name != folder.name
        if (moved or renamed) and self._sibling_exists(
            owner,
            target_parent_id,
            new_name,
            exclude_id=folder.id,
        ):
            raise BadRequestError(_DUPLICATE_NAME_MESSAGE)

        folder.name = new_name
        folder.parent_id = target_parent_id
        try:
            with transaction.atomic(using=self._using):
                folder.save(
                    using=self._using,
                    update_fields=['name', 'parent', 'updated_at'],
                )
        except IntegrityError as error:
            raise BadRequestError(_DUPLICATE_NAME_MESSAGE) from error

        logger.info(
            'Folder updated: %s (ID: %s, parent: %s) by owner %s',
            folder.name,
            folder.id,
            folder.parent_id,
            owner.pk,
        )
        return folder.as_dict()

    def delete_folder(self, folder_id: str | uuid.UUID, owner: _User) -> None:
        """Delete an empty folder.

        Folders are never deleted recursively: anything inside blocks
        the deletion.

        Args:
            folder_id: Folder to delete.
            owner: Owner of the folder.

        Raises:
            NotFoundError: If the folder does not exist or is not owned.
            FolderNotEmptyError: If it has child folders or files.
        """
        folder = self.get_owned_folder(folder_id, owner)

        child_folders = self._folders.filter(owner=owner, parent=folder).count()
        files = self._files.filter(owner=owner, folder=folder).count()
        if child_folders or files:
            logger.warning(
                'Refusing to delete non-empty folder %s: %d folders, %d files',
                folder.id,
                child_folders,
                files,
            )
            raise FolderNotEmptyError(child_folders=child_folders, files=files)

        with transaction.atomic(using=self._using):
            folder.delete(using=self._using)

        logger.info(
            'Folder deleted: %s (ID: %s) by owner %s',
            folder.name,
            folder_id,
            owner.pk,
        )

    def is_descendant(
        self,
        ancestor_id: str | uuid.UUID,
        candidate_id: str | uuid.UUID,
        owner: _User,
    ) -> bool:
        """Check whether a folder lies below another one.

        Walks up from ``candidate_id`` through parent links until
        ``ancestor_id`` or the root is reached. The owner's whole
        id -> parent map is loaded once, so the walk costs one query.

        Args:
            ancestor_id: Possible ancestor.
            candidate_id: Folder whose ancestry is checked.
            owner: Owner of both folders.

        Returns:
            True if ``ancestor_id`` is a proper ancestor of ``candidate_id``.
        """
        ancestor = as_folder_uuid(ancestor_id)
        parents: dict[uuid.UUID, uuid.UUID | None] = dict(
            self._folders.filter(owner=owner).values_list('id', 'parent_id'),
        )

        visited: set[uuid.UUID] = set()
        current = as_folder_uuid(candidate_id)
        while current not in visited:
            visited.add(current)
            parent = parents.get(current)
            if parent is None:
                return False
            if parent == ancestor:
                return True
            current = parent

        logger.warning(
            'Folder tree of owner %s already contains a cycle at %s',
            owner.pk,
            current,
        )
        return False

    def _check_new_parent(
        self,
        folder: Folder,
        parent_id: uuid.UUID | None,
        owner: _User,
    ) -> None:
        if parent_id is None:
            return
        if parent_id == folder.id:
            raise BadRequestError('A folder cannot be its own parent')
        if self.is_descendant(folder.id, parent_id, owner):
            raise BadRequestError(
                'A folder cannot be moved into one of its own subfolders',
            )
        self.get_owned_folder(parent_id, owner)

    def _sibling_exists(
        self,
        owner: _User,
        parent_id: uuid.UUID | None,
        name: str,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        siblings = self._folders.filter(owner=owner, parent_id=parent_id, name=name)
        if exclude_id is not None:
            siblings = siblings.exclude(id=exclude_id)
        return siblings.exists()


def _summary(row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return {'id': str(row['id']), 'name': row['name']}


def get_folder_service(using: str = DEFAULT_DB_ALIAS) -> FolderService:
    """Build a folder service for a database alias.

    Returns:
        New FolderService instance.
    """
    return FolderService(using=using)
