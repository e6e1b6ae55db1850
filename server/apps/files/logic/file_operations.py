"""Business logic for file operations.

Uploads, copies and deletes touch two independent backends: the
object store (bytes) and the database (metadata). The object store
step always runs first:

- upload/copy: write the object, then the row. A failed row write
  deletes the new object again (best effort).
- delete: remove the object, then share references and the row. A
  failed object delete leaves the row in place.

Renames and moves only change the row.
"""

import logging
import uuid
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import IO, TYPE_CHECKING, Any, Final

from django.core.exceptions import ValidationError
from django.core.files.storage import default_storage
from django.db import DEFAULT_DB_ALIAS, transaction

from server.apps.files.exceptions import (
    BadRequestError,
    FileStorageError,
    NotFoundError,
    StorageOperationError,
)
from server.apps.files.infrastructure.keys import (
    generate_storage_path,
    generate_unique_filename,
)
from server.apps.files.infrastructure.metadata import (
    detect_mime_type,
    get_category_mime_types,
    validate_storage_path,
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
from server.apps.files.logic.folder_operations import (
    FolderService,
    as_folder_uuid,
)
from server.apps.files.models import NAME_MAX_LENGTH, File, FileShare, Folder

if TYPE_CHECKING:
    from server.apps.files.infrastructure.storage import FileStorage

# User type for Django's dynamic user model
_User = Any

_FILE_SORT_FIELDS: Final = frozenset((
    'created_at',
    'original_name',
    'size',
    'updated_at',
))
_COPY_SUFFIX: Final = ' (copy)'
_NOT_FOUND_MESSAGE: Final = 'File not found'
_UPLOAD_FAILED_MESSAGE: Final = 'Failed to upload file'

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileFilters:
    """Query parameters for listing files.

    ``folder_id`` of None lists files everywhere; a root sentinel
    ('root' or 'null') lists files outside any folder.
    """

    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    search: str | None = None
    folder_id: FolderRef = None
    mime_type: str | None = None
    category: str | None = None
    sort: str = 'created_at'
    order: str = 'desc'


@dataclass(frozen=True)
class UploadItem:
    """One uploaded file as parsed by the caller."""

    content: bytes
    original_name: str
    mime_type: str | None = None
    size: int | None = None


@dataclass(frozen=True)
class FileDownload:
    """Open object stream plus what the caller needs for headers."""

    stream: IO[bytes]
    filename: str
    mime_type: str
    size: int


def get_storage() -> 'FileStorage':
    """Get the configured default storage backend.

    Returns:
        FileStorage instance with proper S3 configuration.
    """
    return default_storage  # type: ignore[return-value]


class FileService:
    """Lifecycle operations on an owner's files.

    Args:
        storage: Object store holding file contents.
        folders: Folder service used to validate target folders.
        using: Database alias holding file metadata.
    """

    def __init__(
        self,
        storage: 'FileStorage',
        folders: FolderService,
        using: str = DEFAULT_DB_ALIAS,
    ) -> None:
        self._storage = storage
        self._folders = folders
        self._using = using
        self._files = File.objects.db_manager(using)
        self._shares = FileShare.objects.db_manager(using)

    def get_owned_file(self, file_id: str | uuid.UUID, owner: _User) -> File:
        """Get a file by id, scoped to its owner.

        Args:
            file_id: File id.
            owner: Expected owner.

        Returns:
            File instance.

        Raises:
            NotFoundError: If the file does not exist or is not owned.
        """
        try:
            return self._files.get(id=file_id, owner=owner)
        except (File.DoesNotExist, ValidationError, ValueError) as error:
            raise NotFoundError(_NOT_FOUND_MESSAGE) from error

    def list_files(
        self,
        owner: _User,
        filters: FileFilters | None = None,
    ) -> dict[str, Any]:
        """List the owner's files, one page at a time.

        A category filter replaces the MIME type filter when both
        are given.

        Args:
            owner: Owner of the files.
            filters: Search, folder, type, sort and pagination parameters.

        Returns:
            Dictionary with 'items' and 'pagination'.

        Raises:
            BadRequestError: If the category, sort or pagination
                parameters are invalid.
        """
        filters = filters or FileFilters()
        queryset = self._files.filter(owner=owner)

        if filters.search:
            queryset = queryset.filter(original_name__icontains=filters.search)

        if filters.folder_id is not None:
            if is_root(filters.folder_id):
                queryset = queryset.filter(folder__isnull=True)
            else:
                queryset = queryset.filter(
                    folder_id=as_folder_uuid(filters.folder_id),
                )

        if filters.category:
            mime_types = get_category_mime_types(filters.category)
            if mime_types is None:
                raise BadRequestError(
                    f'Unknown file category {filters.category!r}',
                )
            queryset = queryset.filter(mime_type__in=mime_types)
        elif filters.mime_type:
            queryset = queryset.filter(mime_type__icontains=filters.mime_type)

        queryset = queryset.order_by(
            build_ordering(filters.sort, filters.order, _FILE_SORT_FIELDS),
        )
        rows, pagination = paginate(queryset, filters.page, filters.limit)
        return page_result(rows, pagination)

    def get_file(self, file_id: str | uuid.UUID, owner: _User) -> dict[str, Any]:
        """Get file details with a summary of its folder.

        Raises:
            NotFoundError: If the file does not exist or is not owned.
        """
        file_instance = self.get_owned_file(file_id, owner)
        folder = None
        if file_instance.folder_id is not None:
            folder = {
                'id': str(file_instance.folder_id),
                'name': file_instance.folder.name,
            }
        return {**file_instance.as_dict(), 'folder': folder}

    def upload_file(  # noqa: WPS211
        self,
        owner: _User,
        content: bytes,
        original_name: str,
        mime_type: str | None = None,
        size: int | None = None,
        folder_id: FolderRef = None,
    ) -> dict[str, Any]:
        """Upload file to storage and create database record.

        Transaction safety: Upload to storage first, then create DB record.
        If DB transaction fails, the uploaded file is deleted from storage
        (rollback).

        Args:
            owner: Owner of the file.
            content: File bytes.
            original_name: Name the file was uploaded with.
            mime_type: MIME type, detected from the name when omitted.
            size: Size in bytes, defaults to the content length.
            folder_id: Target folder id, None or a root sentinel for root.

        Returns:
            Projection of the created file.

        Raises:
            NotFoundError: If the target folder does not exist or is not owned.
            BadRequestError: If the name is invalid.
            StorageOperationError: If the object store write fails.
        """
        folder = self._resolve_target_folder(folder_id, owner)
        return self._store_file(
            owner,
            folder,
            UploadItem(
                content=content,
                original_name=original_name,
                mime_type=mime_type,
                size=size,
            ),
        )

    def upload_files(
        self,
        owner: _User,
        items: list[UploadItem],
        folder_id: FolderRef = None,
    ) -> dict[str, Any]:
        """Upload several files into one folder, one after another.

        The folder is validated once. A failing item is reported in
        'errors' and does not stop the rest.

        Args:
            owner: Owner of the files.
            items: Parsed uploads.
            folder_id: Target folder id, None or a root sentinel for root.

        Returns:
            Dictionary with 'uploaded', 'errors', 'total', 'success'
            and 'failed'.

        Raises:
            NotFoundError: If the target folder does not exist or is not owned.
        """
        folder = self._resolve_target_folder(folder_id, owner)
        uploaded: list[dict[str, Any]] = []
        errors: list[dict[str, Any]] = []

        for item in items:
            try:
                uploaded.append(self._store_file(owner, folder, item))
            except FileStorageError as error:
                errors.append({
                    'filename': item.original_name,
                    'error': error.message,
                })
            except Exception:
                logger.exception(
                    'Unexpected error uploading %s for owner %s',
                    item.original_name,
                    owner.pk,
                )
                errors.append({
                    'filename': item.original_name,
                    'error': _UPLOAD_FAILED_MESSAGE,
                })

        logger.info(
            'Batch upload by owner %s: %d uploaded, %d failed',
            owner.pk,
            len(uploaded),
            len(errors),
        )
        return {
            'uploaded': uploaded,
            'errors': errors,
            'total': len(items),
            'success': len(uploaded),
            'failed': len(errors),
        }

    def download_file(
        self,
        file_id: str | uuid.UUID,
        owner: _User,
    ) -> FileDownload:
        """Open a file for download.

        Whether the caller sends it as an attachment or inline is
        not decided here.

        Args:
            file_id: File id.
            owner: Owner of the file.

        Returns:
            FileDownload with an open stream.

        Raises:
            NotFoundError: If the file does not exist or is not owned.
            StorageOperationError: If the object cannot be read.
        """
        file_instance = self.get_owned_file(file_id, owner)
        try:
            stream = self._storage.open_object(file_instance.path)
        except Exception as error:
            raise StorageOperationError('Failed to read file') from error

        return FileDownload(
            stream=stream,
            filename=file_instance.original_name,
            mime_type=file_instance.mime_type,
            size=file_instance.size,
        )

    preview_file = download_file

    def rename_file(
        self,
        file_id: str | uuid.UUID,
        owner: _User,
        original_name: str,
    ) -> dict[str, Any]:
        """Change a file's display name. The object is not touched.

        Raises:
            NotFoundError: If the file does not exist or is not owned.
            BadRequestError: If the name is invalid.
        """
        file_instance = self.get_owned_file(file_id, owner)
        file_instance.original_name = validate_name(original_name, 'File name')
        file_instance.save(
            using=self._using,
            update_fields=['original_name', 'updated_at'],
        )

        logger.info(
            'File renamed: %s (ID: %s) by owner %s',
            file_instance.original_name,
            file_instance.id,
            owner.pk,
        )
        return file_instance.as_dict()

    def delete_file(self, file_id: str | uuid.UUID, owner: _User) -> None:
        """Delete file from storage and database.

        Order: object, share references, row. If the object cannot
        be deleted the row is kept.

        Raises:
            NotFoundError: If the file does not exist or is not owned.
            StorageOperationError: If the object delete fails.
        """
        file_instance = self.get_owned_file(file_id, owner)
        self._remove_file(file_instance)

        logger.info(
            'File deleted: %s (ID: %s) by owner %s',
            file_instance.original_name,
            file_id,
            owner.pk,
        )

    def delete_files(
        self,
        file_ids: list[str | uuid.UUID],
        owner: _User,
    ) -> dict[str, Any]:
        """Delete several files, one after another.

        Each file goes through the same sequence as ``delete_file``.
        Failures, and ids that are missing or not owned, are reported
        in 'errors' and do not stop the rest. Repeated ids are handled
        once.

        Args:
            file_ids: Ids to delete.
            owner: Owner of the files.

        Returns:
            Dictionary with 'deleted', 'errors', 'total' (distinct ids),
            'success' and 'failed'.

        Raises:
            NotFoundError: If none of the ids matches an owned file.
        """
        found = {
            str(file_instance.id): file_instance
            for file_instance in self._files.filter(
                owner=owner,
                id__in=_valid_uuids(file_ids),
            )
        }
        if not found:
            raise NotFoundError('No files found to delete')

        requested_ids = list(dict.fromkeys(
            _normalize_id(file_id) or str(file_id) for file_id in file_ids
        ))
        deleted: list[str] = []
        errors: list[dict[str, Any]] = []
        for requested_id in requested_ids:
            normalized_id = _normalize_id(requested_id)
            file_instance = found.pop(normalized_id, None) if normalized_id else None
            if file_instance is None:
                errors.append({
                    'id': requested_id,
                    'filename': None,
                    'error': _NOT_FOUND_MESSAGE,
                })
                continue
            try:
                self._remove_file(file_instance)
            except FileStorageError as error:
                errors.append({
                    'id': normalized_id,
                    'filename': file_instance.original_name,
                    'error': error.message,
                })
            else:
                deleted.append(normalized_id)

        logger.info(
            'Batch delete by owner %s: %d deleted, %d failed',
            owner.pk,
            len(deleted),
            len(errors),
        )
        return {
            'deleted': deleted,
            'errors': errors,
            'total': len(requested_ids),
            'success': len(deleted),
            'failed': len(errors),
        }

    def move_file(
        self,
        file_id: str | uuid.UUID,
        owner: _User,
        folder_id: FolderRef,
    ) -> dict[str, Any]:
        """Move a file to another folder. Only ``folder`` changes.

        Args:
            file_id: File id.
            owner: Owner of the file.
            folder_id: Target folder id, None or a root sentinel for root.

        Returns:
            Projection of the moved file.

        Raises:
            NotFoundError: If the file or target folder is missing.
        """
        file_instance = self.get_owned_file(file_id, owner)
        folder = self._resolve_target_folder(folder_id, owner)

        file_instance.folder = folder
        file_instance.save(
            using=self._using,
            update_fields=['folder', 'updated_at'],
        )

        logger.info(
            'File moved: %s (ID: %s) to folder %s by owner %s',
            file_instance.original_name,
            file_instance.id,
            file_instance.folder_id,
            owner.pk,
        )
        return file_instance.as_dict()

    def copy_file(
        self,
        file_id: str | uuid.UUID,
        owner: _User,
        folder_id: FolderRef,
    ) -> dict[str, Any]:
        """Copy a file into a folder under a fresh object key.

        Args:
            file_id: Source file id.
            owner: Owner of the file.
            folder_id: Target folder id, None or a root sentinel for root.

        Returns:
            Projection of the new file.

        Raises:
            NotFoundError: If the file or target folder is missing.
            StorageOperationError: If the object copy fails.
        """
        source = self.get_owned_file(file_id, owner)
        folder = self._resolve_target_folder(folder_id, owner)

        filename = generate_unique_filename(source.original_name)
        dest_path = generate_storage_path(owner.pk, filename)
        validate_storage_path(owner.pk, dest_path)

        # Step 1: Copy object in storage
        try:
            self._storage.copy_object(source.path, dest_path)
        except Exception as error:
            raise StorageOperationError('Failed to copy file') from error

        # Step 2: Create new database record
        new_file = self._create_record(
            dest_path,
            filename=filename,
            original_name=_copy_name(source.original_name),
            mime_type=source.mime_type,
            size=source.size,
            bucket=self._storage.bucket_name,
            folder=folder,
            owner=owner,
        )

        logger.info(
            'File copied: %s (ID: %s -> %s) by owner %s',
            source.original_name,
            source.id,
            new_file.id,
            owner.pk,
        )
        return new_file.as_dict()

    def _resolve_target_folder(
        self,
        folder_id: FolderRef,
        owner: _User,
    ) -> Folder | None:
        folder_pk = resolve_folder_id(folder_id)
        if folder_pk is None:
            return None
        return self._folders.get_owned_folder(folder_pk, owner)

    def _store_file(
        self,
        owner: _User,
        folder: Folder | None,
        item: UploadItem,
    ) -> dict[str, Any]:
        original_name = validate_name(item.original_name, 'File name')
        mime_type = item.mime_type or detect_mime_type(original_name)
        size = len(item.content) if item.size is None else item.size

        filename = generate_unique_filename(original_name)
        storage_path = generate_storage_path(owner.pk, filename)
        validate_storage_path(owner.pk, storage_path)

        # Step 1: Upload to storage first
        try:
            saved_path = self._storage.put_object(
                storage_path,
                item.content,
                mime_type,
            )
        except Exception as error:
            raise StorageOperationError(_UPLOAD_FAILED_MESSAGE) from error

        # Step 2: Create database record
        # Storage may pick another name on collision
        file_instance = self._create_record(
            saved_path,
            filename=PurePosixPath(saved_path).name,
            original_name=original_name,
            mime_type=mime_type,
            size=size,
            bucket=self._storage.bucket_name,
            folder=folder,
            owner=owner,
        )

        logger.info(
            'File uploaded: %s (ID: %s, %d bytes) by owner %s',
            original_name,
            file_instance.id,
            size,
            owner.pk,
        )
        return file_instance.as_dict()

    def _create_record(self, path: str, **fields: Any) -> File:
        try:
            with transaction.atomic(using=self._using):
                return self._files.create(path=path, **fields)
        except Exception as error:
            # Rollback: Delete object from storage since DB write failed
            logger.exception(
                'Database write failed, rolling back storage object: %s',
                path,
            )
            self._storage.rollback_upload(path)
            raise StorageOperationError('Failed to save file record') from error

    def _remove_file(self, file_instance: File) -> None:
        # Step 1: Delete object; keep the row if this fails
        try:
            self._storage.delete(file_instance.path)
        except Exception as error:
            raise StorageOperationError('Failed to delete file') from error

        # Step 2: Delete share references and the row together
        try:
            with transaction.atomic(using=self._using):
                self._shares.filter(file=file_instance).delete()
                file_instance.delete(using=self._using)
        except Exception as error:
            logger.exception(
                'Object deleted but database delete failed: ID=%s',
                file_instance.id,
            )
            raise StorageOperationError('Failed to delete file record') from error


def _copy_name(original_name: str) -> str:
    kept = original_name[:NAME_MAX_LENGTH - len(_COPY_SUFFIX)]
    return f'{kept}{_COPY_SUFFIX}'


def _normalize_id(file_id: str | uuid.UUID) -> str | None:
    try:
        return str(uuid.UUID(str(file_id)))
    except ValueError:
        return None


def _valid_uuids(file_ids: list[str | uuid.UUID]) -> list[str]:
    return [
        normalized
        for normalized in map(_normalize_id, file_ids)
        if normalized is not None
    ]


def get_file_service(
    storage: 'FileStorage | None' = None,
    using: str = DEFAULT_DB_ALIAS,
) -> FileService:
    """Build a file service wired to the configured storage.

    Args:
        storage: Object store, defaults to Django's default storage.
        using: Database alias.

    Returns:
        New FileService instance.
    """
    return FileService(
        storage=storage or get_storage(),
        folders=FolderService(using=using),
        using=using,
    )
