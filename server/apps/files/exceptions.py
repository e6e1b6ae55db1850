"""Exceptions for files app."""

from http import HTTPStatus


class FileStorageError(Exception):
    """Base class for errors raised by folder and file operations.

    Carries the HTTP status the caller should map the error to.
    """

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        """Initialize FileStorageError.

        Args:
            message: Human readable description, safe to show to the owner.
        """
        self.message = message
        super().__init__(message)


class NotFoundError(FileStorageError):
    """Raised when a folder or file does not exist or is not owned.

    Both cases produce the same error so that non-owners cannot
    probe for the existence of other users' objects.
    """

    status_code = HTTPStatus.NOT_FOUND


class BadRequestError(FileStorageError):
    """Raised when an operation would break a tree or naming rule."""

    status_code = HTTPStatus.BAD_REQUEST


class FolderNotEmptyError(BadRequestError):
    """Raised when deleting a folder that still has children or files."""

    def __init__(self, child_folders: int, files: int) -> None:
        """Initialize FolderNotEmptyError.

        Args:
            child_folders: Number of folders directly inside the folder.
            files: Number of files directly inside the folder.
        """
        self.child_folders = child_folders
        self.files = files

        super().__init__(
            f'Folder is not empty: it contains {child_folders} '
            f'subfolder(s) and {files} file(s), delete them first',
        )


class StorageOperationError(FileStorageError):
    """Raised when the object store fails during upload, copy or delete.

    The message never contains the object key; the underlying
    transport error is chained as ``__cause__``.
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class StorageKeyError(ValueError):
    """Raised when an object key does not belong to its owner's prefix."""
