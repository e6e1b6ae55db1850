"""Django admin configuration for files app.

Object keys are generated by the file service, so every storage
related field is read-only here.
"""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.files.infrastructure.metadata import format_file_size
from server.apps.files.models import File, FileShare, Folder


@admin.register(Folder)
class FolderAdmin(admin.ModelAdmin[Folder]):
    """Admin interface for Folder model."""

    list_display = [
        'name',
        'owner',
        'parent',
        'created_at',
    ]

    list_filter = [
        'created_at',
        'owner',
    ]

    search_fields = ['name']

    readonly_fields = [
        'id',
        'created_at',
        'updated_at',
    ]

    def get_queryset(self, request: HttpRequest) -> QuerySet[Folder]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('owner', 'parent')


@admin.register(File)
class FileAdmin(admin.ModelAdmin[File]):
    """Admin interface for File model."""

    list_display = [
        'original_name',
        'owner',
        'folder',
        'size_display',
        'mime_type',
        'created_at',
    ]

    list_filter = [
        'mime_type',
        'created_at',
        'owner',
    ]

    search_fields = [
        'original_name',
        'path',
    ]

    readonly_fields = [
        'id',
        'filename',
        'path',
        'bucket',
        'size',
        'mime_type',
        'created_at',
        'updated_at',
    ]

    fieldsets = (
        ('File Information', {
            'fields': ('id', 'original_name', 'owner', 'folder'),
        }),
        ('Storage', {
            'fields': ('filename', 'path', 'bucket'),
        }),
        ('Metadata', {
            'fields': ('size', 'mime_type'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
        }),
    )

    def size_display(self, obj: File) -> str:
        """Display file size in human-readable format.

        Args:
            obj: File instance.

        Returns:
            Formatted size string (e.g., '1.50 MB').
        """
        return format_file_size(obj.size)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[File]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('owner', 'folder')

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Files are only created through uploads."""
        return False


@admin.register(FileShare)
class FileShareAdmin(admin.ModelAdmin[FileShare]):
    """Admin interface for FileShare model."""

    list_display = [
        'share_code',
        'file',
        'created_by',
        'expires_at',
        'created_at',
    ]

    search_fields = ['share_code']

    readonly_fields = ['id', 'created_at']
