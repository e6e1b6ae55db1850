"""Business logic layer for files app.

This package contains all business logic for the owner's storage:
- Folder tree management (create, rename, move, delete, tree, contents)
- File upload, download, rename, move, copy, delete
- Storage statistics

Services are plain classes built with the storage backend and the
database alias they work against; nothing here is a module singleton.
All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
