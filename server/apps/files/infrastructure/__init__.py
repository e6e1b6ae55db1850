"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Custom storage backend (S3/MinIO/R2)
- Object key generation
- Metadata helpers (MIME type, category, size formatting)

Keep infrastructure concerns separate from business logic.
"""
