"""Infrastructure layer for drive app.

This package contains integrations with external systems:
- S3-compatible blob store backend with rollback support
- Metadata helpers (MIME type, sizes, blob keys, names)

Keep infrastructure concerns separate from business logic.
"""
