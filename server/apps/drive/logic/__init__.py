"""Business logic layer for drive app.

This package contains all business logic of the hierarchy store:
- Folder and file creation, upload, rename, move, star, publicize
- Trash, restore from trash and permanent (cascading) deletion
- Quota accounting and admission of writes
- Share grants and the role capability table
- Bulk export/replace used by snapshot backups

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
