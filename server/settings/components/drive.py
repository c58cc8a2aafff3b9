"""Drive settings: quotas, roles and trash retention."""

from server.settings.components import config

# Storage limit given to a profile created on demand
DRIVE_DEFAULT_STORAGE_LIMIT_MB = config(
    'DRIVE_DEFAULT_STORAGE_LIMIT_MB',
    cast=int,
    default=500,
)

# Role given to a profile created on demand
DRIVE_DEFAULT_ROLE = config('DRIVE_DEFAULT_ROLE', default='reader')

# Trashed items older than this are purged by `cleanup_trash`
DRIVE_TRASH_RETENTION_DAYS = config(
    'DRIVE_TRASH_RETENTION_DAYS',
    cast=int,
    default=30,
)

# Page size of the recent files view
DRIVE_RECENT_FILES_LIMIT = config(
    'DRIVE_RECENT_FILES_LIMIT',
    cast=int,
    default=20,
)
