"""Django storage configuration for the blob store.

Blobs live in an S3-compatible bucket (MinIO locally, any S3 API in
production). Every call carries connect/read timeouts and a bounded
retry budget, so a stalled blob store surfaces as an error.
"""

from typing import Any, Final

from botocore.config import Config

from server.settings.components import config

BLOB_STORE_CONNECT_TIMEOUT = config(
    'BLOB_STORE_CONNECT_TIMEOUT',
    cast=float,
    default=5.0,
)
BLOB_STORE_READ_TIMEOUT = config(
    'BLOB_STORE_READ_TIMEOUT',
    cast=float,
    default=30.0,
)
BLOB_STORE_MAX_ATTEMPTS = config(
    'BLOB_STORE_MAX_ATTEMPTS',
    cast=int,
    default=3,
)

STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'server.apps.drive.infrastructure.storage.FileStorage',
        'OPTIONS': {
            'bucket_name': config(
                'AWS_STORAGE_BUCKET_NAME',
                default='drive-blobs',
            ),
            'access_key': config('AWS_ACCESS_KEY_ID', default='testing'),
            'secret_key': config('AWS_SECRET_ACCESS_KEY', default='testing'),
            'endpoint_url': config(
                'AWS_S3_ENDPOINT_URL',
                default=None,
            ),
            'region_name': config(
                'AWS_S3_REGION_NAME',
                default='us-east-1',
            ),
            'file_overwrite': False,  # Prevent accidental overwrites
            'default_acl': None,  # Inherit bucket ACL
            'client_config': Config(
                connect_timeout=BLOB_STORE_CONNECT_TIMEOUT,
                read_timeout=BLOB_STORE_READ_TIMEOUT,
                retries={
                    'max_attempts': BLOB_STORE_MAX_ATTEMPTS,
                    'mode': 'standard',
                },
            ),
        },
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}
