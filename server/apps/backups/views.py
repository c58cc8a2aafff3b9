"""HTTP endpoint for restoring a backup."""

import logging
import uuid
from http import HTTPStatus
from typing import Final

from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_POST

from server.apps.backups.exceptions import RestoreFailedError
from server.apps.backups.logic.backup_operations import restore_backup
from server.apps.drive.exceptions import (
    AuthenticationRequiredError,
    DriveError,
    ForbiddenError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

_ERROR_STATUSES: Final = (
    (AuthenticationRequiredError, HTTPStatus.UNAUTHORIZED),
    (ForbiddenError, HTTPStatus.FORBIDDEN),
    (NotFoundError, HTTPStatus.NOT_FOUND),
    (RestoreFailedError, HTTPStatus.INTERNAL_SERVER_ERROR),
)


def _error_response(error: DriveError) -> JsonResponse:
    status = next(
        (code for error_type, code in _ERROR_STATUSES if isinstance(error, error_type)),
        HTTPStatus.BAD_REQUEST,
    )
    return JsonResponse({'error': str(error)}, status=status)


@require_POST
def restore(request: HttpRequest, backup_id: uuid.UUID) -> JsonResponse:
    """Restore one of the authenticated user's backups.

    Args:
        request: HTTP request; the caller is ``request.user``.
        backup_id: Backup id from the URL.

    Returns:
        JSON with the restored counts, or ``{"error": ...}`` with
        401, 403, 404 or 500.
    """
    try:
        summary = restore_backup(request.user, backup_id)
    except DriveError as error:
        logger.warning('Restore request for backup %s rejected: %s', backup_id, error)
        return _error_response(error)

    return JsonResponse({
        'success': True,
        'restored': {'files': summary.files, 'folders': summary.folders},
    })
