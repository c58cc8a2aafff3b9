"""Metadata helpers for drive items."""

import mimetypes
import re
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from pathlib import PurePosixPath
from typing import Final

from server.apps.drive.exceptions import InvalidNameError

_BYTES_PER_MB: Final = Decimal(1024 * 1024)
_SIZE_QUANTUM: Final = Decimal('0.000001')
_NAME_MAX_LENGTH: Final = 255
_COLOR_PATTERN: Final = re.compile(r'^#[0-9A-Fa-f]{6}$')
_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'


def detect_mime_type(filename: str) -> str:
    """Detect MIME type from a filename.

    Uses Python's built-in mimetypes module to guess MIME type
    from the filename extension.

    Args:
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def bytes_to_mb(size_bytes: int) -> Decimal:
    """Convert a byte count to megabytes, rounded to six places.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Size in megabytes.
    """
    megabytes = Decimal(size_bytes) / _BYTES_PER_MB
    return megabytes.quantize(_SIZE_QUANTUM, rounding=ROUND_HALF_UP)


def build_blob_path(user_id: int, filename: str) -> str:
    """Build the storage key for a new upload.

    Keys are namespaced by owner and prefixed with a UTC timestamp so
    repeated uploads of one filename never collide.

    Args:
        user_id: Owner's user ID.
        filename: Display name of the file.

    Returns:
        Storage key (e.g., '7/20260131T143052123456_report.pdf').
    """
    timestamp = datetime.now(tz=UTC).strftime('%Y%m%dT%H%M%S%f')
    basename = PurePosixPath(filename).name or 'blob'
    return f'{user_id}/{timestamp}_{basename}'


def validate_name(name: str) -> str:
    """Validate and normalize an item name.

    Args:
        name: Proposed folder or file name.

    Returns:
        The name with surrounding whitespace removed.

    Raises:
        InvalidNameError: If the name is empty or too long.
    """
    normalized = (name or '').strip()
    if not normalized:
        raise InvalidNameError('Name cannot be empty')
    if len(normalized) > _NAME_MAX_LENGTH:
        raise InvalidNameError(
            f'Name longer than {_NAME_MAX_LENGTH} characters',
        )
    return normalized


def validate_color(color: str | None) -> str | None:
    """Validate a folder color.

    Args:
        color: Hex color (#RRGGBB) or None to clear it.

    Returns:
        The color, upper-cased, or None.

    Raises:
        InvalidNameError: If the color is not a #RRGGBB value.
    """
    if color is None:
        return None
    if not _COLOR_PATTERN.match(color):
        raise InvalidNameError(f'Invalid color: {color!r}')
    return color.upper()
