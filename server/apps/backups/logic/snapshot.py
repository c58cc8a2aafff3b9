"""Versioned snapshot records of a drive hierarchy.

A snapshot stores plain JSON rows. Decoding turns them back into
unsaved ``Folder`` and ``File`` instances with their original ids and
timestamps. Decoders are keyed by ``schema_version`` so older backups
stay restorable when the layout changes.
"""

import decimal
import uuid
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Any, Final, NamedTuple

from server.apps.backups.exceptions import SnapshotFormatError
from server.apps.drive.models import File, Folder

SCHEMA_VERSION: Final = 1

_Row = dict[str, Any]

_FOLDER_FIELDS: Final = (
    'name',
    'is_public',
    'starred',
    'trashed',
    'color',
)

_FILE_FIELDS: Final = (
    'name',
    'mime_type',
    'blob_reference',
    'is_public',
    'starred',
    'trashed',
)


class DecodedSnapshot(NamedTuple):
    """Unsaved records rebuilt from a snapshot."""

    folders: list[Folder]
    files: list[File]


def _optional_id(value: uuid.UUID | None) -> str | None:
    return None if value is None else str(value)


def encode_folder(folder: Folder) -> _Row:
    """Copy a folder into a JSON row.

    Args:
        folder: Folder to capture.

    Returns:
        JSON-serializable row.
    """
    row = {field: getattr(folder, field) for field in _FOLDER_FIELDS}
    row.update(
        id=str(folder.pk),
        parent_id=_optional_id(folder.parent_id),
        created_at=folder.created_at.isoformat(),
        updated_at=folder.updated_at.isoformat(),
    )
    return row


def encode_file(file_instance: File) -> _Row:
    """Copy a file record into a JSON row.

    Args:
        file_instance: File to capture.

    Returns:
        JSON-serializable row.
    """
    row = {field: getattr(file_instance, field) for field in _FILE_FIELDS}
    row.update(
        id=str(file_instance.pk),
        folder_id=_optional_id(file_instance.folder_id),
        size_mb=str(file_instance.size_mb),
        last_accessed_at=file_instance.last_accessed_at.isoformat(),
        created_at=file_instance.created_at.isoformat(),
        updated_at=file_instance.updated_at.isoformat(),
    )
    return row


def _parse_optional_id(value: str | None) -> uuid.UUID | None:
    return None if value is None else uuid.UUID(value)


def _decode_folder_v1(row: Mapping[str, Any]) -> Folder:
    return Folder(
        id=uuid.UUID(row['id']),
        parent_id=_parse_optional_id(row['parent_id']),
        created_at=datetime.fromisoformat(row['created_at']),
        updated_at=datetime.fromisoformat(row['updated_at']),
        **{field: row[field] for field in _FOLDER_FIELDS},
    )


def _decode_file_v1(row: Mapping[str, Any]) -> File:
    return File(
        id=uuid.UUID(row['id']),
        folder_id=_parse_optional_id(row['folder_id']),
        size_mb=decimal.Decimal(row['size_mb']),
        last_accessed_at=datetime.fromisoformat(row['last_accessed_at']),
        created_at=datetime.fromisoformat(row['created_at']),
        updated_at=datetime.fromisoformat(row['updated_at']),
        **{field: row[field] for field in _FILE_FIELDS},
    )


_DECODERS: Final[Mapping[int, tuple[
    Callable[[Mapping[str, Any]], Folder],
    Callable[[Mapping[str, Any]], File],
]]] = {
    1: (_decode_folder_v1, _decode_file_v1),
}


def decode(
    schema_version: int,
    folders: Sequence[Mapping[str, Any]],
    files: Sequence[Mapping[str, Any]],
) -> DecodedSnapshot:
    """Rebuild unsaved records from snapshot rows.

    Args:
        schema_version: Layout version the rows were written with.
        folders: Folder rows.
        files: File rows.

    Returns:
        DecodedSnapshot of unsaved Folder and File instances.

    Raises:
        SnapshotFormatError: If the version is unknown or a row is
            malformed.
    """
    try:
        decode_folder, decode_file = _DECODERS[schema_version]
    except KeyError:
        raise SnapshotFormatError(
            f'Unsupported snapshot schema version: {schema_version}',
        ) from None

    try:
        return DecodedSnapshot(
            folders=[decode_folder(row) for row in folders],
            files=[decode_file(row) for row in files],
        )
    except (KeyError, TypeError, ValueError, decimal.InvalidOperation) as error:
        raise SnapshotFormatError(f'Malformed snapshot row: {error!r}') from error
