"""
Structural validation for selected CSV files.

Two checks run before any network traffic: the file boundary check (name and
size, before the content is even decoded) and the column check against the
active variant's schema.
"""
import logging
from typing import Iterable, List, Optional

from crm_import.core.config import settings
from crm_import.domain.imports.errors import FileSizeError, FileTypeError, MissingColumnsError
from crm_import.domain.imports.models import ColumnSchema, SelectedFile

logger = logging.getLogger(__name__)

CSV_EXTENSION = ".csv"


def max_upload_bytes() -> int:
    return settings.upload_max_file_size_mb * 1024 * 1024


def validate_file(file: SelectedFile, max_bytes: Optional[int] = None) -> None:
    """
    Reject files with the wrong extension or above the size ceiling.

    Args:
        file: The selected file
        max_bytes: Size ceiling override; defaults to the configured limit

    Raises:
        FileTypeError: If the name does not end in ``.csv``
        FileSizeError: If the content is larger than the ceiling
    """
    if not file.file_name.lower().endswith(CSV_EXTENSION):
        raise FileTypeError(file.file_name, CSV_EXTENSION)

    limit = max_upload_bytes() if max_bytes is None else max_bytes
    if file.size > limit:
        raise FileSizeError(file.file_name, file.size, limit)


def find_missing_columns(headers: Iterable[str], schema: ColumnSchema) -> List[str]:
    """Return required column names absent from ``headers``, in schema order."""
    present = {header.strip().lower() for header in headers}
    return [name for name in schema.required if name not in present]


def validate_columns(headers: List[str], schema: ColumnSchema) -> None:
    """
    Confirm that every required column is present (case-insensitive).

    Optional and unknown columns are never enforced.

    Raises:
        MissingColumnsError: Listing every missing required column
    """
    missing = find_missing_columns(headers, schema)
    if missing:
        logger.warning(f"CSV is missing required columns {missing}; found {headers}")
        raise MissingColumnsError(missing)
