"""
Normalization of import RPC responses.

The contact service answers in either snake_case (``imported_count``) or
camelCase (``importedCount``) depending on which gateway served the call.
This module is the only place that knows about both spellings.
"""
import logging
from typing import Any, List, Mapping, Optional, Sequence

from crm_import.domain.imports.models import ImportOutcome, ImportRowError

logger = logging.getLogger(__name__)

IMPORTED_COUNT_KEYS = ("imported_count", "importedCount")
FAILED_COUNT_KEYS = ("failed_count", "failedCount")
ERRORS_KEYS = ("errors",)
LINE_NUMBER_KEYS = ("line_number", "lineNumber")
MESSAGE_KEYS = ("error_message", "errorMessage", "message")


def _first_present(raw: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _as_int(value: Any, default: Optional[int]) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric value {value!r} in import response")
        return default


def _as_count(value: Any) -> int:
    return max(_as_int(value, 0), 0)


def reconcile_error(raw: Any) -> ImportRowError:
    """Normalize one raw error entry into an ImportRowError."""
    if not isinstance(raw, Mapping):
        return ImportRowError(line_number=None, message="" if raw is None else str(raw))

    line_number = _as_int(_first_present(raw, LINE_NUMBER_KEYS), None)
    message = _first_present(raw, MESSAGE_KEYS)
    return ImportRowError(
        line_number=line_number,
        message="" if message is None else str(message),
    )


def reconcile(raw: Any) -> ImportOutcome:
    """
    Convert a raw import response into the canonical ImportOutcome.

    Every field is looked up under both naming conventions, preferring the
    first one present. Missing counts become 0 and a missing error list
    becomes empty; no error detail is invented when ``failed_count`` exceeds
    the number of errors given.

    Args:
        raw: Decoded JSON body of the import RPC

    Returns:
        ImportOutcome
    """
    if not isinstance(raw, Mapping):
        logger.warning(f"Import response is not an object ({type(raw).__name__}); treating as empty")
        raw = {}

    raw_errors = _first_present(raw, ERRORS_KEYS) or []
    if isinstance(raw_errors, (str, bytes)) or not isinstance(raw_errors, Sequence):
        raw_errors = []

    errors: List[ImportRowError] = [reconcile_error(entry) for entry in raw_errors]
    outcome = ImportOutcome(
        imported_count=_as_count(_first_present(raw, IMPORTED_COUNT_KEYS)),
        failed_count=_as_count(_first_present(raw, FAILED_COUNT_KEYS)),
        errors=tuple(errors),
    )

    if len(outcome.errors) > outcome.failed_count:
        logger.info(
            f"Import response lists {len(outcome.errors)} errors for {outcome.failed_count} failed rows"
        )
    return outcome
