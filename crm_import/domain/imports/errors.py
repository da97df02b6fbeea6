"""
Exception taxonomy for the CSV import pipeline.

Every error carries a stable ``code`` so the API can surface it as data on the
session snapshot instead of an HTTP failure.
"""
from typing import List, Optional


class CsvImportError(Exception):
    """Base class for errors raised while selecting, parsing or importing a CSV."""

    code = "import_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class FileTypeError(CsvImportError):
    """Exception raised when the selected file does not have the expected extension."""

    code = "file_type"

    def __init__(self, file_name: str, expected_extension: str = ".csv", message: str = None):
        self.file_name = file_name
        self.expected_extension = expected_extension
        super().__init__(message or f"Only {expected_extension} files can be imported ('{file_name}').")


class FileSizeError(CsvImportError):
    """Exception raised when the selected file exceeds the upload ceiling."""

    code = "file_size"

    def __init__(self, file_name: str, size: int, max_bytes: int, message: str = None):
        self.file_name = file_name
        self.size = size
        self.max_bytes = max_bytes
        max_mb = max_bytes // (1024 * 1024)
        super().__init__(message or f"{file_name} is too large. Maximum allowed file size is {max_mb}MB.")


class EmptyDocumentError(CsvImportError):
    """Exception raised when a CSV contains no non-blank lines."""

    code = "empty_document"

    def __init__(self, message: str = None):
        super().__init__(message or "The CSV file is empty.")


class MissingColumnsError(CsvImportError):
    """Exception raised when required columns are absent from the header row."""

    code = "missing_columns"

    def __init__(self, names: List[str], message: str = None):
        self.names = list(names)
        super().__init__(message or f"Required columns are missing: {', '.join(self.names)}")


class NetworkImportError(CsvImportError):
    """Exception raised when the import RPC fails or answers with a non-success status."""

    code = "network"

    def __init__(self, detail_text: str, status_code: Optional[int] = None, message: str = None):
        self.detail_text = detail_text
        self.status_code = status_code
        super().__init__(message or f"Import failed: {detail_text}")


class ImportPhaseError(CsvImportError):
    """Exception raised when a session action is not valid in the current phase."""

    code = "invalid_phase"

    def __init__(self, action: str, phase: str, message: str = None):
        self.action = action
        self.phase = phase
        super().__init__(message or f"Cannot {action} while the import session is {phase}.")


class UnknownVariantError(CsvImportError):
    """Exception raised when an import variant name is not registered."""

    code = "unknown_variant"

    def __init__(self, name: str, message: str = None):
        self.name = name
        super().__init__(message or f"Unknown import variant '{name}'.")


class AuthTokenError(CsvImportError):
    """Exception raised when no bearer token can be obtained for the import call."""

    code = "auth"

    def __init__(self, message: str = None):
        super().__init__(message or "Sign in again before importing: no auth token is available.")
