from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from crm_import.domain.imports.errors import CsvImportError, MissingColumnsError, NetworkImportError
from crm_import.domain.imports.models import ImportOutcome, ImportSession, PreviewView
from crm_import.domain.imports.variants import ImportVariant


class ImportVariantInfo(BaseModel):
    name: str
    title: str
    required_columns: List[str]
    optional_columns: List[str]
    encoding_mode: str
    requires_customer_id: bool

    @classmethod
    def from_variant(cls, variant: ImportVariant) -> "ImportVariantInfo":
        return cls(
            name=variant.name,
            title=variant.title,
            required_columns=list(variant.schema.required),
            optional_columns=list(variant.schema.optional),
            encoding_mode=variant.encoding_mode.value,
            requires_customer_id=variant.requires_customer_id,
        )


class ImportVariantsResponse(BaseModel):
    success: bool = True
    variants: List[ImportVariantInfo]


class CreateImportSessionRequest(BaseModel):
    variant: str
    customer_id: Optional[str] = None

    @field_validator("customer_id")
    def strip_customer_id(cls, value: Optional[str]) -> Optional[str]:
        """Treat a blank customer_id as absent."""
        if value is None:
            return None
        return value.strip() or None


class PreviewInfo(BaseModel):
    headers: List[str]
    sample_rows: List[List[str]]
    total_row_count: int
    is_truncated: bool

    @classmethod
    def from_view(cls, view: PreviewView) -> "PreviewInfo":
        return cls(
            headers=view.headers,
            sample_rows=view.sample_rows,
            total_row_count=view.total_row_count,
            is_truncated=view.is_truncated,
        )


class ImportErrorInfo(BaseModel):
    """Pipeline error surfaced as session data rather than an HTTP failure."""
    code: str
    message: str
    missing_columns: Optional[List[str]] = None
    status_code: Optional[int] = None

    @classmethod
    def from_error(cls, error: Exception) -> "ImportErrorInfo":
        if not isinstance(error, CsvImportError):
            return cls(code=CsvImportError.code, message=str(error))
        info = cls(code=error.code, message=error.message)
        if isinstance(error, MissingColumnsError):
            info.missing_columns = error.names
        if isinstance(error, NetworkImportError):
            info.status_code = error.status_code
        return info


class ImportRowErrorInfo(BaseModel):
    line_number: Optional[int] = None
    message: str


class ImportOutcomeInfo(BaseModel):
    imported_count: int
    failed_count: int
    errors: List[ImportRowErrorInfo] = Field(default_factory=list)

    @classmethod
    def from_outcome(cls, outcome: ImportOutcome) -> "ImportOutcomeInfo":
        return cls(**outcome.to_dict())


class ImportSessionResponse(BaseModel):
    session_id: str
    variant: str
    phase: str
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    preview: Optional[PreviewInfo] = None
    error: Optional[ImportErrorInfo] = None
    progress: int = 0
    outcome: Optional[ImportOutcomeInfo] = None

    @classmethod
    def from_session(cls, session_id: str, session: ImportSession) -> "ImportSessionResponse":
        return cls(
            session_id=session_id,
            variant=session.variant,
            phase=session.phase.value,
            file_name=session.file_name,
            file_size=session.file.size if session.file else None,
            preview=PreviewInfo.from_view(session.preview) if session.preview else None,
            error=ImportErrorInfo.from_error(session.error) if session.error else None,
            progress=session.progress,
            outcome=ImportOutcomeInfo.from_outcome(session.outcome) if session.outcome else None,
        )


class CloseImportSessionResponse(BaseModel):
    success: bool
    message: str
