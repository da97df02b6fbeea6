"""
Value types shared by the CSV import pipeline.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ImportPhase(str, Enum):
    """Lifecycle phase of an import session."""
    SELECTING = "selecting"
    PREVIEWING = "previewing"
    IMPORTING = "importing"
    REPORTING = "reporting"


@dataclass(frozen=True)
class SelectedFile:
    """A file chosen through the picker or dropped onto the dialog."""
    file_name: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    def read_text(self) -> str:
        """Decode the file as UTF-8 (dropping a BOM), falling back to Latin-1."""
        try:
            return self.content.decode("utf-8-sig")
        except UnicodeDecodeError:
            return self.content.decode("latin-1")

    def read_bytes(self) -> bytes:
        return self.content


@dataclass(frozen=True)
class ColumnSchema:
    """Required and advisory column names, stored lowercase in declaration order."""
    required: Tuple[str, ...] = ()
    optional: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "required", tuple(name.lower() for name in self.required))
        object.__setattr__(self, "optional", tuple(name.lower() for name in self.optional))

    @property
    def expected_columns(self) -> List[str]:
        return list(self.required) + [name for name in self.optional if name not in self.required]


@dataclass
class ParsedDocument:
    """Header row plus every data row of a tokenized CSV."""
    headers: List[str]
    rows: List[List[str]] = field(default_factory=list)
    total_row_count: int = 0


@dataclass(frozen=True)
class PreviewView:
    """Bounded sample of a parsed document for display."""
    headers: List[str]
    sample_rows: List[List[str]]
    total_row_count: int

    @property
    def is_truncated(self) -> bool:
        return self.total_row_count > len(self.sample_rows)


@dataclass(frozen=True)
class ImportRowError:
    """A single row rejected by the import backend."""
    line_number: Optional[int]
    message: str


@dataclass(frozen=True)
class ImportOutcome:
    """Canonical result of one import call."""
    imported_count: int = 0
    failed_count: int = 0
    errors: Tuple[ImportRowError, ...] = ()

    @property
    def has_failures(self) -> bool:
        return self.failed_count > 0 or bool(self.errors)

    @property
    def is_complete_success(self) -> bool:
        return not self.has_failures

    def visible_errors(self, limit: int = 10) -> List[ImportRowError]:
        return list(self.errors[:limit])

    def hidden_error_count(self, limit: int = 10) -> int:
        return max(len(self.errors) - limit, 0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the outcome to a dictionary for serialization."""
        return {
            "imported_count": self.imported_count,
            "failed_count": self.failed_count,
            "errors": [
                {"line_number": error.line_number, "message": error.message}
                for error in self.errors
            ],
        }


@dataclass(frozen=True)
class ImportSession:
    """Read-only snapshot of an import session for rendering."""
    phase: ImportPhase
    variant: str
    file: Optional[SelectedFile] = None
    preview: Optional[PreviewView] = None
    error: Optional[Exception] = None
    progress: int = 0
    outcome: Optional[ImportOutcome] = None

    @property
    def file_name(self) -> Optional[str]:
        return self.file.file_name if self.file else None
