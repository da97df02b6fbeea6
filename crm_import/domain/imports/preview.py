from crm_import.domain.imports.models import ParsedDocument, PreviewView

DEFAULT_PREVIEW_LIMIT = 10


def build_preview(doc: ParsedDocument, limit: int = DEFAULT_PREVIEW_LIMIT) -> PreviewView:
    """Return the first ``limit`` rows of ``doc`` alongside its full row count."""
    return PreviewView(
        headers=list(doc.headers),
        sample_rows=[list(row) for row in doc.rows[:limit]],
        total_row_count=doc.total_row_count,
    )
