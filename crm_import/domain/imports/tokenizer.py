"""
Quote-aware CSV tokenizer for contact import files.

Lines are split before quotes are scanned, so a quoted field that contains a
newline is read as two rows. Contact exports are single-line per record and
the dashboard has always previewed them this way.
"""
import logging
import re
from typing import List

from crm_import.domain.imports.errors import EmptyDocumentError
from crm_import.domain.imports.models import ParsedDocument

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def split_lines(text: str) -> List[str]:
    """Split text on CR, LF or CRLF and drop lines that are blank after trimming."""
    return [line for line in _LINE_BREAK.split(text) if line.strip()]


def parse_line(line: str) -> List[str]:
    """
    Parse one CSV line into fields.

    A double quote toggles the quoted state, except that two consecutive
    quotes inside a quoted section produce one literal quote. Commas only
    separate fields outside quotes. Every field is trimmed.

    Args:
        line: A single line of CSV text without its line terminator

    Returns:
        List of field values
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    index = 0
    length = len(line)

    while index < length:
        char = line[index]
        if char == '"':
            if in_quotes and index + 1 < length and line[index + 1] == '"':
                current.append('"')
                index += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        index += 1

    fields.append("".join(current).strip())
    return fields


def tokenize(text: str) -> ParsedDocument:
    """
    Tokenize CSV text into a header row and data rows.

    Ragged rows are returned as-is; it is up to the caller to reject or pad
    them.

    Args:
        text: Decoded CSV file content

    Returns:
        ParsedDocument with every data row and the total row count

    Raises:
        EmptyDocumentError: If no non-blank lines remain
    """
    lines = split_lines(text)
    if not lines:
        raise EmptyDocumentError()

    headers = parse_line(lines[0])
    rows = [parse_line(line) for line in lines[1:]]

    logger.debug(f"Tokenized CSV with {len(rows)} data rows and columns {headers}")
    return ParsedDocument(headers=headers, rows=rows, total_row_count=len(rows))
