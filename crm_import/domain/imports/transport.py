"""
Payload encoding for the import RPC.

The mode is fixed by the import variant, never inferred from file content:
the master import endpoint takes the CSV text as-is, while the per-customer
endpoint expects base64 so that non-UTF-8 exports survive JSON transport.
"""
import base64
from enum import Enum

from crm_import.domain.imports.models import SelectedFile


class EncodingMode(str, Enum):
    RAW_TEXT = "raw_text"
    BYTE_SAFE = "byte_safe"


def encode_payload(file: SelectedFile, mode: EncodingMode) -> str:
    """
    Encode the selected file for a JSON string field.

    Args:
        file: The selected file
        mode: RAW_TEXT for the decoded text, BYTE_SAFE for standard base64 of the raw bytes

    Returns:
        The encoded payload string
    """
    if mode == EncodingMode.RAW_TEXT:
        return file.read_text()
    if mode == EncodingMode.BYTE_SAFE:
        return base64.b64encode(file.read_bytes()).decode("ascii")
    raise ValueError(f"Unsupported encoding mode: {mode}")
