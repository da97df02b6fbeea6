"""
Registered import flows.

Both dashboard dialogs run the same session controller; they differ only in
the column schema, the RPC endpoint, how the file is encoded and which
identifiers travel with it.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from crm_import.domain.imports.errors import UnknownVariantError
from crm_import.domain.imports.models import ColumnSchema, SelectedFile
from crm_import.domain.imports.transport import EncodingMode, encode_payload

CONTACT_COLUMNS = ("name", "sex", "phone", "mail", "fax")


@dataclass(frozen=True)
class ImportVariant:
    """Configuration of one import flow."""
    name: str
    title: str
    schema: ColumnSchema
    endpoint: str
    encoding_mode: EncodingMode
    content_field: str
    requires_customer_id: bool = False
    sends_file_name: bool = False

    def build_payload(self, file: SelectedFile, customer_id: Optional[str] = None) -> Dict[str, Any]:
        """Build the JSON body for this variant's RPC."""
        payload: Dict[str, Any] = {}
        if self.requires_customer_id:
            if not customer_id:
                raise ValueError(f"Import variant '{self.name}' requires a customer_id")
            payload["customer_id"] = customer_id
        if self.sends_file_name:
            payload["file_name"] = file.file_name
        payload[self.content_field] = encode_payload(file, self.encoding_mode)
        return payload


CONTACT_IMPORT = ImportVariant(
    name="contact",
    title="Contact CSV import",
    schema=ColumnSchema(required=(), optional=CONTACT_COLUMNS),
    endpoint="/contact.v1.ContactService/ImportContact",
    encoding_mode=EncodingMode.BYTE_SAFE,
    content_field="file_content",
    requires_customer_id=True,
    sends_file_name=True,
)

CONTACT_MASTER_IMPORT = ImportVariant(
    name="contact_master",
    title="Contact master CSV import",
    schema=ColumnSchema(required=("customer_id",), optional=CONTACT_COLUMNS),
    endpoint="/contact.v1.ContactService/ImportContactWithCustomer",
    encoding_mode=EncodingMode.RAW_TEXT,
    content_field="csv_data",
)

VARIANTS: Dict[str, ImportVariant] = {
    variant.name: variant for variant in (CONTACT_IMPORT, CONTACT_MASTER_IMPORT)
}


def get_variant(name: str) -> ImportVariant:
    variant = VARIANTS.get(name)
    if variant is None:
        raise UnknownVariantError(name)
    return variant


def list_variants() -> List[ImportVariant]:
    return list(VARIANTS.values())
