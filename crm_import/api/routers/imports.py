"""
Contact CSV import endpoints.

Each dialog opened in the dashboard creates an import session; the front end
then uploads the chosen file, confirms the import and polls the session for
progress and the final report.
"""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Header, HTTPException, UploadFile

from crm_import.api.dependencies import (
    get_import_session,
    get_rpc_client,
    session_storage,
)
from crm_import.api.schemas.imports import (
    CloseImportSessionResponse,
    CreateImportSessionRequest,
    ImportSessionResponse,
    ImportVariantInfo,
    ImportVariantsResponse,
)
from crm_import.domain.imports.errors import ImportPhaseError, UnknownVariantError
from crm_import.domain.imports.models import SelectedFile
from crm_import.domain.imports.session import ImportSessionController
from crm_import.domain.imports.variants import get_variant, list_variants
from crm_import.integrations.auth import StaticTokenProvider, bearer_token_from_header

router = APIRouter(tags=["imports"])

logger = logging.getLogger(__name__)


@router.get("/import-variants", response_model=ImportVariantsResponse)
async def list_import_variants_endpoint():
    """List the available import flows and the columns each expects."""
    return ImportVariantsResponse(
        variants=[ImportVariantInfo.from_variant(variant) for variant in list_variants()]
    )


@router.post("/import-sessions", response_model=ImportSessionResponse, status_code=201)
async def create_import_session_endpoint(
    request: CreateImportSessionRequest,
    authorization: Optional[str] = Header(default=None),
):
    """
    Open an import session for one dialog.

    Parameters:
    - variant: "contact" (per customer, requires customer_id) or "contact_master"
    - customer_id: Owning customer for the "contact" variant

    The caller's bearer token, when present, is used for the import RPC;
    otherwise the configured service token is used.
    """
    try:
        variant = get_variant(request.variant)
    except UnknownVariantError as e:
        raise HTTPException(status_code=400, detail=e.message)

    try:
        controller = ImportSessionController(
            variant,
            rpc_client=get_rpc_client(),
            token_provider=StaticTokenProvider(bearer_token_from_header(authorization)),
            customer_id=request.customer_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session_id = str(uuid.uuid4())
    session_storage[session_id] = controller
    logger.info(f"Opened {variant.name} import session {session_id}")
    return ImportSessionResponse.from_session(session_id, controller.snapshot())


@router.get("/import-sessions/{session_id}", response_model=ImportSessionResponse)
async def get_import_session_endpoint(session_id: str):
    """Return the current phase, preview, progress, error and result of a session."""
    controller = get_import_session(session_id)
    return ImportSessionResponse.from_session(session_id, controller.snapshot())


@router.post("/import-sessions/{session_id}/file", response_model=ImportSessionResponse)
async def select_import_file_endpoint(
    session_id: str,
    file: UploadFile = File(...),
    controller: ImportSessionController = Depends(get_import_session),
):
    """
    Select the CSV file for a session.

    File and column problems are reported in the returned session's ``error``
    field with the session left in the "selecting" phase.
    """
    content = await file.read()
    try:
        snapshot = controller.select_file(SelectedFile(file_name=file.filename or "", content=content))
    except ImportPhaseError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return ImportSessionResponse.from_session(session_id, snapshot)


@router.post("/import-sessions/{session_id}/confirm", response_model=ImportSessionResponse, status_code=202)
async def confirm_import_endpoint(
    session_id: str,
    controller: ImportSessionController = Depends(get_import_session),
):
    """
    Start the import for the previewed file.

    The import runs in the background; poll the session until its phase is
    "reporting" (success) or back to "previewing" with an error (failure).
    Confirming again while the import is running has no effect.
    """
    try:
        controller.start_import()
    except ImportPhaseError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return ImportSessionResponse.from_session(session_id, controller.snapshot())


@router.post("/import-sessions/{session_id}/reset", response_model=ImportSessionResponse)
async def reset_import_session_endpoint(
    session_id: str,
    controller: ImportSessionController = Depends(get_import_session),
):
    """Discard the selected file and any result so another file can be chosen."""
    try:
        snapshot = controller.reset()
    except ImportPhaseError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return ImportSessionResponse.from_session(session_id, snapshot)


@router.delete("/import-sessions/{session_id}", response_model=CloseImportSessionResponse)
async def close_import_session_endpoint(session_id: str):
    """Close the dialog's session. An import already sent is not retracted."""
    controller = get_import_session(session_id)
    controller.close()
    session_storage.pop(session_id, None)
    logger.info(f"Closed import session {session_id}")
    return CloseImportSessionResponse(success=True, message=f"Import session {session_id} closed")
