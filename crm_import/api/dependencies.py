"""
Shared state and helpers for the API.

Each open import dialog is an ImportSessionController kept in process memory
and addressed by a generated session id.
"""
import asyncio
import logging
from typing import Dict, Optional

from fastapi import HTTPException

from crm_import.domain.imports.session import ImportSessionController
from crm_import.integrations.import_rpc import ImportRpcClient

logger = logging.getLogger(__name__)

# Open import sessions keyed by session id (single-process; sessions are never shared)
session_storage: Dict[str, ImportSessionController] = {}

_rpc_client: Optional[ImportRpcClient] = None


def get_rpc_client() -> ImportRpcClient:
    """Return the process-wide import RPC client, creating it on first use."""
    global _rpc_client
    if _rpc_client is None:
        _rpc_client = ImportRpcClient()
    return _rpc_client


def get_import_session(session_id: str) -> ImportSessionController:
    """
    Look up an open import session.

    Raises:
    - HTTPException: 404 if the session does not exist or was closed
    """
    controller = session_storage.get(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail=f"Import session '{session_id}' not found")
    return controller


async def close_all_sessions() -> None:
    """
    Dispose every open session and the shared RPC client.

    Imports still in flight are cancelled and awaited before the client closes.
    """
    global _rpc_client
    pending = []
    for session_id, controller in list(session_storage.items()):
        task = controller.import_task
        controller.close()
        if task is not None and not task.done():
            task.cancel()
            pending.append(task)
        session_storage.pop(session_id, None)
    if pending:
        logger.warning(f"Cancelling {len(pending)} in-flight import(s) on shutdown")
        await asyncio.gather(*pending, return_exceptions=True)
    if _rpc_client is not None:
        await _rpc_client.aclose()
        _rpc_client = None
    logger.info("Closed all import sessions")
