"""
HTTP client for the contact service import RPCs.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from crm_import.core.config import settings
from crm_import.domain.imports.errors import NetworkImportError

logger = logging.getLogger(__name__)


class ImportRpcClient:
    """
    Posts import payloads to the contact service.

    Non-success statuses are surfaced as ``NetworkImportError`` carrying the
    raw body text; the body is never parsed as structured error detail.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = (base_url or settings.backend_url).rstrip("/")
        timeout = settings.backend_timeout_seconds if timeout_s is None else timeout_s
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ImportRpcClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def call(self, endpoint: str, payload: Dict[str, Any], *, token: str) -> Any:
        """
        Invoke one import RPC and return its decoded JSON body.

        Args:
            endpoint: RPC path, e.g. ``/contact.v1.ContactService/ImportContact``
            payload: JSON body
            token: Bearer token for the Authorization header

        Raises:
            NetworkImportError: On transport failure, non-2xx status or a non-JSON body
        """
        url = f"{self._base_url}{endpoint}"
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

        logger.info(f"Posting import request to {url}")
        try:
            response = await self._client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(f"Import request to {url} failed: {exc}")
            raise NetworkImportError(str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            logger.error(f"Import request to {url} returned {response.status_code}: {response.text}")
            raise NetworkImportError(response.text, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            logger.error(f"Import response from {url} is not JSON")
            raise NetworkImportError(
                f"Unexpected response from import service: {response.text[:200]}",
                status_code=response.status_code,
            ) from exc
