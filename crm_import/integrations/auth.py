"""
Auth token capability consumed by the import session.

Token issuance belongs to the identity provider; the import pipeline only
needs something it can await for a bearer token.
"""
from typing import Optional, Protocol

from crm_import.core.config import settings
from crm_import.domain.imports.errors import AuthTokenError


class TokenProvider(Protocol):
    async def get_auth_token(self) -> str:
        ...


class StaticTokenProvider:
    """Returns a fixed bearer token (from the caller's request or the settings)."""

    def __init__(self, token: Optional[str] = None):
        self._token = settings.auth_token if token is None else token

    async def get_auth_token(self) -> str:
        if not self._token:
            raise AuthTokenError()
        return self._token


def bearer_token_from_header(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
