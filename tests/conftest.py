"""
Pytest configuration and fixtures for the contact import tests.

Collaborators (auth token, import RPC) are replaced by in-memory fakes so no
test needs a running contact service.
"""

import pytest

from crm_import.api import dependencies
from crm_import.core.config import settings
from crm_import.domain.imports.progress import ProgressEstimator
from crm_import.integrations.auth import StaticTokenProvider
from tests.utils.fakes import FakeRpcClient


@pytest.fixture
def token_provider():
    """Token capability that always yields a fixed bearer token."""
    return StaticTokenProvider("test-token")


@pytest.fixture
def fast_progress():
    """Progress factory with a short tick so async tests stay quick."""
    return lambda: ProgressEstimator(seed=10, step=10, ceiling=90, interval_seconds=0.01)


@pytest.fixture
def fake_rpc():
    return FakeRpcClient(
        response={
            "imported_count": 2,
            "failed_count": 0,
            "errors": [],
        }
    )


@pytest.fixture
def isolated_sessions(monkeypatch):
    """
    Give each API test an empty session store and a fake RPC client.

    Yields the fake client so tests can inspect the calls it received.
    """
    fake = FakeRpcClient(response={"importedCount": 2, "failedCount": 0, "errors": []})
    monkeypatch.setattr(settings, "auth_token", "test-token")
    monkeypatch.setattr(dependencies, "session_storage", {})
    monkeypatch.setattr("crm_import.api.routers.imports.session_storage", dependencies.session_storage)
    monkeypatch.setattr("crm_import.api.routers.imports.get_rpc_client", lambda: fake)
    yield fake


@pytest.fixture
def master_csv():
    """A small contact master file with a quoted field."""
    return (
        "customer_id,name,phone\n"
        "C-001,John Doe,123-456\n"
        "C-002,\"Doe, John\",789\n"
    )
