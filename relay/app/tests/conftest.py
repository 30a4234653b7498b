"""
Shared fixtures for relay tests.

``relay.app.main`` builds the module-level ASGI app on import, so minimal
environment defaults are set before anything imports it.
"""

import os

os.environ.setdefault("AUTH0_URL", "https://tenant.example.auth0.com")
os.environ.setdefault("AUTH0_CLIENT_ID", "test-client-id")
os.environ.setdefault("SESSION_SECRET", "test-session-secret-1234567890123456")

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from relay.app.auth.provider import IdentityProviderClient
from relay.app.config import Settings
from relay.app.main import create_app


PROVIDER_URL = "https://tenant.example.auth0.com"
CRM_URL = "https://crm.example.com"


@pytest.fixture
def mock_settings():
    """Create settings for testing"""
    return Settings(
        AUTH0_URL=PROVIDER_URL,
        AUTH0_CLIENT_ID="test-client-id",
        AUTH0_CLIENT_SECRET="test-client-secret",
        SESSION_SECRET="test-session-secret-1234567890123456",
        CRM_INSTANCE_URL=CRM_URL,
        CRM_ACCESS_TOKEN="test-crm-token",
        ALLOWED_ORIGINS="http://localhost:3000",
    )


@pytest.fixture
def mock_provider():
    """Identity provider client with every operation mocked"""
    return AsyncMock(spec=IdentityProviderClient)


@pytest.fixture
def app(mock_settings, mock_provider):
    """Create test FastAPI application"""
    app = create_app(mock_settings)
    app.state.identity_client = mock_provider
    return app


@pytest.fixture
def client(app):
    """Create test client"""
    return TestClient(app)

