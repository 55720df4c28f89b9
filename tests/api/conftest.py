"""
API test fixtures.

Dependencies: fastapi.testclient
System role: HTTP-level test infrastructure
"""

import pytest
from fastapi.testclient import TestClient

from convoflow.api.main import create_app

USER_HEADERS = {"X-User-Id": "user-123"}


@pytest.fixture
def client() -> TestClient:
    """TestClient over a fresh app; overrides are cleared on teardown."""
    app = create_app()
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user_headers() -> dict[str, str]:
    return dict(USER_HEADERS)
