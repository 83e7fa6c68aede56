"""
E2E test fixtures and configuration

These tests drive the real FastAPI app: startup, request validation, the
pathway/availability/planner endpoints and plan verification. Firestore is
replaced by the in-memory catalog through the app's catalog dependency.

Run e2e tests with: pytest backend/tests/e2e -m e2e
"""

import pytest
import sys
import time
from pathlib import Path
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

# Add backend to path for imports
backend_dir = Path(__file__).parent.parent.parent
sys.path.insert(0, str(backend_dir))


def pytest_configure(config):
    config.addinivalue_line("markers", "e2e: marks tests as end-to-end tests (full pipeline)")


@pytest.fixture
def timed_request():
    """Send a request and print how long it took"""
    def _send(client, method: str, url: str, **kwargs):
        started = time.perf_counter()
        response = client.request(method.upper(), url, **kwargs)
        elapsed = (time.perf_counter() - started) * 1000
        print(f"\n  [{method.upper()} {url}] {elapsed:.2f}ms - Status: {response.status_code}")
        return response, elapsed
    return _send


@pytest.fixture
def app_client(planner_catalog):
    """
    Test client running the REAL FastAPI app.

    Firebase initialization is patched out and the catalog dependency is
    overridden with the in-memory planner catalog.
    """
    unavailable_cache = MagicMock()
    unavailable_cache.is_connected = False

    with patch('server.initialize_firebase'):
        with patch('server.get_firestore_client', return_value=MagicMock()):
            with patch('services.cache.get_cache', return_value=unavailable_cache):
                from server import app, catalog_dependency

                app.dependency_overrides[catalog_dependency] = lambda: planner_catalog
                try:
                    with TestClient(app) as client:
                        yield client, planner_catalog
                finally:
                    app.dependency_overrides.clear()
