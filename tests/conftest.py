"""Shared fixtures for the flightlo test suite.

Provides a built-in catalog, seeded random generators, offline settings and
a FastAPI TestClient. Network access always goes through
``backend.flightlo.services.base.requests`` so tests patch that one name.
"""

import os
import sys
import random

import pytest
import requests
from unittest.mock import patch, MagicMock

# Add project root to path so `import backend.flightlo` works without install.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from backend.flightlo.cache import ResponseCache
from backend.flightlo.catalog import ReferenceCatalog
from backend.flightlo.config import Settings


# ============================================================
# FAKE HTTP RESPONSES
# ============================================================

def fake_response(json_data=None, text="", status_code=200):
    """Build a fake requests.Response."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if json_data is None:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        resp.json.return_value = json_data
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    else:
        resp.raise_for_status = MagicMock()
    return resp


@pytest.fixture
def make_response():
    return fake_response


# ============================================================
# DOMAIN FIXTURES
# ============================================================

@pytest.fixture
def catalog():
    return ReferenceCatalog.builtin()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def settings():
    """Settings with every credential cleared so nothing hits a paid API."""
    return Settings(
        aviationstack_key=None,
        amadeus_client_id=None,
        amadeus_client_secret=None,
        fetch_timeout_seconds=2,
        fail_on_empty_live_data=False,
    )


@pytest.fixture
def cache():
    return ResponseCache(default_ttl_seconds=60)


# ============================================================
# NETWORK PATCHING
# ============================================================

@pytest.fixture
def offline():
    """Every upstream call fails as if the network were down."""
    with patch("backend.flightlo.services.base.requests.get") as mock_get, \
         patch("backend.flightlo.services.base.requests.post") as mock_post:
        mock_get.side_effect = requests.ConnectionError("network down")
        mock_post.side_effect = requests.ConnectionError("network down")
        yield mock_get


# ============================================================
# FASTAPI TEST CLIENT
# ============================================================

@pytest.fixture
def app_module(settings):
    from backend.flightlo import main

    main.app.state.settings = settings
    main.app.state.catalog = ReferenceCatalog.builtin()
    main.cache.clear()
    yield main
    main.cache.clear()


@pytest.fixture
def client(app_module):
    from fastapi.testclient import TestClient

    with TestClient(app_module.app) as c:
        yield c
