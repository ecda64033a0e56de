"""Shared test fixtures.

Sets environment variables BEFORE any app imports so that
``matrix_vcon.config.get_settings()`` resolves without a real .env file,
homeserver or Redis.
"""

import os

# --- Environment setup (must happen before app imports) -------------------
os.environ.setdefault("SYNAPSE_URL", "http://synapse.test")
os.environ.setdefault("SYNAPSE_ACCESS_TOKEN", "test-access-token")
os.environ.setdefault("SYNAPSE_USER_ID", "@recorder:example.org")
os.environ.setdefault("SYNAPSE_HS_TOKEN", "test-hs-token")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("CONSERVER_URL", "http://conserver.test/vcon")
os.environ.setdefault("DOMAIN_NAME", "example.org")

# --- Now it's safe to import app modules ---------------------------------
import pytest
from starlette.testclient import TestClient

from matrix_vcon.config import Settings
from matrix_vcon.main import app
from matrix_vcon.services.vcon_store import VconStore


@pytest.fixture()
def settings(tmp_path) -> Settings:
    """Settings pointing the vCon store at a per-test directory."""
    return Settings(VCON_PATH=str(tmp_path / "vcons"))


@pytest.fixture()
def store(settings) -> VconStore:
    return VconStore(settings.VCON_PATH)


@pytest.fixture()
def client():
    """FastAPI TestClient for the app."""
    with TestClient(app) as c:
        yield c
