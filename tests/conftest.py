import asyncio
import os
import tempfile
from pathlib import Path

# Settings are read at import time, so the environment must be ready first
_TMP_DIR = Path(tempfile.mkdtemp(prefix="mindjournal-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR / 'test.db'}"
os.environ["ANALYSIS_PROVIDER"] = "keyword"
os.environ["SESSION_COOKIE_SECURE"] = "false"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_dummy"

import pytest
from fastapi.testclient import TestClient

from app.database import drop_db, init_db
from app.main import app
from helpers import signup

def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no database, no HTTP)")
    config.addinivalue_line("markers", "integration: API tests against the SQLite database")

async def _reset_database():
    await drop_db()
    await init_db()

@pytest.fixture(autouse=True)
def fresh_database():
    """Every test starts from empty tables."""
    asyncio.run(_reset_database())
    yield

@pytest.fixture()
def make_client():
    """Factory for independent clients; each keeps its own session cookie."""
    clients = []

    def _make():
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)

@pytest.fixture()
def client(make_client):
    return make_client()

@pytest.fixture()
def user_client(make_client):
    """A client logged in as a fresh user."""
    client = make_client()
    signup(client, "alice")
    return client

@pytest.fixture()
def other_client(make_client):
    client = make_client()
    signup(client, "bob")
    return client
