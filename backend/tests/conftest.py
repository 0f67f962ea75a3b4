"""
Pytest fixtures for access code service tests.
Provides test database, mock Redis, stub geolocation and FastAPI test client.
"""

import os
import sys
from pathlib import Path

import pytest
from unittest.mock import patch

# Settings are read at import time, so configure them before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_TOKEN"] = "test-admin-token"
os.environ["CODE_HASH_ITERATIONS"] = "1000"
os.environ["GEO_LOOKUP_ENABLED"] = "false"
os.environ["RATE_LIMIT_MAX"] = "5"
os.environ["RATE_LIMIT_WINDOW_MS"] = "60000"

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fastapi.testclient import TestClient

ADMIN_TOKEN = "test-admin-token"


class MockRedisService:
    """Mock Redis service for testing."""

    _rate_limits = {}

    @classmethod
    def reset(cls):
        cls._rate_limits = {}

    @staticmethod
    def check_rate_limit(ip: str, limit=None, window_ms=None) -> tuple:
        count = MockRedisService._rate_limits.get(ip, 0)
        limit = limit or 5
        if count >= limit:
            return False, 0
        MockRedisService._rate_limits[ip] = count + 1
        return True, limit - count - 1

    @staticmethod
    def retry_after(ip: str) -> int:
        return 60


class StubGeoLocator:
    """Geolocation double returning a fixed result."""

    def __init__(self, result=None):
        self.result = result
        self.calls = []

    async def lookup(self, ip: str):
        self.calls.append(ip)
        return self.result


@pytest.fixture(autouse=True)
def mock_redis():
    """Automatically mock Redis for all tests."""
    MockRedisService.reset()
    with patch("codegate.routes.RedisService", MockRedisService):
        yield MockRedisService


@pytest.fixture(scope="function")
def test_db():
    """Create a test database using SQLite in-memory."""
    from codegate.database import Base

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def geo_stub():
    """Geolocation capability that finds nothing."""
    return StubGeoLocator()


@pytest.fixture(scope="function")
def client(test_db, mock_redis, geo_stub):
    """Create a FastAPI test client with mocked dependencies."""
    from codegate.main import app
    from codegate.database import get_db
    from codegate.geo import get_geo_locator

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_geo_locator] = lambda: geo_stub

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def stored_code(test_db):
    """Store code 'ABC123' -> https://example.com/a (hashed)."""
    from codegate.services import AccessCodeService

    return AccessCodeService.create_code(test_db, "ABC123", "https://example.com/a")
