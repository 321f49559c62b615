"""
Global test configuration and fixtures for SendEasy

This module provides shared test fixtures: a throwaway database per test,
both store implementations, a controllable clock, local file storage in a
temporary directory and a FastAPI client wired to all of them.
"""

import os
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import Mock

# Settings are read at import time, so the environment is prepared first
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="sendeasy-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_ROOT / 'app.db'}")
os.environ.setdefault("UPLOAD_DIR", str(_TEST_ROOT / "uploads"))
os.environ.setdefault("SWEEP_INTERVAL_MINUTES", "0")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("REDIS_URL", "")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from sendeasy.api.dependencies import get_clock, get_file_storage
from sendeasy.core.limiter import limiter
from sendeasy.db.base import Base
from sendeasy.db.session import create_db_engine, get_db
from sendeasy.main import app
from sendeasy.services.file_storage import LocalFileStorage
from sendeasy.storage.memory import InMemoryTransferStore
from sendeasy.storage.sql import SqlAlchemyTransferStore

# Import models so create_all sees every table
from sendeasy.db import models as _models  # noqa: F401


# ============================================================================
# Clock
# ============================================================================

class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="function")
def clock():
    """Clock frozen at 2024-03-10 09:30 UTC"""
    return FakeClock(datetime(2024, 3, 10, 9, 30, 0))


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def test_db():
    """Create a test database for each test function"""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')
    engine = create_db_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    yield TestingSessionLocal()

    engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture(scope="function")
def db_session(test_db):
    """Provide database session for tests"""
    session = test_db
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def override_get_db(db_session):
    """Override database dependency for testing"""
    def _override():
        yield db_session
    return _override


# ============================================================================
# Store and File Storage Fixtures
# ============================================================================

@pytest.fixture(scope="function", params=["sql", "memory"])
def store(request):
    """Each store-level test runs against both implementations"""
    if request.param == "memory":
        return InMemoryTransferStore()
    return SqlAlchemyTransferStore(request.getfixturevalue("db_session"))


@pytest.fixture(scope="function")
def file_storage(tmp_path):
    return LocalFileStorage(str(tmp_path / "uploads"))


@pytest.fixture(scope="function")
def mock_boto3_client():
    """Mock boto3 S3 client"""
    mock_client = Mock()
    mock_client.put_object.return_value = {"ETag": '"d41d8cd98f00b204e9800998ecf8427e"'}
    mock_client.delete_object.return_value = {}
    return mock_client


# ============================================================================
# Application Client Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def client(db_session, file_storage, clock):
    """Create FastAPI test client"""
    app.dependency_overrides[get_db] = override_get_db(db_session)
    app.dependency_overrides[get_file_storage] = lambda: file_storage
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function", autouse=True)
def reset_limiter():
    """Clear rate limit counters so tests do not affect each other"""
    limiter.reset()
    yield
    limiter.reset()


# ============================================================================
# Test Markers and Configuration
# ============================================================================

def pytest_collection_modifyitems(config, items):
    """Add markers based on file location"""
    for item in items:
        path = str(item.fspath)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
        if "integration" in path:
            item.add_marker(pytest.mark.integration)
