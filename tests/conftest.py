"""
Shared Test Fixtures for Yuni

This module provides common fixtures used across all test modules.
Fixtures include test settings, a controllable clock, the in-process
realtime tree, temporary storage backends, log capture, HTTP responses,
and data factories for test objects.
"""

import pytest
from unittest.mock import MagicMock
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import settings
from data.database import SQLitePostStore
from data.local_store import LocalKeyValueStore, LocalPostStore
from data.models import CreatePostData
from data.realtime import InMemoryRealtimeTree
from data.remote_store import RemotePostStore
from services.post_lifecycle import PostLifecycle
from utils.exceptions import StorageError

BANGKOK = (13.7563, 100.5018)
START_TIME = datetime(2026, 1, 15, 9, 30, 0, tzinfo=timezone.utc)


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def mock_settings(monkeypatch, tmp_path):
    """
    Point the settings module at safe test values.

    Values are set on the real config.settings module (restored after the
    test), so every module reading ``settings.X`` at call time sees them.

    Usage:
        def test_something(mock_settings):
            mock_settings.POST_TTL_MINUTES = 5

    Returns:
        module: The patched settings module.
    """
    monkeypatch.setattr(settings, "FIREBASE_DATABASE_URL", "https://yuni-test.firebaseio.com")
    monkeypatch.setattr(settings, "FIREBASE_AUTH_TOKEN", "test-token")
    monkeypatch.setattr(settings, "ENABLE_REMOTE", True)
    monkeypatch.setattr(settings, "BACKEND_ORDER", ["remote", "local"])
    monkeypatch.setattr(settings, "REMOTE_READ_TIMEOUT", 1.0)
    monkeypatch.setattr(settings, "REMOTE_WRITE_TIMEOUT", 10.0)
    monkeypatch.setattr(settings, "SQLITE_DB_PATH", str(tmp_path / "yuni-test.db"))
    monkeypatch.setattr(settings, "LOCAL_STORE_PATH", str(tmp_path / "yuni-test.json"))
    monkeypatch.setattr(settings, "POST_TTL_MINUTES", 1440)
    monkeypatch.setattr(settings, "DEFAULT_RADIUS_METERS", 100)
    monkeypatch.setattr(settings, "MAX_IMAGE_SIZE", 5 * 1024 * 1024)
    monkeypatch.setattr(settings, "LOG_FILE", str(tmp_path / "yuni-test.log"))
    return settings


# =============================================================================
# Clock Fixtures
# =============================================================================

class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START_TIME):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def fake_clock():
    """
    A clock fixed at START_TIME that tests advance explicitly.

    Usage:
        def test_expiry(fake_clock):
            fake_clock.advance(hours=25)
    """
    return FakeClock()


@pytest.fixture
def lifecycle(fake_clock):
    """A 24 hour TTL policy driven by fake_clock."""
    return PostLifecycle(ttl=timedelta(hours=24), clock=fake_clock)


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def memory_tree():
    """An empty in-process realtime tree."""
    return InMemoryRealtimeTree()


@pytest.fixture
def remote_store(memory_tree):
    """RemotePostStore over memory_tree."""
    return RemotePostStore(memory_tree, read_timeout=1.0)


@pytest.fixture
def kv_store(tmp_path):
    """LocalKeyValueStore persisted in a temporary JSON file."""
    return LocalKeyValueStore(str(tmp_path / "storage.json"))


@pytest.fixture
def local_store(kv_store):
    """LocalPostStore over kv_store."""
    return LocalPostStore(kv_store)


@pytest.fixture
def sqlite_store():
    """
    SQLitePostStore on an in-memory database.

    Yields:
        SQLitePostStore: Connected store, closed after the test.
    """
    store = SQLitePostStore(":memory:")
    store.connect()
    yield store
    store.close()


@pytest.fixture
def failing_backend():
    """
    Factory for backends whose every operation raises.

    Usage:
        def test_fallback(failing_backend):
            broken = failing_backend("remote", StorageError("down"))
    """
    def _create(name: str = "broken", error: Optional[Exception] = None) -> MagicMock:
        backend = MagicMock()
        backend.name = name
        error = error or StorageError(f"{name} unavailable")
        for method in ("create_post", "get_posts_in_radius", "delete_post", "delete_expired_posts"):
            getattr(backend, method).side_effect = error
        return backend

    return _create


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def capture_logs():
    """
    Capture log messages for assertion in tests.

    Returns:
        list: A list that will contain captured log records.
    """
    import logging

    class LogCapture(logging.Handler):
        def __init__(self):
            super().__init__()
            self.records = []

        def emit(self, record):
            self.records.append(record)

    handler = LogCapture()
    handler.setLevel(logging.DEBUG)

    root_logger = logging.getLogger()
    original_level = root_logger.level
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(handler)

    yield handler.records

    root_logger.removeHandler(handler)
    root_logger.setLevel(original_level)


# =============================================================================
# HTTP Response Fixtures
# =============================================================================

@pytest.fixture
def mock_http_response():
    """
    Factory fixture for creating mock HTTP responses.

    Usage:
        def test_http_request(mock_http_response):
            response = mock_http_response(json_data={'name': '-Nabc'})

    Returns:
        callable: A factory function for creating mock responses.
    """
    def _create_response(
        status_code: int = 200,
        json_data: Any = None,
        lines: Optional[list] = None
    ) -> MagicMock:
        """
        Create a mock HTTP response object.

        Args:
            status_code: HTTP status code (default 200).
            json_data: Value returned from response.json(); also sets content.
            lines: Lines yielded by iter_lines() for streaming responses.

        Returns:
            MagicMock: A mock response object mimicking requests.Response.
        """
        import json
        from requests.exceptions import HTTPError

        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.ok = 200 <= status_code < 300
        mock_response.content = json.dumps(json_data).encode("utf-8")
        mock_response.json.return_value = json_data
        mock_response.iter_lines.return_value = iter(lines or [])

        if status_code >= 400:
            mock_response.raise_for_status.side_effect = HTTPError(
                f"{status_code} Error",
                response=mock_response
            )
        else:
            mock_response.raise_for_status.return_value = None

        return mock_response

    return _create_response


# =============================================================================
# Data Factories
# =============================================================================

@pytest.fixture
def post_data_factory():
    """
    Factory fixture for creating CreatePostData test objects.

    Usage:
        def test_post(post_data_factory):
            data = post_data_factory(content="Hello")
    """
    def _create(
        username: str = "alice",
        content: str = "Great noodles at the corner stall",
        latitude: float = BANGKOK[0],
        longitude: float = BANGKOK[1],
        image_uri: Optional[str] = None
    ) -> CreatePostData:
        return CreatePostData(
            username=username,
            content=content,
            latitude=latitude,
            longitude=longitude,
            image_uri=image_uri,
        )

    return _create


@pytest.fixture
def post_factory(lifecycle, post_data_factory):
    """
    Factory fixture for building Post objects stamped by the lifecycle.

    Usage:
        def test_store(post_factory):
            post = post_factory(post_id="p1", latitude=13.76)
    """
    def _create(post_id: str = "", **kwargs: Dict[str, Any]):
        return lifecycle.build_post(post_data_factory(**kwargs), post_id=post_id)

    return _create
