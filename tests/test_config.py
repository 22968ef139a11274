"""
Tests for Configuration Validation

Tests validate_settings() and get_config_summary().
"""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.validators import validate_settings, get_config_summary
from utils.exceptions import ConfigurationError


class TestValidateSettings:
    """Tests for validate_settings()."""

    def test_valid_settings(self, mock_settings):
        """Test that the test configuration passes."""
        assert validate_settings() is True

    def test_unknown_backend(self, mock_settings):
        """Test that an unknown backend name is reported."""
        mock_settings.BACKEND_ORDER = ["remote", "cloud"]

        with pytest.raises(ConfigurationError, match="Unknown backend in BACKEND_ORDER: cloud"):
            validate_settings()

    def test_empty_and_duplicate_order(self, mock_settings):
        """Test that an empty or repeated order is reported."""
        mock_settings.BACKEND_ORDER = []
        with pytest.raises(ConfigurationError, match="at least one backend"):
            validate_settings()

        mock_settings.BACKEND_ORDER = ["local", "local"]
        with pytest.raises(ConfigurationError, match="more than once"):
            validate_settings()

    def test_remote_needs_url(self, mock_settings):
        """Test that an enabled remote backend without a URL is reported."""
        mock_settings.FIREBASE_DATABASE_URL = ""

        with pytest.raises(ConfigurationError, match="FIREBASE_DATABASE_URL"):
            validate_settings()

    def test_remote_url_not_needed_when_not_ordered(self, mock_settings):
        """Test that the URL is only required when the remote backend is used."""
        mock_settings.FIREBASE_DATABASE_URL = ""
        mock_settings.BACKEND_ORDER = ["local", "sqlite"]

        assert validate_settings() is True

    def test_invalid_url(self, mock_settings):
        """Test that a malformed URL is reported."""
        mock_settings.FIREBASE_DATABASE_URL = "not a url"

        with pytest.raises(ConfigurationError, match="not a valid URL"):
            validate_settings()

    def test_collects_every_problem(self, mock_settings):
        """Test that all errors are reported in one exception."""
        mock_settings.POST_TTL_MINUTES = 0
        mock_settings.DEFAULT_RADIUS_METERS = 150
        mock_settings.REMOTE_READ_TIMEOUT = 0

        with pytest.raises(ConfigurationError) as exc_info:
            validate_settings()

        message = str(exc_info.value)
        assert "POST_TTL_MINUTES" in message
        assert "DEFAULT_RADIUS_METERS must be one of" in message
        assert "REMOTE_READ_TIMEOUT must be positive" in message

    def test_username_bounds_order(self, mock_settings, monkeypatch):
        """Test that min length above max length is reported."""
        monkeypatch.setattr(mock_settings, "USERNAME_MIN_LENGTH", 30)

        with pytest.raises(ConfigurationError, match="must not exceed"):
            validate_settings()


class TestConfigSummary:
    """Tests for get_config_summary()."""

    def test_summary_has_no_secrets(self, mock_settings):
        """Test that the auth token itself is never included."""
        summary = get_config_summary()

        assert summary["backends"]["order"] == ["remote", "local"]
        assert summary["backends"]["remote"]["authenticated"] is True
        assert "test-token" not in repr(summary)

    def test_summary_values(self, mock_settings):
        """Test the post and timeout sections."""
        summary = get_config_summary()

        assert summary["posts"]["ttl_minutes"] == 1440
        assert summary["timeouts"] == {"remote_read": 1.0, "remote_write": 10.0}
