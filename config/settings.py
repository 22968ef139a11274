"""
Configuration Settings for Yuni

This module centralizes all configuration settings for the Yuni application,
including environment variables, storage locations, and application constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# =============================================================================
# Remote Realtime Database
# =============================================================================

FIREBASE_DATABASE_URL = os.getenv("FIREBASE_DATABASE_URL", "").rstrip("/")
FIREBASE_AUTH_TOKEN = os.getenv("FIREBASE_AUTH_TOKEN")
ENABLE_REMOTE = _env_bool("ENABLE_REMOTE", bool(FIREBASE_DATABASE_URL))  # On by default once a URL is set

REMOTE_READ_TIMEOUT = float(os.getenv("REMOTE_READ_TIMEOUT", "1.0"))    # Seconds before a feed read gives up
REMOTE_WRITE_TIMEOUT = float(os.getenv("REMOTE_WRITE_TIMEOUT", "10.0")) # Seconds for writes and deletes

# =============================================================================
# Local Storage
# =============================================================================

SQLITE_DB_PATH = os.getenv("SQLITE_DB_PATH", os.path.join(APP_ROOT, "yuni.db"))
LOCAL_STORE_PATH = os.getenv("LOCAL_STORE_PATH", os.path.join(APP_ROOT, "yuni_storage.json"))

# Backends attempted in order until one succeeds (remote, local, sqlite)
BACKEND_ORDER = [
    name.strip().lower()
    for name in os.getenv("BACKEND_ORDER", "remote,local").split(",")
    if name.strip()
]
KNOWN_BACKENDS = ["remote", "local", "sqlite"]

# =============================================================================
# Post Lifecycle Settings
# =============================================================================

POST_TTL_MINUTES = int(os.getenv("POST_TTL_MINUTES", str(24 * 60)))   # Posts expire 24 hours after creation
DEFAULT_RADIUS_METERS = int(os.getenv("DEFAULT_RADIUS_METERS", "100"))
DISTANCE_RANGE_VALUES = [100, 200, 300, 400, 500, 1000]                # Selectable feed radii in meters

# =============================================================================
# Validation Settings
# =============================================================================

MAX_POST_CONTENT_LENGTH = 250
USERNAME_MIN_LENGTH = 2
USERNAME_MAX_LENGTH = 20
MAX_CHAT_MESSAGE_LENGTH = 500
MAX_IMAGE_SIZE = 5 * 1024 * 1024                                       # 5MB
BLOCKED_WORDS = ["spam", "scam", "fake"]
IMAGE_EXTENSIONS = ["jpg", "jpeg", "png", "gif", "bmp", "webp"]

# =============================================================================
# Network Settings
# =============================================================================

CONNECTIVITY_CHECK_URL = os.getenv("CONNECTIVITY_CHECK_URL", "https://www.google.com")
CONNECTIVITY_TIMEOUT = float(os.getenv("CONNECTIVITY_TIMEOUT", "5.0"))

# =============================================================================
# Logging
# =============================================================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "yuni.log")


# Validation lives in config.validators; re-exported here for callers that
# only import settings.
from config.validators import ConfigurationError, validate_settings, get_config_summary  # noqa: E402
