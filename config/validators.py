"""
Configuration Validation for Yuni

This module contains configuration validation logic.
Extracted from settings.py for better separation of concerns.
"""

from utils.exceptions import ConfigurationError
from utils.helpers import is_valid_url


def validate_settings():
    """
    Validate that all required settings are properly configured.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings

    errors = []

    # Backend ordering
    if not settings.BACKEND_ORDER:
        errors.append("BACKEND_ORDER must name at least one backend")

    for name in settings.BACKEND_ORDER:
        if name not in settings.KNOWN_BACKENDS:
            errors.append(f"Unknown backend in BACKEND_ORDER: {name} "
                          f"(expected one of {', '.join(settings.KNOWN_BACKENDS)})")

    if len(set(settings.BACKEND_ORDER)) != len(settings.BACKEND_ORDER):
        errors.append("BACKEND_ORDER lists the same backend more than once")

    # Remote store needs a URL when it is enabled and ordered
    if settings.ENABLE_REMOTE and "remote" in settings.BACKEND_ORDER:
        if not settings.FIREBASE_DATABASE_URL:
            errors.append("ENABLE_REMOTE is true but FIREBASE_DATABASE_URL is not configured.")
        elif not is_valid_url(settings.FIREBASE_DATABASE_URL):
            errors.append(f"FIREBASE_DATABASE_URL is not a valid URL: {settings.FIREBASE_DATABASE_URL}")

    # Validate numeric settings are within reasonable bounds
    numeric_validations = [
        ("POST_TTL_MINUTES", settings.POST_TTL_MINUTES, 1, 7 * 24 * 60),
        ("DEFAULT_RADIUS_METERS", settings.DEFAULT_RADIUS_METERS, 1, 20000),
        ("MAX_POST_CONTENT_LENGTH", settings.MAX_POST_CONTENT_LENGTH, 1, 5000),
        ("USERNAME_MIN_LENGTH", settings.USERNAME_MIN_LENGTH, 1, 100),
        ("USERNAME_MAX_LENGTH", settings.USERNAME_MAX_LENGTH, 1, 100),
        ("MAX_CHAT_MESSAGE_LENGTH", settings.MAX_CHAT_MESSAGE_LENGTH, 1, 10000),
    ]

    for name, value, min_val, max_val in numeric_validations:
        if value < min_val or value > max_val:
            errors.append(f"{name} must be between {min_val} and {max_val}, got {value}")

    if settings.USERNAME_MIN_LENGTH > settings.USERNAME_MAX_LENGTH:
        errors.append("USERNAME_MIN_LENGTH must not exceed USERNAME_MAX_LENGTH")

    if settings.DEFAULT_RADIUS_METERS not in settings.DISTANCE_RANGE_VALUES:
        errors.append(f"DEFAULT_RADIUS_METERS must be one of {settings.DISTANCE_RANGE_VALUES}, "
                      f"got {settings.DEFAULT_RADIUS_METERS}")

    # Validate timeout values are positive
    timeout_settings = [
        ("REMOTE_READ_TIMEOUT", settings.REMOTE_READ_TIMEOUT),
        ("REMOTE_WRITE_TIMEOUT", settings.REMOTE_WRITE_TIMEOUT),
        ("CONNECTIVITY_TIMEOUT", settings.CONNECTIVITY_TIMEOUT),
    ]

    for name, value in timeout_settings:
        if value <= 0:
            errors.append(f"{name} must be positive, got {value}")

    # Raise all errors at once
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    return True


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    # Import settings here to avoid circular imports
    from config import settings

    url = settings.FIREBASE_DATABASE_URL
    return {
        "backends": {
            "order": settings.BACKEND_ORDER,
            "remote": {
                "enabled": settings.ENABLE_REMOTE,
                "url": url[:40] + "..." if url and len(url) > 40 else url,
                "authenticated": bool(settings.FIREBASE_AUTH_TOKEN),
            },
            "sqlite_path": settings.SQLITE_DB_PATH,
            "local_store_path": settings.LOCAL_STORE_PATH,
        },
        "posts": {
            "ttl_minutes": settings.POST_TTL_MINUTES,
            "default_radius_m": settings.DEFAULT_RADIUS_METERS,
            "max_content_length": settings.MAX_POST_CONTENT_LENGTH,
        },
        "timeouts": {
            "remote_read": settings.REMOTE_READ_TIMEOUT,
            "remote_write": settings.REMOTE_WRITE_TIMEOUT,
        },
    }
