"""
Custom Exception Classes for the Yuni Application

This module defines custom exceptions for better error handling and
categorization of failures across the application.
"""

from typing import List, Optional


class YuniError(Exception):
    """Base exception for all Yuni application errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(YuniError):
    """Raised when configuration validation fails or required settings are missing."""
    pass


# =============================================================================
# Validation Errors
# =============================================================================

class ValidationFailedError(YuniError):
    """Raised when user-submitted data fails validation.

    Attributes:
        errors: The field-level errors (``FieldError`` instances) collected
            by the validator, in the order they were found.
    """

    def __init__(self, errors: Optional[List] = None, message: Optional[str] = None):
        self.errors = list(errors or [])
        if message is None:
            message = ", ".join(e.message for e in self.errors) or "Invalid data"
        super().__init__(message)


# =============================================================================
# Storage Errors
# =============================================================================

class StorageError(YuniError):
    """Base exception for persistence errors (any backend)."""
    pass


class DatabaseConnectionError(StorageError):
    """Raised when a storage backend cannot be opened."""
    pass


class QueryError(StorageError):
    """Raised when a storage query or write fails."""
    pass


# =============================================================================
# Network Errors
# =============================================================================

class NetworkError(YuniError):
    """Raised when the remote realtime database cannot be reached."""
    pass


class RemoteTimeoutError(NetworkError):
    """Raised when a remote read does not complete within its timeout."""
    pass


# =============================================================================
# Permission Errors
# =============================================================================

class PermissionDeniedError(YuniError):
    """Raised when a device capability (location, camera, photos) is denied.

    Attributes:
        code: Native error code, e.g. ``E_LOCATION_PERMISSION_DENIED``.
    """

    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        super().__init__(message or code)
