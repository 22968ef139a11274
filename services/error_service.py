"""
Error Service Module

Turns exceptions and native error codes into AppError records carrying a
fixed, human-readable message for display, and classifies them.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from data.models import FieldError
from utils.exceptions import (
    NetworkError, PermissionDeniedError, StorageError, ValidationFailedError, YuniError
)
from utils.logger import get_logger

logger = get_logger(__name__)


class ErrorCode(str, Enum):
    LOCATION_PERMISSION_DENIED = "LOCATION_PERMISSION_DENIED"
    LOCATION_SERVICES_DISABLED = "LOCATION_SERVICES_DISABLED"
    CAMERA_PERMISSION_DENIED = "CAMERA_PERMISSION_DENIED"
    PHOTO_LIBRARY_PERMISSION_DENIED = "PHOTO_LIBRARY_PERMISSION_DENIED"
    NETWORK_ERROR = "NETWORK_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass
class AppError:
    """An error ready to be shown to the user."""
    code: ErrorCode
    message: str
    details: Any = None
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))


# =============================================================================
# Messages
# =============================================================================

UNKNOWN_MESSAGE = "An unknown error occurred"

NATIVE_ERROR_MESSAGES = {
    "E_LOCATION_SERVICES_DISABLED": "GPS is turned off, please turn on GPS",
    "E_LOCATION_UNAVAILABLE": "Location is unavailable, please check your settings",
    "E_LOCATION_TIMEOUT": "Getting your location took too long, please try again",
    "E_LOCATION_PERMISSION_DENIED": "No permission to access location, please allow it in settings",
    "E_CAMERA_PERMISSION_DENIED": "No permission to access the camera, please allow it in settings",
    "E_PHOTO_LIBRARY_PERMISSION_DENIED": "No permission to access photos, please allow it in settings",
    "E_IMAGE_PICKER_CANCELLED": "Image selection was cancelled",
    "E_IMAGE_PICKER_FAILED": "Could not select the image, please try again",
    "E_NETWORK_ERROR": "Cannot connect to the internet",
    "E_DATABASE_ERROR": "An error occurred while saving data",
    "E_VALIDATION_ERROR": "The data is invalid, please check it again",
}

# native code -> ErrorCode
LOCATION_ERRORS = {
    "E_LOCATION_SERVICES_DISABLED": ErrorCode.LOCATION_SERVICES_DISABLED,
    "E_LOCATION_PERMISSION_DENIED": ErrorCode.LOCATION_PERMISSION_DENIED,
    "E_LOCATION_UNAVAILABLE": ErrorCode.LOCATION_SERVICES_DISABLED,
    "E_LOCATION_TIMEOUT": ErrorCode.LOCATION_SERVICES_DISABLED,
}

IMAGE_ERRORS = {
    "E_CAMERA_PERMISSION_DENIED": ErrorCode.CAMERA_PERMISSION_DENIED,
    "E_PHOTO_LIBRARY_PERMISSION_DENIED": ErrorCode.PHOTO_LIBRARY_PERMISSION_DENIED,
    "E_IMAGE_PICKER_CANCELLED": ErrorCode.UNKNOWN_ERROR,
    "E_IMAGE_PICKER_FAILED": ErrorCode.UNKNOWN_ERROR,
}

CRITICAL_CODES = {
    ErrorCode.DATABASE_ERROR,
    ErrorCode.LOCATION_SERVICES_DISABLED,
    ErrorCode.NETWORK_ERROR,
}

RETRYABLE_CODES = {
    ErrorCode.NETWORK_ERROR,
    ErrorCode.LOCATION_SERVICES_DISABLED,
    ErrorCode.UNKNOWN_ERROR,
}


def create_app_error(code: ErrorCode, message: str, details: Any = None) -> AppError:
    return AppError(code=code, message=message, details=details)


def create_validation_error(field_name: str, message: str, value: Any = None) -> FieldError:
    return FieldError(field=field_name, message=message, value=value)


def _native_code(error: Any) -> Optional[str]:
    code = getattr(error, "code", None)
    if code is None and isinstance(error, dict):
        code = error.get("code")
    return code if isinstance(code, str) else None


def get_error_message(error: Any) -> str:
    """
    Get the message to display for any kind of error.

    Args:
        error: An AppError, FieldError, exception, native error (object or
            dict with a ``code``), or plain string

    Returns:
        str: Human-readable message
    """
    if isinstance(error, (AppError, FieldError)):
        return error.message

    if isinstance(error, str):
        return error

    code = _native_code(error)
    if code:
        return NATIVE_ERROR_MESSAGES.get(code, UNKNOWN_MESSAGE)

    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])

    if isinstance(error, Exception) and str(error):
        return str(error)

    return UNKNOWN_MESSAGE


def handle_location_error(error: Any) -> AppError:
    code = _native_code(error)
    if code in LOCATION_ERRORS:
        return create_app_error(LOCATION_ERRORS[code], NATIVE_ERROR_MESSAGES[code], error)
    return create_app_error(ErrorCode.UNKNOWN_ERROR, "An error occurred while getting your location", error)


def handle_image_error(error: Any) -> AppError:
    code = _native_code(error)
    if code in IMAGE_ERRORS:
        return create_app_error(IMAGE_ERRORS[code], NATIVE_ERROR_MESSAGES[code], error)
    return create_app_error(ErrorCode.UNKNOWN_ERROR, "An error occurred while handling the image", error)


def handle_database_error(error: Any) -> AppError:
    return create_app_error(ErrorCode.DATABASE_ERROR, NATIVE_ERROR_MESSAGES["E_DATABASE_ERROR"], error)


def handle_network_error(error: Any) -> AppError:
    return create_app_error(ErrorCode.NETWORK_ERROR, NATIVE_ERROR_MESSAGES["E_NETWORK_ERROR"], error)


def handle_validation_error(error: Any) -> AppError:
    return create_app_error(ErrorCode.VALIDATION_ERROR, NATIVE_ERROR_MESSAGES["E_VALIDATION_ERROR"], error)


def handle_unknown_error(error: Any) -> AppError:
    return create_app_error(ErrorCode.UNKNOWN_ERROR, UNKNOWN_MESSAGE, error)


def to_app_error(error: Exception) -> AppError:
    """
    Classify an exception raised anywhere in the application.

    Args:
        error: The exception

    Returns:
        AppError: Validation errors keep their field messages; storage,
        network and permission errors get their fixed messages
    """
    if isinstance(error, ValidationFailedError):
        app_error = handle_validation_error(error.errors)
        if error.errors:
            app_error.message = ", ".join(e.message for e in error.errors)
        return app_error
    if isinstance(error, PermissionDeniedError):
        if error.code in LOCATION_ERRORS:
            return handle_location_error(error)
        return handle_image_error(error)
    if isinstance(error, NetworkError):
        return handle_network_error(error)
    if isinstance(error, StorageError):
        return handle_database_error(error)
    if isinstance(error, YuniError):
        return create_app_error(ErrorCode.UNKNOWN_ERROR, str(error) or UNKNOWN_MESSAGE, error)
    return handle_unknown_error(error)


def log_error(error: AppError, context: Optional[str] = None) -> None:
    logger.error(f"[{context or 'App'}] {error.code.value}: {error.message} (details: {error.details!r})")


def show_error_to_user(error: AppError) -> str:
    """Log the error and return the message to display."""
    log_error(error, "User Error")
    return error.message


def is_critical_error(error: AppError) -> bool:
    return error.code in CRITICAL_CODES


def is_retryable_error(error: AppError) -> bool:
    return error.code in RETRYABLE_CODES


def create_error_summary(errors: List[AppError]) -> str:
    """
    Summarize several errors in one line, preferring critical ones.

    Args:
        errors: Errors collected during an operation

    Returns:
        str: Summary message
    """
    if not errors:
        return "No errors"

    if len(errors) == 1:
        return errors[0].message

    critical_errors = [e for e in errors if is_critical_error(e)]
    if critical_errors:
        return f"Critical error: {critical_errors[0].message}"

    return f"{len(errors)} errors occurred"
