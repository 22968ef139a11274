"""
Validation Service Module

Pure validators for user-submitted data. Every validator returns a
ValidationResult; composite validators collect the errors of their parts
without stopping at the first failure so callers see every problem at once.
"""

import math
import os
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Pattern
from urllib.parse import unquote, urlparse

from config import settings
from data.models import CreatePostData, CreateUserData, FieldError, ValidationResult
from utils.logger import get_logger

logger = get_logger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+\Z")

_EXT = "|".join(settings.IMAGE_EXTENSIONS)
IMAGE_URI_PATTERN = re.compile(
    rf"^(?:(?:https?|file|content|ph)://.+\.(?:{_EXT})$|data:image/(?:{_EXT}))",
    re.IGNORECASE,
)
IMAGE_EXTENSION_PATTERN = re.compile(rf"\.({_EXT})$", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[0-9]{10,15}$")


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _local_image_path(image_uri: str) -> Optional[str]:
    """Return the file system path behind a file:// URI or plain path, if the file exists."""
    if image_uri.lower().startswith("file://"):
        path = unquote(urlparse(image_uri).path)
    elif "://" in image_uri or image_uri.startswith("data:"):
        return None
    else:
        path = image_uri
    return path if os.path.isfile(path) else None


def validate_username(username: str) -> ValidationResult:
    """
    Validate a username: 2-20 characters from [A-Za-z0-9_].

    Args:
        username: Candidate username

    Returns:
        ValidationResult: A single "required" error for blank input, otherwise
        one error per violated rule
    """
    if _is_blank(username):
        return ValidationResult.from_errors([
            FieldError("username", "Please enter a username", username)
        ])

    errors = []
    if len(username) < settings.USERNAME_MIN_LENGTH:
        errors.append(FieldError(
            "username",
            f"Username must be at least {settings.USERNAME_MIN_LENGTH} characters",
            username,
        ))

    if len(username) > settings.USERNAME_MAX_LENGTH:
        errors.append(FieldError(
            "username",
            f"Username must be at most {settings.USERNAME_MAX_LENGTH} characters",
            username,
        ))

    if not USERNAME_PATTERN.match(username):
        errors.append(FieldError(
            "username",
            "Username may only contain letters, digits and _",
            username,
        ))

    return ValidationResult.from_errors(errors)


def validate_post_content(content: str) -> ValidationResult:
    """
    Validate post text: required, at most MAX_POST_CONTENT_LENGTH characters,
    and free of blocked words.
    """
    if _is_blank(content):
        return ValidationResult.from_errors([
            FieldError("content", "Please enter the post text", content)
        ])

    errors = []
    if len(content) > settings.MAX_POST_CONTENT_LENGTH:
        errors.append(FieldError(
            "content",
            f"Post text must be at most {settings.MAX_POST_CONTENT_LENGTH} characters",
            content,
        ))

    lower_content = content.lower()
    for word in settings.BLOCKED_WORDS:
        if word in lower_content:
            errors.append(FieldError("content", "Post text contains inappropriate words", content))
            break

    return ValidationResult.from_errors(errors)


def _coordinate_in_range(value: Any, limit: float) -> bool:
    if isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return not math.isnan(number) and -limit <= number <= limit


def validate_location(latitude: float, longitude: float) -> ValidationResult:
    """
    Validate a coordinate pair. NaN and non-numeric values are rejected.
    """
    errors = []
    if not _coordinate_in_range(latitude, 90):
        errors.append(FieldError(
            "latitude",
            "Latitude is invalid (must be between -90 and 90)",
            latitude,
        ))

    if not _coordinate_in_range(longitude, 180):
        errors.append(FieldError(
            "longitude",
            "Longitude is invalid (must be between -180 and 180)",
            longitude,
        ))

    return ValidationResult.from_errors(errors)


def validate_image_uri(image_uri: str) -> ValidationResult:
    """
    Validate an image reference.

    Accepts http(s)/file/content/ph URIs ending in an image extension,
    ``data:image/<ext>`` URIs, or any string ending in an image extension.
    Local files larger than MAX_IMAGE_SIZE are rejected.
    """
    if _is_blank(image_uri):
        return ValidationResult.from_errors([
            FieldError("image_uri", "Please choose an image", image_uri)
        ])

    if not IMAGE_URI_PATTERN.match(image_uri) and not IMAGE_EXTENSION_PATTERN.search(image_uri):
        logger.debug(f"Image URI validation failed: {image_uri!r}")
        return ValidationResult.from_errors([
            FieldError("image_uri", "Unsupported image file format", image_uri)
        ])

    local_path = _local_image_path(image_uri)
    if local_path and os.path.getsize(local_path) > settings.MAX_IMAGE_SIZE:
        return ValidationResult.from_errors([
            FieldError(
                "image_uri",
                f"Image must be at most {settings.MAX_IMAGE_SIZE // (1024 * 1024)}MB",
                image_uri,
            )
        ])

    return ValidationResult.from_errors([])


def validate_chat_message(message: str) -> ValidationResult:
    """Validate chat text: required and at most MAX_CHAT_MESSAGE_LENGTH characters."""
    if _is_blank(message):
        return ValidationResult.from_errors([
            FieldError("message", "Please enter a message", message)
        ])

    if len(message) > settings.MAX_CHAT_MESSAGE_LENGTH:
        return ValidationResult.from_errors([
            FieldError(
                "message",
                f"Message must be at most {settings.MAX_CHAT_MESSAGE_LENGTH} characters",
                message,
            )
        ])

    return ValidationResult.from_errors([])


def validate_create_post_data(data: CreatePostData) -> ValidationResult:
    """Validate everything needed to create a post; the image only when present."""
    errors: List[FieldError] = []
    errors.extend(validate_username(data.username).errors)
    errors.extend(validate_post_content(data.content).errors)
    errors.extend(validate_location(data.latitude, data.longitude).errors)
    if data.image_uri:
        errors.extend(validate_image_uri(data.image_uri).errors)
    return ValidationResult.from_errors(errors)


def validate_create_user_data(data: CreateUserData) -> ValidationResult:
    """Validate a username and device id pair."""
    errors: List[FieldError] = []
    errors.extend(validate_username(data.username).errors)
    if _is_blank(data.device_id):
        errors.append(FieldError("device_id", "Device ID is invalid", data.device_id))
    return ValidationResult.from_errors(errors)


# =============================================================================
# Rule-based validation
# =============================================================================

@dataclass
class ValidationRule:
    """Declarative checks for a single field."""
    field: str
    message: str
    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[Pattern] = None
    custom: Optional[Callable[[Any], bool]] = None


def validate_by_rules(value: Any, rules: List[ValidationRule]) -> ValidationResult:
    """
    Check a value against each rule, reporting the first failing check of every rule.

    Args:
        value: The value under test
        rules: Rules to apply

    Returns:
        ValidationResult: One error per failed rule
    """
    errors = []
    for rule in rules:
        text = "" if value is None else str(value)

        if rule.required and _is_blank(value):
            failed = True
        elif rule.min_length is not None and text and len(text) < rule.min_length:
            failed = True
        elif rule.max_length is not None and text and len(text) > rule.max_length:
            failed = True
        elif rule.pattern is not None and text and not rule.pattern.search(text):
            failed = True
        elif rule.custom is not None and not rule.custom(value):
            failed = True
        else:
            failed = False

        if failed:
            errors.append(FieldError(rule.field, rule.message, value))

    return ValidationResult.from_errors(errors)


def create_validation_rules() -> List[ValidationRule]:
    """The post-creation constraints expressed as rules."""
    return [
        ValidationRule(
            field="username",
            required=True,
            min_length=settings.USERNAME_MIN_LENGTH,
            max_length=settings.USERNAME_MAX_LENGTH,
            pattern=USERNAME_PATTERN,
            message=(f"Username must be {settings.USERNAME_MIN_LENGTH}-{settings.USERNAME_MAX_LENGTH} "
                     "characters of letters, digits and _"),
        ),
        ValidationRule(
            field="content",
            required=True,
            max_length=settings.MAX_POST_CONTENT_LENGTH,
            message=f"Post text must be at most {settings.MAX_POST_CONTENT_LENGTH} characters",
        ),
        ValidationRule(
            field="latitude",
            required=True,
            custom=lambda value: _coordinate_in_range(value, 90),
            message="Latitude must be between -90 and 90",
        ),
        ValidationRule(
            field="longitude",
            required=True,
            custom=lambda value: _coordinate_in_range(value, 180),
            message="Longitude must be between -180 and 180",
        ),
    ]


# =============================================================================
# Predicates
# =============================================================================

def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def is_valid_phone_number(phone: str) -> bool:
    return bool(PHONE_PATTERN.match(re.sub(r"\s", "", phone)))


def is_image_file(uri: str) -> bool:
    return bool(IMAGE_EXTENSION_PATTERN.search(uri or ""))


def sanitize_input(text: str) -> str:
    """Strip markup and quoting characters and cap the length at 1000."""
    return re.sub(r"[<>'\";]", "", text.strip())[:1000]
