"""
Helper Utility Module

This module provides various helper functions used throughout the Yuni application:
time handling, identifier generation, URL checks and connectivity checks.
"""

import os
import random
import string
import time
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

import requests

from utils.logger import get_logger

logger = get_logger(__name__)

# Alphabet used by Firebase push ids; ids sort in creation order.
PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"
BASE36_CHARS = string.digits + string.ascii_lowercase


def utc_now() -> datetime:
    """
    Get the current time as an aware UTC datetime truncated to milliseconds.

    Stored timestamps carry millisecond precision, so comparisons against
    "now" must use the same precision.

    Returns:
        datetime: Current UTC time.
    """
    return truncate_to_ms(datetime.now(timezone.utc))


def truncate_to_ms(value: datetime) -> datetime:
    """Drop sub-millisecond precision; naive values are taken to be UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def to_iso(value: datetime) -> str:
    """
    Format a datetime as a fixed-width ISO-8601 UTC string.

    Strings produced here compare lexicographically in time order, which the
    SQLite backend relies on.

    Args:
        value: The datetime to format (naive values are treated as UTC)

    Returns:
        str: e.g. ``2026-10-19T08:30:00.000+00:00``
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def parse_iso(value: str) -> datetime:
    """
    Parse an ISO-8601 string into an aware UTC datetime.

    Accepts the trailing ``Z`` form written by JavaScript clients.

    Args:
        value: The string to parse

    Returns:
        datetime: Parsed aware datetime in UTC
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to integer epoch milliseconds."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(round(value.timestamp() * 1000))


def to_base36(number: int) -> str:
    """Encode a non-negative integer in lowercase base 36."""
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(BASE36_CHARS[rem])
    return "".join(reversed(digits))


def generate_push_id(now_ms: Optional[int] = None) -> str:
    """
    Generate a 20 character, chronologically sortable identifier.

    The first 8 characters encode the creation time in milliseconds, the
    remaining 12 are random, the same shape as ids assigned by the remote store.

    Args:
        now_ms: Timestamp to encode, defaults to the current time

    Returns:
        str: The generated identifier
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    time_chars = []
    for _ in range(8):
        time_chars.append(PUSH_CHARS[now_ms % 64])
        now_ms //= 64
    random_chars = [random.choice(PUSH_CHARS) for _ in range(12)]
    return "".join(reversed(time_chars)) + "".join(random_chars)


def is_valid_url(url: str) -> bool:
    """
    Check if a URL is valid.

    Args:
        url: The URL to validate

    Returns:
        bool: True if the URL is valid, False otherwise
    """
    try:
        result = urlparse(url)
        return all([result.scheme, result.netloc])
    except (ValueError, AttributeError):
        return False


def is_internet_connected(url: str = "https://www.google.com", timeout: float = 5.0) -> bool:
    """
    Check network connectivity with a HEAD request.

    Args:
        url: Address to check
        timeout: Seconds before giving up

    Returns:
        bool: True if the request got a successful response
    """
    try:
        response = requests.head(url, timeout=timeout)
        return response.ok
    except requests.RequestException as e:
        logger.warning(f"No internet connection: {e}")
        return False


def ensure_dir_exists(directory: str) -> None:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        directory: The directory path to check/create
    """
    if directory and not os.path.exists(directory):
        os.makedirs(directory)
