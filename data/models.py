"""
Data Models for Yuni

This module contains data classes and models used throughout the application.
All records are flat; the only link between a user and a post is the username
copied onto the post when it is created.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, List, Dict, Any

from utils.helpers import to_iso, parse_iso


# =============================================================================
# Posts
# =============================================================================

@dataclass
class CreatePostData:
    """Data class for the fields a user submits when posting."""
    username: str
    content: str
    latitude: float
    longitude: float
    image_uri: Optional[str] = None


@dataclass
class Post:
    """Data class for a stored post."""
    id: str
    username: str
    content: str
    latitude: float
    longitude: float
    created_at: datetime               # Aware UTC, millisecond precision
    expires_at: datetime               # created_at + TTL
    timestamp: int                     # Creation time in epoch milliseconds
    image_uri: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the flat record shape shared by every backend."""
        data = {
            "id": self.id,
            "username": self.username,
            "content": self.content,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "created_at": to_iso(self.created_at),
            "expires_at": to_iso(self.expires_at),
            "timestamp": self.timestamp,
        }
        # Only add image_uri if it exists
        if self.image_uri:
            data["image_uri"] = self.image_uri
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], post_id: Optional[str] = None) -> "Post":
        """Build a Post from a stored record.

        Args:
            data: The record as read from a backend.
            post_id: Identifier to use when the record has none (e.g. the
                key it is stored under in the remote tree).
        """
        return cls(
            id=str(data.get("id") or post_id or ""),
            username=data["username"],
            content=data["content"],
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            created_at=parse_iso(data["created_at"]),
            expires_at=parse_iso(data["expires_at"]),
            timestamp=int(data.get("timestamp") or 0),
            image_uri=data.get("image_uri") or None,
        )


@dataclass
class PostWithDistance:
    """A post as returned by a radius query."""
    post: Post
    distance: float                    # Meters from the observer

    def to_dict(self) -> Dict[str, Any]:
        data = self.post.to_dict()
        data["distance"] = self.distance
        return data


# =============================================================================
# Users
# =============================================================================

@dataclass
class CreateUserData:
    """Data class for registering the user of this device."""
    username: str
    device_id: str


@dataclass
class User:
    """Data class for the user record of a device."""
    username: str
    device_id: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "device_id": self.device_id,
            "created_at": to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            username=data["username"],
            device_id=data["device_id"],
            created_at=parse_iso(data["created_at"]),
        )


# =============================================================================
# Chat
# =============================================================================

@dataclass
class ChatMessage:
    """Data class for one message in a post's chat thread."""
    id: str
    post_id: str
    username: str
    message: str
    timestamp: int                     # Epoch milliseconds, display order
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the key names stored in the remote tree."""
        return {
            "id": self.id,
            "postId": self.post_id,
            "message": self.message,
            "username": self.username,
            "timestamp": self.timestamp,
            "createdAt": to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], message_id: Optional[str] = None) -> "ChatMessage":
        return cls(
            id=str(data.get("id") or message_id or ""),
            post_id=data.get("postId", ""),
            username=data.get("username", ""),
            message=data.get("message", ""),
            timestamp=int(data.get("timestamp") or 0),
            created_at=parse_iso(data["createdAt"]),
        )


# =============================================================================
# Distance Ranges
# =============================================================================

@dataclass(frozen=True)
class DistanceRange:
    """A selectable feed radius."""
    value: int                         # Meters
    label: str
    unit: str                          # 'm' or 'km'


DISTANCE_RANGES: List[DistanceRange] = [
    DistanceRange(100, "100 m", "m"),
    DistanceRange(200, "200 m", "m"),
    DistanceRange(300, "300 m", "m"),
    DistanceRange(400, "400 m", "m"),
    DistanceRange(500, "500 m", "m"),
    DistanceRange(1000, "1 km", "km"),
]


def get_distance_range(value: int) -> Optional[DistanceRange]:
    """Look up a selectable range by its value in meters."""
    for distance_range in DISTANCE_RANGES:
        if distance_range.value == value:
            return distance_range
    return None


# =============================================================================
# Validation Results
# =============================================================================

@dataclass
class FieldError:
    """A single validation failure."""
    field: str
    message: str
    value: Any = None


@dataclass
class ValidationResult:
    """Outcome of a validator: pass/fail plus every error found."""
    is_valid: bool
    errors: List[FieldError] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[FieldError]) -> "ValidationResult":
        return cls(is_valid=not errors, errors=list(errors))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
