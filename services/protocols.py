"""
Service Protocol Definitions

This module defines typing.Protocol interfaces for the services YuniApp is
built from. These protocols enable loose coupling, dependency injection, and
easier testing.

Protocols defined:
- PostServiceProtocol: Interface for creating, reading and deleting posts
- ChatServiceProtocol: Interface for a post's chat thread
"""

from typing import Protocol, Optional, List, Callable

from data.models import ChatMessage, CreatePostData, Post, PostWithDistance
from data.protocols import Subscription


class PostServiceProtocol(Protocol):
    """Protocol defining the interface for post services.

    Implementations should provide methods for:
    - Validating and storing new posts
    - Returning the live posts around a location
    - Deleting single posts and sweeping expired ones
    """

    def create_post(self, data: CreatePostData) -> Post:
        """Validate and store a post.

        Args:
            data: User input for the post.

        Returns:
            The stored post with its identifier.

        Raises:
            ValidationFailedError: If the input is invalid.
            StorageError: If no backend could store it.
        """
        ...

    def get_nearby_posts(
        self,
        latitude: float,
        longitude: float,
        radius_meters: Optional[float] = None
    ) -> List[PostWithDistance]:
        """Return live posts within the radius, nearest first."""
        ...

    def delete_post(self, post_id: str) -> None:
        """Delete a post by identifier."""
        ...

    def delete_expired_posts(self) -> int:
        """Delete every expired post and return how many were removed."""
        ...


class ChatServiceProtocol(Protocol):
    """Protocol defining the interface for chat relays."""

    def send_message(self, post_id: str, message: str, username: str) -> ChatMessage:
        """Append a message to a post's thread."""
        ...

    def get_messages(self, post_id: str) -> List[ChatMessage]:
        """Read a post's thread once, oldest first."""
        ...

    def listen_to_messages(self, post_id: str, callback: Callable[[List[ChatMessage]], None]) -> Subscription:
        """Deliver the sorted thread now and after every change until cancelled."""
        ...

    def delete_message(self, post_id: str, message_id: str) -> None:
        """Remove one message from a thread."""
        ...
