"""
Data Layer Protocol Definitions

This module defines typing.Protocol interfaces for data layer operations.
These protocols enable dependency injection for storage operations,
making services testable without real databases or network access.

Protocols defined:
- PostStorage: The four post operations every backend implements
- UserStorage: Storing and looking up the user record of a device
- RealtimeTree: The primitives of the remote realtime database
- Subscription: Handle returned by RealtimeTree.listen
"""

from datetime import datetime
from typing import Protocol, Optional, List, Any, Callable

from data.models import Post, PostWithDistance, User, CreateUserData


class PostStorage(Protocol):
    """Protocol defining the interface for post storage backends.

    Implementations should provide methods for:
    - Storing a new post and assigning it an identifier
    - Returning live posts within a radius of a point, nearest first
    - Deleting a post by identifier
    - Sweeping out every expired post

    Backends raise StorageError (or NetworkError for the remote store) on
    failure so a FallbackChain can move on to the next backend.
    """

    name: str

    def create_post(self, post: Post) -> Post:
        """Store a post.

        Args:
            post: The post to store. Its ``id`` may be empty.

        Returns:
            The stored post, carrying the identifier the backend assigned.
        """
        ...

    def get_posts_in_radius(
        self,
        latitude: float,
        longitude: float,
        radius_meters: float,
        now: datetime
    ) -> List[PostWithDistance]:
        """Return live posts within ``radius_meters`` of the point.

        Args:
            latitude: Observer latitude.
            longitude: Observer longitude.
            radius_meters: Inclusive search radius.
            now: Current time; posts with ``expires_at <= now`` are excluded.

        Returns:
            Posts with their distance, sorted ascending by distance.
        """
        ...

    def delete_post(self, post_id: str) -> None:
        """Delete a post. Deleting an unknown id is not an error."""
        ...

    def delete_expired_posts(self, now: datetime) -> int:
        """Delete every post with ``expires_at <= now``.

        Returns:
            The number of posts removed.
        """
        ...


class UserStorage(Protocol):
    """Protocol for backends that also keep user records."""

    def add_user(self, user_data: CreateUserData) -> User:
        """Store (or replace) the user record for a device."""
        ...

    def get_user(self, device_id: str) -> Optional[User]:
        """Look up the user record of a device."""
        ...


class Subscription(Protocol):
    """Handle for a live listener; call cancel() when the consumer goes away."""

    def cancel(self) -> None:
        ...

    @property
    def active(self) -> bool:
        ...

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the subscription ends; True if it ended before the timeout."""
        ...


class RealtimeTree(Protocol):
    """Protocol for a schema-less JSON tree addressed by slash-separated paths.

    There are no transactions and no server-side queries; reads return the
    whole subtree at a path.
    """

    def get(self, path: str, timeout: Optional[float] = None) -> Any:
        """Read the value at ``path`` (None when absent)."""
        ...

    def set(self, path: str, value: Any) -> None:
        """Replace the value at ``path``."""
        ...

    def push(self, path: str, value: Any) -> str:
        """Append ``value`` under ``path`` with a store-assigned key; return the key."""
        ...

    def generate_key(self, path: str) -> str:
        """Reserve a new child key under ``path`` without writing."""
        ...

    def delete(self, path: str) -> None:
        """Remove the value at ``path``."""
        ...

    def listen(self, path: str, callback: Callable[[Any], None]) -> Subscription:
        """Call ``callback`` with the current value at ``path`` and again on every change."""
        ...
