"""
Post Service Module

This module is responsible for the post operations the application exposes:
- Validating and creating posts through the fallback chain
- Returning the feed of live posts around a location
- Sweeping expired posts before every feed read
- Deleting posts
"""

from typing import List, Optional

from config import settings
from data.models import CreatePostData, FieldError, Post, PostWithDistance
from services.fallback import FallbackChain
from services.post_lifecycle import PostLifecycle
from services.validation_service import validate_create_post_data, validate_location
from utils.exceptions import NetworkError, StorageError, ValidationFailedError
from utils.logger import get_logger

logger = get_logger(__name__)


class PostService:
    """Post operations over a FallbackChain of storage backends."""

    def __init__(self, chain: FallbackChain, lifecycle: Optional[PostLifecycle] = None):
        """
        Initialize the post service.

        Args:
            chain: Ordered storage backends
            lifecycle: TTL policy and clock; defaults to the configured TTL and the system clock
        """
        self.chain = chain
        self.lifecycle = lifecycle or PostLifecycle()

    def create_post(self, data: CreatePostData) -> Post:
        """
        Validate and store a new post.

        Args:
            data: User input for the post

        Returns:
            Post: The stored post with its assigned id

        Raises:
            ValidationFailedError: If the input is invalid; nothing is written
            StorageError: If every backend failed
        """
        result = validate_create_post_data(data)
        if not result.is_valid:
            logger.info(f"Rejected post from {data.username}: {len(result.errors)} validation errors")
            raise ValidationFailedError(result.errors)

        post = self.lifecycle.build_post(data)
        stored = self.chain.run("create_post", lambda backend: backend.create_post(post))
        logger.info(f"Created post {stored.id} by {stored.username}")
        return stored

    def get_nearby_posts(
        self,
        latitude: float,
        longitude: float,
        radius_meters: Optional[float] = None
    ) -> List[PostWithDistance]:
        """
        Get live posts around a location, nearest first.

        Expired posts are swept before the read; a failed sweep is logged and
        the read goes ahead.

        Args:
            latitude: Observer latitude
            longitude: Observer longitude
            radius_meters: Search radius, defaults to settings.DEFAULT_RADIUS_METERS

        Returns:
            List[PostWithDistance]: Posts with ``distance <= radius_meters``

        Raises:
            ValidationFailedError: If the location or radius is invalid
            StorageError: If every backend failed
        """
        if radius_meters is None:
            radius_meters = settings.DEFAULT_RADIUS_METERS

        errors = list(validate_location(latitude, longitude).errors)
        if isinstance(radius_meters, bool) or not isinstance(radius_meters, (int, float)) or not radius_meters > 0:
            errors.append(FieldError("radius", "Radius must be a positive number of meters", radius_meters))
        if errors:
            raise ValidationFailedError(errors)

        now = self.lifecycle.now()
        try:
            self.delete_expired_posts()
        except (StorageError, NetworkError) as e:
            logger.warning(f"Expired post sweep failed, continuing with read: {e}")

        return self.chain.run(
            "get_posts_in_radius",
            lambda backend: backend.get_posts_in_radius(latitude, longitude, radius_meters, now),
        )

    def delete_post(self, post_id: str) -> None:
        """
        Delete a post from the first backend that accepts the delete.

        Raises:
            StorageError: If every backend failed
        """
        self.chain.run("delete_post", lambda backend: backend.delete_post(post_id))
        logger.info(f"Deleted post {post_id}")

    def delete_expired_posts(self) -> int:
        """
        Sweep expired posts from the first backend that accepts the sweep.

        Returns:
            int: Number of posts removed
        """
        now = self.lifecycle.now()
        return self.chain.run("delete_expired_posts", lambda backend: backend.delete_expired_posts(now))
