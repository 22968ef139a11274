"""
Post Lifecycle Module

Assigns the expiry of new posts and decides which posts are still live.
The same comparison is used by the read filter and by the sweep, so a post
removed by a sweep is never returned by a read made at the same instant.
"""

from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from config import settings
from data.models import CreatePostData, Post
from utils.helpers import utc_now, to_epoch_ms, truncate_to_ms

Clock = Callable[[], datetime]


class PostLifecycle:
    """Fixed time-to-live policy for posts."""

    def __init__(self, ttl: Optional[timedelta] = None, clock: Optional[Clock] = None):
        """
        Initialize the policy.

        Args:
            ttl: Lifetime of a post, defaults to settings.POST_TTL_MINUTES
            clock: Callable returning the current aware UTC datetime
        """
        self.ttl = ttl if ttl is not None else timedelta(minutes=settings.POST_TTL_MINUTES)
        if self.ttl <= timedelta(0):
            raise ValueError("Post TTL must be positive")
        self.clock = clock or utc_now

    def now(self) -> datetime:
        return self.clock()

    def build_post(self, data: CreatePostData, post_id: str = "") -> Post:
        """
        Create the stored form of a new post, stamped with creation and expiry times.

        Args:
            data: Validated user input
            post_id: Identifier, usually left empty for the backend to assign

        Returns:
            Post: The new post, ``expires_at`` strictly after ``created_at``
        """
        created_at = truncate_to_ms(self.now())
        return Post(
            id=post_id,
            username=data.username,
            content=data.content,
            latitude=float(data.latitude),
            longitude=float(data.longitude),
            created_at=created_at,
            expires_at=created_at + self.ttl,
            timestamp=to_epoch_ms(created_at),
            image_uri=data.image_uri or None,
        )


def is_expired(post: Post, now: datetime) -> bool:
    """A post is expired at and after its expiry timestamp."""
    return post.expires_at <= now


def is_live(post: Post, now: datetime) -> bool:
    return not is_expired(post, now)


def filter_live(posts: Iterable[Post], now: datetime) -> List[Post]:
    """Drop expired posts without mutating anything."""
    return [post for post in posts if is_live(post, now)]
