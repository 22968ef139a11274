"""
Remote Post Store Module

Post backend over the realtime database tree. Posts live at ``posts/{id}``
as flat records; their chat threads hang off the same node under
``messages``.
"""

from datetime import datetime
from typing import Any, List, Optional

from config import settings
from data.models import Post, PostWithDistance
from data.protocols import RealtimeTree
from services.post_lifecycle import filter_live, is_expired
from utils.exceptions import NetworkError
from utils.geo import filter_posts_in_radius
from utils.logger import get_logger

logger = get_logger(__name__)

POSTS_PATH = "posts"


class RemotePostStore:
    """Post backend over a RealtimeTree with a last-snapshot read cache."""

    name = "remote"

    def __init__(self, tree: RealtimeTree, read_timeout: Optional[float] = None):
        """
        Initialize the store.

        Args:
            tree: Realtime tree client (Firebase or in-memory)
            read_timeout: Seconds a feed read may take, defaults to settings.REMOTE_READ_TIMEOUT
        """
        self.tree = tree
        self.read_timeout = read_timeout if read_timeout is not None else settings.REMOTE_READ_TIMEOUT
        self._snapshot: Optional[List[Post]] = None

    def _parse_posts(self, raw: Any) -> List[Post]:
        if not raw:
            return []
        if not isinstance(raw, dict):
            logger.warning(f"Unexpected value at {POSTS_PATH}: {type(raw).__name__}")
            return []

        posts = []
        for key, record in raw.items():
            if not isinstance(record, dict):
                continue
            try:
                posts.append(Post.from_dict(record, post_id=key))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed remote post {key}: {e}")
        return posts

    def _fetch_posts(self) -> List[Post]:
        """
        Read the whole posts collection, falling back to the last good snapshot.

        Raises:
            NetworkError: When the read fails and nothing has been cached yet.
        """
        try:
            posts = self._parse_posts(self.tree.get(POSTS_PATH, timeout=self.read_timeout))
        except NetworkError as e:
            if self._snapshot is None:
                raise
            logger.warning(f"Remote read failed, serving cached snapshot: {e}")
            return list(self._snapshot)

        self._snapshot = list(posts)
        return posts

    def create_post(self, post: Post) -> Post:
        if not post.id:
            post.id = self.tree.generate_key(POSTS_PATH)
        self.tree.set(f"{POSTS_PATH}/{post.id}", post.to_dict())

        if self._snapshot is not None:
            self._snapshot.append(post)
        logger.info(f"Post {post.id} saved to remote database")
        return post

    def get_posts_in_radius(
        self,
        latitude: float,
        longitude: float,
        radius_meters: float,
        now: datetime
    ) -> List[PostWithDistance]:
        live_posts = filter_live(self._fetch_posts(), now)
        nearby = filter_posts_in_radius(latitude, longitude, live_posts, radius_meters)
        logger.info(f"Found {len(nearby)} posts within {radius_meters}m radius in remote database")
        return nearby

    def delete_post(self, post_id: str) -> None:
        self.tree.delete(f"{POSTS_PATH}/{post_id}")
        if self._snapshot is not None:
            self._snapshot = [post for post in self._snapshot if post.id != post_id]

    def delete_expired_posts(self, now: datetime) -> int:
        posts = self._parse_posts(self.tree.get(POSTS_PATH, timeout=self.read_timeout))
        expired = [post for post in posts if is_expired(post, now)]
        for post in expired:
            self.tree.delete(f"{POSTS_PATH}/{post.id}")

        if self._snapshot is not None:
            self._snapshot = [post for post in self._snapshot if not is_expired(post, now)]
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired posts from remote database")
        return len(expired)
