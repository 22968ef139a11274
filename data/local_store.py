"""
Local Key-Value Storage Module

Device-local storage for Yuni: a small string-keyed store persisted as one
JSON document, and the post backend built on it. Posts are kept as a single
serialized list under ``yuni_posts`` and users under ``yuni_users``.
"""

import json
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from data.models import Post, PostWithDistance, User, CreateUserData
from services.post_lifecycle import is_expired, filter_live
from utils.exceptions import StorageError
from utils.geo import filter_posts_in_radius
from utils.helpers import ensure_dir_exists, generate_push_id, utc_now
from utils.logger import get_logger

logger = get_logger(__name__)

POSTS_KEY = "yuni_posts"
USERS_KEY = "yuni_users"


class LocalKeyValueStore:
    """String-keyed storage persisted as a JSON object on disk.

    With ``path=None`` the data only lives in memory, which is what tests use.
    Values are stored as strings, the way device key-value storage works;
    callers serialize structured values themselves.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._data: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._data is not None:
            return self._data

        if self.path and os.path.exists(self.path):
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
            except (OSError, ValueError) as e:
                raise StorageError(f"Cannot read local storage {self.path}: {e}") from e
            if not isinstance(loaded, dict):
                raise StorageError(f"Local storage {self.path} is not a JSON object")
            self._data = {str(k): str(v) for k, v in loaded.items()}
        else:
            self._data = {}
        return self._data

    def _commit(self, data: Dict[str, str]) -> None:
        """Write data to disk and only then make it the cached state."""
        if self.path:
            self._flush(data)
        self._data = data

    def _flush(self, data: Dict[str, str]) -> None:
        try:
            ensure_dir_exists(os.path.dirname(os.path.abspath(self.path)))
            tmp_path = self.path + ".tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Cannot write local storage {self.path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = dict(self._load())
        data[key] = value
        self._commit(data)

    def remove_item(self, key: str) -> None:
        self.multi_remove([key])

    def multi_remove(self, keys: List[str]) -> None:
        data = dict(self._load())
        for key in keys:
            data.pop(key, None)
        self._commit(data)

    def get_all_keys(self) -> List[str]:
        return list(self._load().keys())

    def clear(self) -> None:
        self._commit({})

    # JSON helpers ------------------------------------------------------------

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            raise StorageError(f"Corrupt value under {key}: {e}") from e

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value, ensure_ascii=False))


class LocalPostStore:
    """Post and user backend over a LocalKeyValueStore."""

    name = "local"

    def __init__(self, store: LocalKeyValueStore):
        self.store = store

    def _load_posts(self) -> List[Post]:
        records = self.store.get_json(POSTS_KEY, [])
        posts = []
        for record in records:
            try:
                posts.append(Post.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed post record in local storage: {e}")
        return posts

    def _save_posts(self, posts: List[Post]) -> None:
        self.store.set_json(POSTS_KEY, [post.to_dict() for post in posts])

    def create_post(self, post: Post) -> Post:
        if not post.id:
            post.id = generate_push_id(post.timestamp or None)

        posts = self._load_posts()
        posts.append(post)
        self._save_posts(posts)
        logger.info(f"Post {post.id} saved to local storage")
        return post

    def get_posts_in_radius(
        self,
        latitude: float,
        longitude: float,
        radius_meters: float,
        now: datetime
    ) -> List[PostWithDistance]:
        live_posts = filter_live(self._load_posts(), now)
        nearby = filter_posts_in_radius(latitude, longitude, live_posts, radius_meters)
        logger.info(f"Found {len(nearby)} posts within {radius_meters}m radius in local storage")
        return nearby

    def delete_post(self, post_id: str) -> None:
        posts = self._load_posts()
        remaining = [post for post in posts if post.id != post_id]
        if len(remaining) != len(posts):
            self._save_posts(remaining)

    def delete_expired_posts(self, now: datetime) -> int:
        posts = self._load_posts()
        remaining = [post for post in posts if not is_expired(post, now)]
        deleted = len(posts) - len(remaining)
        if deleted > 0:
            self._save_posts(remaining)
            logger.info(f"Cleaned up {deleted} expired posts from local storage")
        return deleted

    # Users -------------------------------------------------------------------

    def _load_users(self) -> List[User]:
        return [User.from_dict(record) for record in self.store.get_json(USERS_KEY, [])]

    def add_user(self, user_data: CreateUserData) -> User:
        """Store the user of a device, replacing an earlier record for the same device."""
        users = [u for u in self._load_users() if u.device_id != user_data.device_id]
        user = User(username=user_data.username, device_id=user_data.device_id, created_at=utc_now())
        users.append(user)
        self.store.set_json(USERS_KEY, [u.to_dict() for u in users])
        logger.info(f"User {user.username} added to local storage")
        return user

    def get_user(self, device_id: str) -> Optional[User]:
        for user in self._load_users():
            if user.device_id == device_id:
                return user
        return None

    def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self._load_users():
            if user.username == username:
                return user
        return None
