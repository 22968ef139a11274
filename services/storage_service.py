"""
Device Storage Service Module

Keeps the state that belongs to this device in the local key-value store:
the user record, the username, the device id, the first-launch flag and the
permission flags the user has granted.
"""

import json
import random
from typing import Any, Dict, Optional

from data.local_store import LocalKeyValueStore
from data.models import CreateUserData, User
from services.post_lifecycle import Clock
from services.validation_service import validate_create_user_data
from utils.exceptions import ValidationFailedError
from utils.helpers import BASE36_CHARS, to_base36, to_epoch_ms, parse_iso, utc_now
from utils.logger import get_logger

logger = get_logger(__name__)

USER_KEY = "yuni_user"
USERNAME_KEY = "yuni_username"
DEVICE_ID_KEY = "yuni_device_id"
FIRST_LAUNCH_KEY = "yuni_first_launch"
LOCATION_PERMISSION_KEY = "yuni_location_permission"
CAMERA_PERMISSION_KEY = "yuni_camera_permission"
PHOTO_LIBRARY_PERMISSION_KEY = "yuni_photo_library_permission"


class DeviceStorage:
    """Device-local user and preference storage."""

    def __init__(self, store: LocalKeyValueStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or utc_now

    def generate_device_id(self) -> str:
        """Return a new id of the form ``device_<base36 ms>_<random base36>``."""
        timestamp = to_base36(to_epoch_ms(self.clock()))
        suffix = "".join(random.choice(BASE36_CHARS) for _ in range(11))
        return f"device_{timestamp}_{suffix}"

    # =========================================================================
    # User record
    # =========================================================================

    def save_user(self, user_data: CreateUserData) -> User:
        """
        Validate and store the user of this device.

        Args:
            user_data: Username and device id

        Returns:
            User: The stored record

        Raises:
            ValidationFailedError: If the username or device id is invalid
        """
        result = validate_create_user_data(user_data)
        if not result.is_valid:
            raise ValidationFailedError(result.errors)

        user = User(username=user_data.username, device_id=user_data.device_id, created_at=self.clock())
        self.store.set_json(USER_KEY, user.to_dict())
        self.store.set_item(USERNAME_KEY, user.username)
        self.store.set_item(DEVICE_ID_KEY, user.device_id)
        logger.info(f"User data saved for {user.username}")
        return user

    def get_user(self) -> Optional[User]:
        record = self.store.get_json(USER_KEY)
        if not record:
            return None
        return User(
            username=record["username"],
            device_id=record["device_id"],
            created_at=parse_iso(record["created_at"]) if record.get("created_at") else self.clock(),
        )

    def get_username(self) -> Optional[str]:
        return self.store.get_item(USERNAME_KEY)

    def get_device_id(self) -> str:
        """Return this device's id, creating and storing one on first use."""
        device_id = self.store.get_item(DEVICE_ID_KEY)
        if not device_id:
            device_id = self.generate_device_id()
            self.store.set_item(DEVICE_ID_KEY, device_id)
            logger.info(f"Generated device id {device_id}")
        return device_id

    def has_user_data(self) -> bool:
        return self.get_username() is not None and bool(self.get_device_id())

    def update_username(self, new_username: str) -> User:
        """
        Change the username of this device's user.

        Raises:
            ValidationFailedError: If the new username is invalid
        """
        return self.save_user(CreateUserData(username=new_username, device_id=self.get_device_id()))

    def clear_user_data(self) -> None:
        self.store.multi_remove([USER_KEY, USERNAME_KEY, DEVICE_ID_KEY])
        logger.info("User data cleared")

    def clear_all_data(self) -> None:
        self.store.clear()
        logger.info("All local data cleared")

    # =========================================================================
    # Flags
    # =========================================================================

    def is_first_launch(self) -> bool:
        return self.store.get_item(FIRST_LAUNCH_KEY) is None

    def set_first_launch(self) -> None:
        self.store.set_item(FIRST_LAUNCH_KEY, "false")

    def save_permission_status(self, permission: str, status: bool) -> None:
        """Remember whether a permission (e.g. LOCATION_PERMISSION_KEY) was granted."""
        self.store.set_item(permission, "true" if status else "false")

    def get_permission_status(self, permission: str) -> bool:
        return self.store.get_item(permission) == "true"

    # =========================================================================
    # Inspection
    # =========================================================================

    def get_all_data(self) -> Dict[str, Any]:
        """Every stored key, with JSON values decoded where possible."""
        data = {}
        for key in self.store.get_all_keys():
            value = self.store.get_item(key)
            if not value:
                continue
            try:
                data[key] = json.loads(value)
            except ValueError:
                data[key] = value
        return data

    def get_storage_info(self) -> Dict[str, int]:
        """Characters used by stored values; the available space is not known."""
        used = 0
        for key in self.store.get_all_keys():
            value = self.store.get_item(key)
            if value:
                used += len(value)
        return {"used": used, "available": 0}
