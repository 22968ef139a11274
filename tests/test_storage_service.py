"""
Tests for the Device Storage Service

Tests the device user record, device id generation, and stored flags.
"""

import pytest
import re
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.models import CreateUserData
from services.storage_service import (
    DeviceStorage, USER_KEY, USERNAME_KEY, DEVICE_ID_KEY, LOCATION_PERMISSION_KEY,
)
from utils.exceptions import ValidationFailedError


@pytest.fixture
def device(kv_store, fake_clock):
    return DeviceStorage(kv_store, clock=fake_clock)


class TestDeviceId:
    """Tests for device id generation and lookup."""

    def test_generated_format(self, device):
        """Test the device_<base36 time>_<random> shape."""
        assert re.fullmatch(r"device_[0-9a-z]+_[0-9a-z]{11}", device.generate_device_id())

    def test_get_device_id_created_once(self, device, kv_store):
        """Test that the id is generated on first use and then reused."""
        first = device.get_device_id()

        assert device.get_device_id() == first
        assert kv_store.get_item(DEVICE_ID_KEY) == first


class TestUserRecord:
    """Tests for saving and reading the device user."""

    def test_save_and_get_user(self, device, fake_clock):
        """Test that a saved user reads back with the username and device id keys set."""
        device.save_user(CreateUserData(username="alice", device_id="device_1"))

        user = device.get_user()
        assert (user.username, user.device_id, user.created_at) == ("alice", "device_1", fake_clock())
        assert device.get_username() == "alice"
        assert device.has_user_data()

    def test_save_rejects_invalid(self, device, kv_store):
        """Test that invalid user data is refused without writing."""
        with pytest.raises(ValidationFailedError):
            device.save_user(CreateUserData(username="a b", device_id="device_1"))

        assert kv_store.get_item(USER_KEY) is None

    def test_no_user(self, device):
        """Test that a fresh device has no user."""
        assert device.get_user() is None
        assert device.get_username() is None
        assert not device.has_user_data()

    def test_update_username_keeps_device(self, device):
        """Test that renaming keeps the device id."""
        device.save_user(CreateUserData(username="alice", device_id="device_1"))

        device.update_username("alice_2")

        assert device.get_user().username == "alice_2"
        assert device.get_device_id() == "device_1"

    def test_update_username_validates(self, device):
        """Test that an invalid new username is refused."""
        with pytest.raises(ValidationFailedError):
            device.update_username("x")

    def test_clear_user_data_keeps_flags(self, device, kv_store):
        """Test that clearing the user leaves other keys alone."""
        device.save_user(CreateUserData(username="alice", device_id="device_1"))
        device.set_first_launch()

        device.clear_user_data()

        assert device.get_user() is None
        assert kv_store.get_item(USERNAME_KEY) is None
        assert not device.is_first_launch()

    def test_clear_all_data(self, device, kv_store):
        """Test that clearing everything empties the store."""
        device.save_user(CreateUserData(username="alice", device_id="device_1"))

        device.clear_all_data()

        assert kv_store.get_all_keys() == []


class TestFlags:
    """Tests for first-launch and permission flags."""

    def test_first_launch(self, device):
        """Test that first launch is true until set."""
        assert device.is_first_launch()

        device.set_first_launch()

        assert not device.is_first_launch()

    def test_permission_status(self, device):
        """Test storing and reading a permission flag."""
        assert device.get_permission_status(LOCATION_PERMISSION_KEY) is False

        device.save_permission_status(LOCATION_PERMISSION_KEY, True)
        assert device.get_permission_status(LOCATION_PERMISSION_KEY) is True

        device.save_permission_status(LOCATION_PERMISSION_KEY, False)
        assert device.get_permission_status(LOCATION_PERMISSION_KEY) is False


class TestInspection:
    """Tests for get_all_data() and get_storage_info()."""

    def test_get_all_data_decodes_json(self, device):
        """Test that JSON values are decoded and plain strings kept."""
        device.save_user(CreateUserData(username="alice", device_id="device_1"))

        data = device.get_all_data()

        assert data[USER_KEY]["username"] == "alice"
        assert data[USERNAME_KEY] == "alice"

    def test_storage_info_counts_characters(self, device, kv_store):
        """Test that used is the total length of stored values."""
        kv_store.set_item("a", "12345")
        kv_store.set_item("b", "678")

        assert device.get_storage_info() == {"used": 8, "available": 0}
