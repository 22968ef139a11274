"""
Tests for the Post Lifecycle Module

Tests expiry assignment and the liveness comparison shared by reads and sweeps.
"""

import pytest
from datetime import timedelta
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.post_lifecycle import PostLifecycle, is_expired, is_live, filter_live
from utils.helpers import to_epoch_ms


class TestBuildPost:
    """Tests for PostLifecycle.build_post()."""

    def test_stamps_creation_and_expiry(self, lifecycle, fake_clock, post_data_factory):
        """Test that expires_at is created_at plus the TTL."""
        post = lifecycle.build_post(post_data_factory())

        assert post.created_at == fake_clock()
        assert post.expires_at == fake_clock() + timedelta(hours=24)
        assert post.expires_at > post.created_at

    def test_timestamp_is_epoch_ms(self, lifecycle, fake_clock, post_data_factory):
        """Test that the numeric timestamp matches created_at."""
        post = lifecycle.build_post(post_data_factory())

        assert post.timestamp == to_epoch_ms(fake_clock())

    def test_copies_input_fields(self, lifecycle, post_data_factory):
        """Test that user input is carried over and the id left for the backend."""
        data = post_data_factory(username="bob", content="hi there", image_uri="https://x.io/a.png")

        post = lifecycle.build_post(data)

        assert post.id == ""
        assert (post.username, post.content, post.image_uri) == ("bob", "hi there", "https://x.io/a.png")

    def test_sub_millisecond_precision_dropped(self, fake_clock, post_data_factory):
        """Test that created_at is truncated to milliseconds."""
        fake_clock.advance(microseconds=1234)
        policy = PostLifecycle(ttl=timedelta(minutes=1), clock=fake_clock)

        post = policy.build_post(post_data_factory())

        assert post.created_at.microsecond == 1000

    def test_defaults_to_configured_ttl(self, mock_settings):
        """Test that the TTL comes from settings when not given."""
        mock_settings.POST_TTL_MINUTES = 30

        assert PostLifecycle().ttl == timedelta(minutes=30)

    @pytest.mark.parametrize("ttl", [timedelta(0), timedelta(minutes=-5)])
    def test_rejects_non_positive_ttl(self, ttl):
        """Test that a TTL of zero or less is refused."""
        with pytest.raises(ValueError):
            PostLifecycle(ttl=ttl)


class TestLiveness:
    """Tests for is_expired(), is_live() and filter_live()."""

    def test_live_before_expiry(self, post_factory):
        """Test that a post is live one millisecond before it expires."""
        post = post_factory()

        assert is_live(post, post.expires_at - timedelta(milliseconds=1))

    def test_expired_exactly_at_expiry(self, post_factory):
        """Test that a post is expired at its expiry instant."""
        post = post_factory()

        assert is_expired(post, post.expires_at)

    def test_expired_after_expiry(self, post_factory):
        """Test that a post stays expired afterwards."""
        post = post_factory()

        assert is_expired(post, post.expires_at + timedelta(days=1))

    def test_filter_live(self, post_factory, fake_clock):
        """Test that filter_live keeps only unexpired posts without mutating them."""
        old = post_factory(post_id="old")
        fake_clock.advance(hours=12)
        new = post_factory(post_id="new")
        now = fake_clock.advance(hours=13)

        result = filter_live([old, new], now)

        assert [p.id for p in result] == ["new"]
        assert old.id == "old"
