"""
Tests for the Geometry Utility Module

Tests Haversine distances and the radius filter.
"""

import pytest
import math
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from utils.geo import calculate_distance, filter_posts_in_radius, EARTH_RADIUS_METERS

BANGKOK = (13.7563, 100.5018)


class TestCalculateDistance:
    """Tests for calculate_distance()."""

    def test_same_point_is_zero(self):
        """Test that the distance from a point to itself is 0."""
        assert calculate_distance(*BANGKOK, *BANGKOK) == 0

    def test_symmetric(self):
        """Test that distance(A, B) equals distance(B, A)."""
        other = (13.7650, 100.5380)

        assert calculate_distance(*BANGKOK, *other) == pytest.approx(calculate_distance(*other, *BANGKOK))

    def test_one_degree_of_latitude(self):
        """Test that one degree along a meridian is R * pi / 180 meters."""
        expected = EARTH_RADIUS_METERS * math.pi / 180

        assert calculate_distance(0, 0, 1, 0) == pytest.approx(expected, rel=1e-9)

    def test_antipodal_points(self):
        """Test that opposite points are half the circumference apart."""
        assert calculate_distance(0, 0, 0, 180) == pytest.approx(EARTH_RADIUS_METERS * math.pi)

    def test_short_distance_in_meters(self):
        """Test that ~0.0009 degrees of latitude is roughly 100 meters."""
        distance = calculate_distance(13.7563, 100.5018, 13.7572, 100.5018)

        assert 95 < distance < 105


class TestFilterPostsInRadius:
    """Tests for filter_posts_in_radius()."""

    def test_keeps_post_at_distance_zero(self, post_factory):
        """Test that a post at the observer's location is included with distance 0."""
        post = post_factory(post_id="here")

        result = filter_posts_in_radius(*BANGKOK, [post], 100)

        assert len(result) == 1
        assert result[0].post is post
        assert result[0].distance == 0

    def test_excludes_posts_beyond_radius(self, post_factory):
        """Test that posts farther than the radius are dropped."""
        far = post_factory(post_id="far", latitude=13.7663)

        assert filter_posts_in_radius(*BANGKOK, [far], 100) == []

    def test_sorted_nearest_first(self, post_factory):
        """Test that results are ordered by ascending distance."""
        posts = [
            post_factory(post_id="b", latitude=13.7570),
            post_factory(post_id="a", latitude=13.7564),
            post_factory(post_id="c", latitude=13.7575),
        ]

        result = filter_posts_in_radius(*BANGKOK, posts, 500)

        assert [item.post.id for item in result] == ["a", "b", "c"]
        assert [item.distance for item in result] == sorted(item.distance for item in result)

    def test_radius_is_inclusive(self, post_factory):
        """Test that a post exactly on the radius boundary is kept."""
        post = post_factory(post_id="edge", latitude=13.7572)
        distance = calculate_distance(*BANGKOK, post.latitude, post.longitude)

        result = filter_posts_in_radius(*BANGKOK, [post], distance)

        assert len(result) == 1

    def test_empty_input(self):
        """Test that no candidates means no results."""
        assert filter_posts_in_radius(*BANGKOK, [], 1000) == []
