"""
Geometry Utility Module

Great-circle distance and the radius filter used by every post backend.
Every query is a linear scan over the candidate posts.
"""

import math
from typing import Iterable, List

from data.models import Post, PostWithDistance

EARTH_RADIUS_METERS = 6371000


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Compute the distance in meters between two points with the Haversine formula.

    Args:
        lat1: Latitude of the first point in degrees
        lon1: Longitude of the first point in degrees
        lat2: Latitude of the second point in degrees
        lon2: Longitude of the second point in degrees

    Returns:
        float: Great-circle distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (math.sin(d_phi / 2) ** 2
         + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2)
    # rounding can push a a hair past 1 for antipodal points
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def filter_posts_in_radius(
    latitude: float,
    longitude: float,
    posts: Iterable[Post],
    radius_meters: float
) -> List[PostWithDistance]:
    """
    Keep the posts within ``radius_meters`` of a point, nearest first.

    Args:
        latitude: Observer latitude
        longitude: Observer longitude
        posts: Candidate posts (already filtered for expiry by the caller)
        radius_meters: Inclusive radius

    Returns:
        List[PostWithDistance]: Matching posts with their distance, sorted ascending
    """
    nearby = []
    for post in posts:
        distance = calculate_distance(latitude, longitude, post.latitude, post.longitude)
        if distance <= radius_meters:
            nearby.append(PostWithDistance(post=post, distance=distance))

    nearby.sort(key=lambda item: item.distance)
    return nearby
