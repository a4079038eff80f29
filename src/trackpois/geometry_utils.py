#!/usr/bin/env python3
"""
Distance calculation utilities for track analysis.

Segment projection finds the projection fraction with a planar approximation
in raw latitude/longitude space and then measures the great-circle distance to
the projected point. This is accurate for track segments of tens to hundreds
of meters; it degrades for segments of several kilometers, near the poles and
across the antimeridian.
"""

from typing import List, NamedTuple, Sequence
import logging
import math

from .geometry import GeoPoint

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6371000.0

# Segments shorter than this are treated as a single point
DEGENERATE_SEGMENT_METERS = 1.0


class SegmentProjection(NamedTuple):
    """Where a point projects onto a segment and how far away it is."""

    fraction: float  # 0 at segment start, 1 at segment end
    distance: float  # meters from the point to its projection


def haversine_distance(pos1: GeoPoint, pos2: GeoPoint) -> float:
    """
    Calculate the haversine distance between two positions.

    Args:
        pos1: First position
        pos2: Second position

    Returns:
        Distance in meters
    """
    lat1, lon1 = math.radians(pos1.latitude), math.radians(pos1.longitude)
    lat2, lon2 = math.radians(pos2.latitude), math.radians(pos2.longitude)

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    )
    # Rounding can push a a hair above 1 for antipodal points
    c = 2 * math.asin(math.sqrt(min(1.0, a)))

    return EARTH_RADIUS_METERS * c


def calculate_cumulative_distances(points: Sequence[GeoPoint]) -> List[float]:
    """
    Calculate cumulative distances along a track.

    Args:
        points: Track vertices in travel order

    Returns:
        List of cumulative distances in meters, with same length as points
    """
    if not points:
        return []

    cumulative_distances = [0.0]

    for i in range(1, len(points)):
        segment_distance = haversine_distance(points[i - 1], points[i])
        cumulative_distances.append(cumulative_distances[-1] + segment_distance)

    return cumulative_distances


def point_to_segment_projection(
    point: GeoPoint, seg_start: GeoPoint, seg_end: GeoPoint
) -> SegmentProjection:
    """
    Project a point onto a segment and measure the distance to the projection.

    The fraction is t = ((P-S) · (E-S)) / |E-S|², treating (latitude,
    longitude) as Cartesian components, clamped to [0, 1].

    Args:
        point: Point to measure distance from
        seg_start: Start of the segment
        seg_end: End of the segment

    Returns:
        SegmentProjection of (fraction, distance in meters)
    """
    if haversine_distance(seg_start, seg_end) < DEGENERATE_SEGMENT_METERS:
        to_start = haversine_distance(point, seg_start)
        to_end = haversine_distance(point, seg_end)
        if to_start <= to_end:
            return SegmentProjection(0.0, to_start)
        return SegmentProjection(1.0, to_end)

    d_lat = seg_end.latitude - seg_start.latitude
    d_lon = seg_end.longitude - seg_start.longitude
    p_lat = point.latitude - seg_start.latitude
    p_lon = point.longitude - seg_start.longitude

    t = (p_lat * d_lat + p_lon * d_lon) / (d_lat * d_lat + d_lon * d_lon)
    t = max(0.0, min(1.0, t))

    # Snap to the exact endpoints so endpoint projections carry no rounding
    if t == 0.0:
        closest = seg_start
    elif t == 1.0:
        closest = seg_end
    else:
        closest = GeoPoint(
            latitude=min(90.0, max(-90.0, seg_start.latitude + t * d_lat)),
            longitude=min(180.0, max(-180.0, seg_start.longitude + t * d_lon)),
        )

    return SegmentProjection(t, haversine_distance(point, closest))
