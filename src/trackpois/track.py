#!/usr/bin/env python3
"""
Track geometry: vertices in travel order with memoized segment distances.
"""

from typing import List, NamedTuple, Sequence, Tuple
import logging

from .errors import InvalidGeometryError
from .geometry import BoundingBox, GeoPoint, bounding_box_of_points
from .geometry_utils import (
    calculate_cumulative_distances,
    haversine_distance,
    point_to_segment_projection,
)

logger = logging.getLogger(__name__)


class Projection(NamedTuple):
    """Where a point matches onto a track."""

    segment_index: int
    fraction: float
    perpendicular_distance: float  # meters from the point to the track
    cumulative_distance: float  # meters from the track start to the match


class TrackGeometry:
    """An ordered, non-empty sequence of track vertices."""

    def __init__(self, points: Sequence[GeoPoint]):
        """Initializes a TrackGeometry object.

        Args:
            points: Track vertices in travel order. The sequence is copied and
                never modified.

        Raises:
            InvalidGeometryError: If points is empty.
        """
        if not points:
            raise InvalidGeometryError("Track must have at least one vertex")

        self.points: Tuple[GeoPoint, ...] = tuple(points)
        self._cumulative: List[float] = calculate_cumulative_distances(self.points)
        self._bbox = bounding_box_of_points(self.points)
        self._warn_on_approximation_limits()

    def _warn_on_approximation_limits(self) -> None:
        """Log tracks where the planar segment projection is unreliable."""
        for i, point in enumerate(self.points):
            if abs(point.latitude) > 85.0:
                logger.warning(
                    f"Track point {i} at latitude {point.latitude:.3f}° is within "
                    f"5 degrees of a pole, positions along the track may be inaccurate"
                )
                break

        for i in range(1, len(self.points)):
            lon_diff = abs(self.points[i].longitude - self.points[i - 1].longitude)
            if lon_diff > 180.0:
                logger.warning(
                    f"Track crosses antimeridian between points {i-1} and {i} "
                    f"(longitude jump: {lon_diff:.3f}°)"
                )
                break

    def __len__(self) -> int:
        """Return number of vertices in the track."""
        return len(self.points)

    def __getitem__(self, index):
        return self.points[index]

    def __iter__(self):
        return iter(self.points)

    @property
    def segment_count(self) -> int:
        return max(0, len(self.points) - 1)

    @property
    def bbox(self) -> BoundingBox:
        # Non-empty by construction
        return self._bbox  # type: ignore[return-value]

    @property
    def total_length(self) -> float:
        """Track length in meters."""
        return self._cumulative[-1]

    def segment_length(self, index: int) -> float:
        """Great-circle length in meters of the segment starting at vertex index."""
        if not 0 <= index < self.segment_count:
            raise IndexError(f"Segment index {index} out of range")
        return self._cumulative[index + 1] - self._cumulative[index]

    def cumulative_distance(self, index: int) -> float:
        """Distance in meters along the track from the start to vertex index."""
        return self._cumulative[index]

    def project(self, point: GeoPoint) -> Projection:
        """
        Match a point to the nearest position on the track.

        Every segment is tried; on equal distances the earlier segment wins.

        Args:
            point: Point to match

        Returns:
            Projection with the perpendicular distance and the position along
            the track of the nearest point
        """
        if self.segment_count == 0:
            return Projection(0, 0.0, haversine_distance(point, self.points[0]), 0.0)

        best_index = 0
        best_fraction = 0.0
        best_distance = float("inf")

        for i in range(self.segment_count):
            fraction, distance = point_to_segment_projection(
                point, self.points[i], self.points[i + 1]
            )
            if distance < best_distance:
                best_index = i
                best_fraction = fraction
                best_distance = distance

        cumulative = (
            self.cumulative_distance(best_index)
            + best_fraction * self.segment_length(best_index)
        )
        return Projection(best_index, best_fraction, best_distance, cumulative)
