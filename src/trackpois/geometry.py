"""
Geographic value types, the track geometry variant and bounding boxes.

GeoJSON stores positions as (longitude, latitude). Positions are converted to
GeoPoint exactly once, in geometry_from_geojson; everything downstream works
with named latitude/longitude fields.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union
from math import cos, isfinite, radians
import logging

from .errors import CoordinateRangeError, InvalidGeometryError

logger = logging.getLogger(__name__)

# 1 degree latitude ≈ 111 km
METERS_PER_DEGREE = 111000.0


@dataclass(frozen=True)
class GeoPoint:
    """Represents a geographic position with latitude and longitude."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (isfinite(self.latitude) and isfinite(self.longitude)):
            raise CoordinateRangeError(
                f"Non-finite coordinate ({self.latitude}, {self.longitude})"
            )
        if not -90.0 <= self.latitude <= 90.0:
            raise CoordinateRangeError(f"Latitude {self.latitude} out of range")
        if not -180.0 <= self.longitude <= 180.0:
            raise CoordinateRangeError(f"Longitude {self.longitude} out of range")

    @classmethod
    def from_lon_lat(cls, longitude: float, latitude: float) -> "GeoPoint":
        """Build a GeoPoint from a (longitude, latitude) storage-order pair."""
        return cls(latitude=float(latitude), longitude=float(longitude))

    def to_lon_lat(self) -> List[float]:
        return [self.longitude, self.latitude]


class BoundingBox(NamedTuple):
    """Axis-aligned latitude/longitude envelope."""

    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    def buffered(self, buffer: float) -> "BoundingBox":
        """
        Grow the bounding box by an approximate buffer.

        Args:
            buffer: Buffer distance in meters

        Returns:
            New BoundingBox clamped to valid coordinate ranges
        """
        if buffer <= 0.0:
            return self

        # Longitude degrees shrink with latitude, use the centre of the box
        avg_lat = (self.min_lat + self.max_lat) / 2
        lat_buffer = buffer / METERS_PER_DEGREE
        lon_buffer = buffer / (METERS_PER_DEGREE * max(abs(cos(radians(avg_lat))), 1e-6))

        buffered_box = BoundingBox(
            min_lat=max(-90.0, self.min_lat - lat_buffer),
            min_lon=max(-180.0, self.min_lon - lon_buffer),
            max_lat=min(90.0, self.max_lat + lat_buffer),
            max_lon=min(180.0, self.max_lon + lon_buffer),
        )
        logger.debug(
            f"Buffered bounding box by {buffer}m: ({buffered_box.min_lat:.4f}, "
            f"{buffered_box.min_lon:.4f}, {buffered_box.max_lat:.4f}, {buffered_box.max_lon:.4f})"
        )
        return buffered_box

    def as_south_west_north_east(self) -> Tuple[float, float, float, float]:
        """Return the box in the (south, west, north, east) order Overpass expects."""
        return (self.min_lat, self.min_lon, self.max_lat, self.max_lon)

    def center(self) -> GeoPoint:
        return GeoPoint(
            latitude=(self.min_lat + self.max_lat) / 2,
            longitude=(self.min_lon + self.max_lon) / 2,
        )


@dataclass(frozen=True)
class PointGeometry:
    """A single position. ``point`` is None for an empty GeoJSON Point."""

    point: Optional[GeoPoint]


@dataclass(frozen=True)
class LineStringGeometry:
    """An open path, vertices in travel order."""

    points: Tuple[GeoPoint, ...]


@dataclass(frozen=True)
class PolygonGeometry:
    """A polygon given as its rings, exterior ring first."""

    rings: Tuple[Tuple[GeoPoint, ...], ...]


Geometry = Union[PointGeometry, LineStringGeometry, PolygonGeometry]


def geometry_vertices(geometry: Geometry) -> Tuple[GeoPoint, ...]:
    """
    Flatten a geometry into its vertices.

    Args:
        geometry: Point, LineString or Polygon geometry

    Returns:
        All vertices; for polygons, the vertices of every ring

    Raises:
        TypeError: If geometry is not one of the supported variants
    """
    if isinstance(geometry, PointGeometry):
        return () if geometry.point is None else (geometry.point,)
    if isinstance(geometry, LineStringGeometry):
        return geometry.points
    if isinstance(geometry, PolygonGeometry):
        return tuple(point for ring in geometry.rings for point in ring)
    raise TypeError(f"Unsupported geometry: {type(geometry).__name__}")


def bounding_box_of_points(points: Sequence[GeoPoint]) -> Optional[BoundingBox]:
    """
    Calculate the minimal bounding box enclosing a sequence of points.

    Returns:
        BoundingBox, or None if there are no points
    """
    if not points:
        return None

    first = points[0]
    min_lat = max_lat = first.latitude
    min_lon = max_lon = first.longitude

    for point in points[1:]:
        min_lat = min(min_lat, point.latitude)
        max_lat = max(max_lat, point.latitude)
        min_lon = min(min_lon, point.longitude)
        max_lon = max(max_lon, point.longitude)

    return BoundingBox(min_lat, min_lon, max_lat, max_lon)


def bounding_box(geometry: Geometry) -> Optional[BoundingBox]:
    """
    Calculate the bounding box covering every vertex of a geometry.

    Args:
        geometry: Point, LineString or Polygon geometry

    Returns:
        BoundingBox, or None when the geometry yields no coordinates
    """
    bbox = bounding_box_of_points(geometry_vertices(geometry))
    if bbox is None:
        logger.debug(f"{type(geometry).__name__} has no coordinates")
    return bbox


def _parse_position(position: Any) -> Optional[GeoPoint]:
    """Convert one GeoJSON [lon, lat, ...] position, or None if it is too short."""
    if not isinstance(position, (list, tuple)):
        raise InvalidGeometryError(f"Position must be an array, got {position!r}")
    if len(position) < 2:
        return None
    lon, lat = position[0], position[1]
    for value in (lon, lat):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidGeometryError(f"Non-numeric coordinate in {position!r}")
    return GeoPoint.from_lon_lat(lon, lat)


def _parse_positions(positions: Any) -> Tuple[GeoPoint, ...]:
    if positions is None:
        return ()
    if not isinstance(positions, (list, tuple)):
        raise InvalidGeometryError(f"Coordinates must be an array, got {positions!r}")
    points = (_parse_position(position) for position in positions)
    return tuple(point for point in points if point is not None)


def geometry_from_geojson(obj: Mapping[str, Any]) -> Geometry:
    """
    Parse a GeoJSON Feature or geometry object into a Geometry.

    Positions with fewer than two values are skipped, so a malformed geometry
    may come back with zero vertices rather than failing.

    Args:
        obj: GeoJSON mapping (a Feature or a Point/LineString/Polygon geometry)

    Returns:
        The parsed geometry

    Raises:
        InvalidGeometryError: On unsupported types or non-numeric coordinates
        CoordinateRangeError: On out-of-range coordinates
    """
    if not isinstance(obj, Mapping):
        raise InvalidGeometryError(f"GeoJSON object must be a mapping, got {obj!r}")
    if obj.get("type") == "Feature":
        geometry = obj.get("geometry")
        if not isinstance(geometry, Mapping):
            raise InvalidGeometryError("Feature has no geometry")
        obj = geometry

    geom_type = obj.get("type")
    coordinates = obj.get("coordinates")

    if geom_type == "Point":
        if not coordinates:
            return PointGeometry(None)
        return PointGeometry(_parse_position(coordinates))
    if geom_type == "LineString":
        return LineStringGeometry(_parse_positions(coordinates))
    if geom_type == "Polygon":
        if coordinates is None:
            return PolygonGeometry(())
        if not isinstance(coordinates, (list, tuple)):
            raise InvalidGeometryError("Polygon coordinates must be an array of rings")
        return PolygonGeometry(tuple(_parse_positions(ring) for ring in coordinates))

    raise InvalidGeometryError(f"Unsupported geometry type: {geom_type!r}")


def geometry_to_geojson(geometry: Geometry) -> Dict[str, Any]:
    """Serialize a Geometry back to a GeoJSON geometry mapping."""
    if isinstance(geometry, PointGeometry):
        coordinates: Any = [] if geometry.point is None else geometry.point.to_lon_lat()
        return {"type": "Point", "coordinates": coordinates}
    if isinstance(geometry, LineStringGeometry):
        return {
            "type": "LineString",
            "coordinates": [point.to_lon_lat() for point in geometry.points],
        }
    if isinstance(geometry, PolygonGeometry):
        return {
            "type": "Polygon",
            "coordinates": [
                [point.to_lon_lat() for point in ring] for ring in geometry.rings
            ],
        }
    raise TypeError(f"Unsupported geometry: {type(geometry).__name__}")
