#!/usr/bin/env python3
"""
Loading tracks from CSV, GeoJSON and GPX files.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple
import json
import logging
import os

import gpxpy
import gpxpy.gpx

from .errors import InvalidGeometryError
from .geometry import (
    BoundingBox,
    GeoPoint,
    Geometry,
    LineStringGeometry,
    bounding_box,
    geometry_from_geojson,
    geometry_to_geojson,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Track:
    """A single input track and its GeoJSON properties."""

    track_id: str
    geometry: Geometry
    properties: Mapping[str, Any] = field(default_factory=dict)

    @property
    def path(self) -> Tuple[GeoPoint, ...]:
        """Vertices in travel order, or () when the geometry is not a LineString."""
        if isinstance(self.geometry, LineStringGeometry):
            return self.geometry.points
        return ()

    def get_bbox(self, buffer: float = 0.0) -> Optional[BoundingBox]:
        """Bounding box of the track, optionally buffered by buffer meters."""
        bbox = bounding_box(self.geometry)
        if bbox is None:
            return None
        return bbox.buffered(buffer)

    def to_geojson(self) -> Dict[str, Any]:
        """Serialize as a GeoJSON Feature."""
        return {
            "type": "Feature",
            "id": self.track_id,
            "properties": dict(self.properties),
            "geometry": geometry_to_geojson(self.geometry),
        }

    @classmethod
    def from_geojson(cls, track_id: str, obj: Mapping[str, Any]) -> "Track":
        """
        Build a track from a GeoJSON Feature or bare geometry.

        Raises:
            InvalidGeometryError: If the geometry is malformed
        """
        properties = obj.get("properties") if obj.get("type") == "Feature" else None
        return cls(
            track_id=track_id,
            geometry=geometry_from_geojson(obj),
            properties=dict(properties or {}),
        )


def load_tracks_csv(filename: str) -> List[Track]:
    """
    Load tracks from a CSV file with one "id,<GeoJSON>" record per line.

    The line is split on the first comma only, so the GeoJSON may contain
    commas. Blank lines are ignored; malformed lines are logged and skipped.

    Raises:
        FileNotFoundError: If file doesn't exist.
        PermissionError: If file can't be read.
    """
    logger.debug(f"Reading track CSV file: {filename}")
    tracks = []

    with open(filename, "r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue

            parts = line.split(",", 1)
            if len(parts) < 2:
                logger.warning(f"Invalid line format at line {line_number}: {line[:80]}")
                continue

            track_id, geojson_text = parts[0].strip(), parts[1]
            try:
                tracks.append(Track.from_geojson(track_id, json.loads(geojson_text)))
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid GeoJSON for track {track_id} at line {line_number}: {e}")
            except InvalidGeometryError as e:
                logger.warning(f"Invalid geometry for track {track_id} at line {line_number}: {e}")

    logger.debug(f"Parsed {len(tracks)} tracks from CSV file")
    return tracks


def load_tracks_geojson(filename: str) -> List[Track]:
    """
    Load tracks from a GeoJSON FeatureCollection, Feature or bare geometry.

    Track ids come from the feature "id", then properties["id"], then the
    feature's index in the collection.

    Raises:
        FileNotFoundError: If file doesn't exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    logger.debug(f"Reading GeoJSON file: {filename}")
    with open(filename, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict) and data.get("type") == "FeatureCollection":
        features = data.get("features") or []
    else:
        features = [data]

    tracks = []
    for index, feature in enumerate(features):
        if not isinstance(feature, dict):
            logger.warning(f"Skipping feature {index}: not a JSON object")
            continue
        properties = feature.get("properties") or {}
        track_id = feature.get("id")
        if track_id is None:
            track_id = properties.get("id", index)
        try:
            tracks.append(Track.from_geojson(str(track_id), feature))
        except InvalidGeometryError as e:
            logger.warning(f"Invalid geometry for track {track_id}: {e}")

    logger.debug(f"Parsed {len(tracks)} tracks from GeoJSON file")
    return tracks


def load_track_gpx(filename: str) -> Track:
    """
    Parse a GPX file and concatenate all tracks/segments into a single track.

    Raises:
        FileNotFoundError: If file doesn't exist.
        gpxpy.gpx.GPXException: If GPX file is malformed.
        CoordinateRangeError: If a track point is out of range.
    """
    logger.debug(f"Reading GPX file: {filename}")
    with open(filename, "r", encoding="utf-8") as f:
        gpx_data = gpxpy.parse(f)

    points = []
    for gpx_track in gpx_data.tracks:
        for segment in gpx_track.segments:
            for point in segment.points:
                points.append(GeoPoint(latitude=point.latitude, longitude=point.longitude))

    track_name = next((t.name for t in gpx_data.tracks if t.name), None)
    if track_name is None:
        track_name = gpx_data.name or os.path.splitext(os.path.basename(filename))[0]

    logger.debug(f"Parsed {len(points)} track points from GPX file")
    return Track(track_id=track_name, geometry=LineStringGeometry(tuple(points)))


def load_tracks(filename: str) -> List[Track]:
    """Load tracks from a file, choosing the reader from its extension."""
    extension = os.path.splitext(filename)[1].lower()
    if extension == ".gpx":
        return [load_track_gpx(filename)]
    if extension in (".geojson", ".json"):
        return load_tracks_geojson(filename)
    return load_tracks_csv(filename)
