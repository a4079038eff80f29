#!/usr/bin/env python3
"""
trackpois - points of interest along a track.

This package selects, from OpenStreetMap points of interest around a track,
the ones close enough to the track to matter, drops near-duplicates and
returns them in the order a traveller meets them.
"""
import importlib.metadata

__version__ = importlib.metadata.version("trackpois")

# Import main classes for public API
from .candidate import Candidate
from .errors import CoordinateRangeError, InvalidGeometryError, TrackPoisError
from .geometry import (
    BoundingBox,
    GeoPoint,
    LineStringGeometry,
    PointGeometry,
    PolygonGeometry,
    bounding_box,
)
from .proximity import ProximityFilter, SelectionResult, select
from .track import Projection, TrackGeometry

__all__ = [
    "BoundingBox",
    "Candidate",
    "CoordinateRangeError",
    "GeoPoint",
    "InvalidGeometryError",
    "LineStringGeometry",
    "PointGeometry",
    "PolygonGeometry",
    "Projection",
    "ProximityFilter",
    "SelectionResult",
    "TrackGeometry",
    "TrackPoisError",
    "bounding_box",
    "select",
]
