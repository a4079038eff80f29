"""
Exception types raised by trackpois.
"""


class TrackPoisError(Exception):
    """Base class for all trackpois errors."""


class InvalidGeometryError(TrackPoisError, ValueError):
    """Raised when a geometry is malformed or has no usable vertices."""


class CoordinateRangeError(InvalidGeometryError):
    """Raised when a latitude or longitude is out of range or not finite."""
