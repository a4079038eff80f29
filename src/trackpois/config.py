import argparse
from dataclasses import dataclass, field
from typing import List, Optional

from .proximity import DEFAULT_DUPLICATE_RADIUS, DEFAULT_MAX_DISTANCE, DEFAULT_MAX_RESULTS

DEFAULT_API_TIMEOUT = 30

# Natural features except trees and shrubs, plus tourism nodes
DEFAULT_POI_FILTERS = [
    'node["natural"]["natural"!="tree"]["natural"!="shrub"]',
    'node["tourism"]',
]


@dataclass
class TrackPoisConfig:
    """Configuration for the trackpois CLI."""

    max_distance: float = DEFAULT_MAX_DISTANCE
    max_results: int = DEFAULT_MAX_RESULTS
    duplicate_radius: float = DEFAULT_DUPLICATE_RADIUS
    bbox_buffer: float = DEFAULT_MAX_DISTANCE
    timeout: int = DEFAULT_API_TIMEOUT
    poi_filters: List[str] = field(default_factory=lambda: list(DEFAULT_POI_FILTERS))
    database: Optional[str] = None
    max_tracks: Optional[int] = None
    log_level: str = "WARNING"
    metrics: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "TrackPoisConfig":
        """Build a config from parsed command-line arguments."""
        bbox_buffer = args.bbox_buffer
        if bbox_buffer is None:
            bbox_buffer = args.max_distance
        return cls(
            max_distance=args.max_distance,
            max_results=args.max_results,
            duplicate_radius=args.duplicate_radius,
            bbox_buffer=bbox_buffer,
            timeout=args.timeout,
            poi_filters=list(args.poi_filter) if args.poi_filter else list(DEFAULT_POI_FILTERS),
            database=args.database,
            max_tracks=args.max_tracks,
            log_level=args.log_level,
            metrics=args.metrics,
        )
