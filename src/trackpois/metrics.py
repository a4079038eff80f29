"""
Module for collecting and logging metrics about POI selection.
"""

import collections
import logging
from typing import Dict, Iterable, NamedTuple

from .config import TrackPoisConfig
from .proximity import SelectionResult

logger = logging.getLogger(__name__)


class SelectionMetrics(NamedTuple):
    """Container for selection metrics data."""

    tracks: int
    counts: Dict[str, int]
    kind_counts: Dict[str, int]


def collect_metrics(results: Iterable[SelectionResult]) -> SelectionMetrics:
    """
    Collect metrics from the selections made for a batch of tracks.

    Args:
        results: One SelectionResult per processed track

    Returns:
        SelectionMetrics containing all collected metrics
    """
    counts: Dict[str, int] = collections.defaultdict(int)
    kind_counts: Dict[str, int] = collections.defaultdict(int)
    tracks = 0

    for result in results:
        tracks += 1
        counts["candidates"] += result.total_candidates
        counts["selected"] += len(result)
        counts["beyond_max_distance"] += result.rejected_by_distance
        counts["duplicate"] += result.rejected_as_duplicate
        counts["truncated"] += result.truncated
        if result.passthrough:
            counts["passthrough_tracks"] += 1

        for candidate in result:
            kind_counts[candidate.kind] += 1

    return SelectionMetrics(
        tracks=tracks,
        counts=dict(counts),
        kind_counts=dict(kind_counts),
    )


def log_metrics(metrics: SelectionMetrics, config: TrackPoisConfig) -> None:
    """
    Log detailed metrics after processing all tracks.

    Args:
        metrics: SelectionMetrics containing collected metrics
        config: Configuration; nothing is logged unless config.metrics is set
    """
    if not config.metrics:
        return

    logger.debug("=== TRACKPOIS_METRICS ===")
    logger.debug(f"tracks_processed={metrics.tracks}")
    for key in ["candidates", "selected", "beyond_max_distance", "duplicate", "truncated"]:
        logger.debug(f"{key}={metrics.counts.get(key, 0)}")
    logger.debug(f"passthrough_tracks={metrics.counts.get('passthrough_tracks', 0)}")

    for kind, count in sorted(metrics.kind_counts.items()):
        logger.debug(f"selected_kind[{kind}]={count}")
    logger.debug("=== END_TRACKPOIS_METRICS ===")
