#!/usr/bin/env python3
"""
Selection of the points of interest that lie along a track.

The pipeline has a map phase (project every candidate onto the track, which
may run on an executor) followed by a sequential reduce phase (distance
threshold, deduplication fold, ordering by position along the track and
truncation).
"""

from concurrent.futures import Executor
from dataclasses import dataclass
from functools import partial, reduce
from typing import Iterable, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union
import logging

from .candidate import Candidate
from .geometry import GeoPoint, Geometry, LineStringGeometry, PointGeometry, PolygonGeometry
from .geometry_utils import haversine_distance
from .track import Projection, TrackGeometry

logger = logging.getLogger(__name__)

DEFAULT_MAX_DISTANCE = 500.0
DEFAULT_DUPLICATE_RADIUS = 50.0
DEFAULT_MAX_RESULTS = 5

PathLike = Union[Geometry, Sequence[GeoPoint]]


class SelectedCandidate(NamedTuple):
    """A retained candidate with its match onto the track.

    ``projection`` is None when the track had no usable open path and the
    candidate was passed through unordered.
    """

    candidate: Candidate
    projection: Optional[Projection]


@dataclass(frozen=True)
class SelectionResult:
    """Candidates retained by a selection, in the order they are met along the track."""

    entries: Tuple[SelectedCandidate, ...] = ()
    total_candidates: int = 0
    rejected_by_distance: int = 0
    rejected_as_duplicate: int = 0
    truncated: int = 0
    passthrough: bool = False

    @property
    def candidates(self) -> Tuple[Candidate, ...]:
        return tuple(entry.candidate for entry in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self.candidates)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return self.candidates[index]
        return self.entries[index].candidate


def _open_path_points(path: PathLike) -> Tuple[GeoPoint, ...]:
    """Return the vertices of an open path, or () for any other shape."""
    if isinstance(path, LineStringGeometry):
        return path.points
    if isinstance(path, (PointGeometry, PolygonGeometry)):
        return ()
    return tuple(path)


def _accept_unless_duplicate(
    accepted: Tuple[SelectedCandidate, ...],
    entry: SelectedCandidate,
    duplicate_radius: float,
) -> Tuple[SelectedCandidate, ...]:
    """Fold step: append entry unless it lies within duplicate_radius of an accepted one."""
    position = entry.candidate.position
    for kept in accepted:
        if haversine_distance(position, kept.candidate.position) <= duplicate_radius:
            logger.debug(
                f"Dropping {entry.candidate.get_display_name()} as duplicate of "
                f"{kept.candidate.get_display_name()}"
            )
            return accepted
    return accepted + (entry,)


def select(
    path: PathLike,
    candidates: Iterable[Candidate],
    max_distance: float = DEFAULT_MAX_DISTANCE,
    duplicate_radius: float = DEFAULT_DUPLICATE_RADIUS,
    max_results: int = DEFAULT_MAX_RESULTS,
    executor: Optional[Executor] = None,
) -> SelectionResult:
    """
    Select the candidates close to a track, deduplicated and in travel order.

    Args:
        path: Track as a Geometry or as a sequence of vertices in travel order
        candidates: Candidate POIs; input order decides which near-duplicate wins
        max_distance: Maximum distance in meters from the track
        duplicate_radius: Candidates within this many meters of an already
            accepted candidate are dropped
        max_results: Maximum number of candidates to return
        executor: Optional executor to run the per-candidate projections on

    Returns:
        SelectionResult ordered by ascending position along the track. Tracks
        that are not an open path with at least one vertex yield the first
        max_results candidates in input order. Non-positive max_results or
        negative thresholds yield an empty result.
    """
    candidate_list: List[Candidate] = list(candidates)
    total = len(candidate_list)

    if max_results <= 0 or max_distance < 0 or duplicate_radius < 0:
        logger.debug(
            f"Nothing can be selected with max_results={max_results}, "
            f"max_distance={max_distance}, duplicate_radius={duplicate_radius}"
        )
        return SelectionResult(total_candidates=total)

    points = _open_path_points(path)
    if not points:
        logger.debug("Track has no open path, passing candidates through unordered")
        passed = tuple(
            SelectedCandidate(candidate, None) for candidate in candidate_list[:max_results]
        )
        return SelectionResult(
            entries=passed,
            total_candidates=total,
            truncated=total - len(passed),
            passthrough=True,
        )

    track = TrackGeometry(points)

    mapper = executor.map if executor is not None else map
    projections = list(mapper(track.project, [c.position for c in candidate_list]))

    within = [
        SelectedCandidate(candidate, projection)
        for candidate, projection in zip(candidate_list, projections)
        if projection.perpendicular_distance <= max_distance
    ]

    accepted = reduce(
        partial(_accept_unless_duplicate, duplicate_radius=duplicate_radius),
        within,
        (),
    )

    # sorted() is stable, so equal positions keep input order
    ordered = sorted(accepted, key=lambda entry: entry.projection.cumulative_distance)  # type: ignore[union-attr]
    kept = tuple(ordered[:max_results])

    result = SelectionResult(
        entries=kept,
        total_candidates=total,
        rejected_by_distance=total - len(within),
        rejected_as_duplicate=len(within) - len(accepted),
        truncated=len(accepted) - len(kept),
    )
    logger.debug(
        f"Selected {len(kept)} of {total} candidates "
        f"({result.rejected_by_distance} beyond {max_distance}m, "
        f"{result.rejected_as_duplicate} duplicates, {result.truncated} truncated)"
    )
    return result


class ProximityFilter:
    """Selection thresholds bundled for repeated use across tracks."""

    def __init__(
        self,
        max_distance: float = DEFAULT_MAX_DISTANCE,
        duplicate_radius: float = DEFAULT_DUPLICATE_RADIUS,
        max_results: int = DEFAULT_MAX_RESULTS,
    ):
        self.max_distance = max_distance
        self.duplicate_radius = duplicate_radius
        self.max_results = max_results

    def select(
        self,
        path: PathLike,
        candidates: Iterable[Candidate],
        executor: Optional[Executor] = None,
    ) -> SelectionResult:
        return select(
            path,
            candidates,
            max_distance=self.max_distance,
            duplicate_radius=self.duplicate_radius,
            max_results=self.max_results,
            executor=executor,
        )
