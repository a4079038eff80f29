import logging

import pytest

from trackpois.errors import InvalidGeometryError
from trackpois.geometry import BoundingBox, GeoPoint
from trackpois.geometry_utils import haversine_distance
from trackpois.track import TrackGeometry

EQUATOR_TRACK = [
    GeoPoint(latitude=0.0, longitude=0.0),
    GeoPoint(latitude=0.0, longitude=1.0),
    GeoPoint(latitude=0.0, longitude=2.0),
]


def test_track_segments_and_cumulative_distances():
    track = TrackGeometry(EQUATOR_TRACK)

    assert len(track) == 3
    assert track.segment_count == 2
    assert track.segment_length(0) == pytest.approx(
        haversine_distance(EQUATOR_TRACK[0], EQUATOR_TRACK[1])
    )
    assert track.cumulative_distance(0) == 0.0
    assert track.cumulative_distance(2) == pytest.approx(
        track.segment_length(0) + track.segment_length(1)
    )
    assert track.total_length == track.cumulative_distance(2)
    assert track.bbox == BoundingBox(0.0, 0.0, 0.0, 2.0)


def test_track_copies_input_points():
    points = list(EQUATOR_TRACK)
    track = TrackGeometry(points)
    points.append(GeoPoint(1.0, 1.0))

    assert len(track) == 3
    assert list(track) == EQUATOR_TRACK
    assert track[-1] == EQUATOR_TRACK[-1]


def test_segment_length_out_of_range():
    track = TrackGeometry(EQUATOR_TRACK)
    with pytest.raises(IndexError):
        track.segment_length(2)


def test_empty_track_is_invalid():
    with pytest.raises(InvalidGeometryError):
        TrackGeometry([])


def test_single_vertex_track():
    vertex = GeoPoint(latitude=45.0, longitude=5.0)
    track = TrackGeometry([vertex])
    point = GeoPoint(latitude=45.001, longitude=5.0)

    projection = track.project(point)

    assert track.segment_count == 0
    assert track.total_length == 0.0
    assert projection.segment_index == 0
    assert projection.cumulative_distance == 0.0
    assert projection.perpendicular_distance == pytest.approx(haversine_distance(point, vertex))


def test_project_near_midpoint_of_first_segment():
    track = TrackGeometry(EQUATOR_TRACK)

    projection = track.project(GeoPoint(latitude=0.0001, longitude=0.5))

    assert projection.segment_index == 0
    assert projection.fraction == pytest.approx(0.5)
    assert projection.perpendicular_distance == pytest.approx(11.12, abs=0.01)
    assert projection.cumulative_distance == pytest.approx(track.segment_length(0) / 2)


def test_project_on_vertex():
    track = TrackGeometry(EQUATOR_TRACK)

    projection = track.project(EQUATOR_TRACK[1])

    assert projection.perpendicular_distance == 0.0
    assert projection.cumulative_distance == pytest.approx(track.cumulative_distance(1))


def test_project_picks_nearest_segment():
    track = TrackGeometry(
        [GeoPoint(45.0, 5.0), GeoPoint(45.0, 5.01), GeoPoint(45.01, 5.01)]
    )

    projection = track.project(GeoPoint(45.005, 5.0101))

    assert projection.segment_index == 1
    assert projection.fraction == pytest.approx(0.5)
    assert projection.cumulative_distance == pytest.approx(
        track.cumulative_distance(1) + track.segment_length(1) / 2
    )


def test_antimeridian_crossing_is_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="trackpois.track"):
        TrackGeometry([GeoPoint(0.0, 179.9), GeoPoint(0.0, -179.9)])
    assert "antimeridian" in caplog.text


def test_polar_track_is_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="trackpois.track"):
        TrackGeometry([GeoPoint(86.0, 0.0), GeoPoint(86.1, 0.0)])
    assert "pole" in caplog.text
