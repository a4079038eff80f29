import logging
from unittest.mock import MagicMock, patch

import pytest
import requests

from trackpois.config import TrackPoisConfig
from trackpois.geometry import BoundingBox, GeoPoint
from trackpois.overpass import (
    OVERPASS_API_URL,
    build_around_count_query,
    build_poi_query,
    parse_poi_elements,
    query_overpass_poi_count,
    query_overpass_pois,
)

BBOX = BoundingBox(min_lat=44.8, min_lon=5.6, max_lat=44.9, max_lon=5.8)

ELEMENTS = [
    {
        "type": "node",
        "id": 101,
        "lat": 44.85,
        "lon": 5.7,
        "tags": {"natural": "spring", "name": "Source du Lac"},
    },
    {
        "type": "way",
        "id": 202,
        "center": {"lat": 44.86, "lon": 5.71},
        "tags": {"tourism": "viewpoint"},
    },
    {"type": "node", "id": 303, "tags": {"tourism": "information"}},
    {"type": "node", "id": 404, "lat": 95.0, "lon": 5.7, "tags": {}},
]


def mock_response(elements):
    response = MagicMock()
    response.json.return_value = {"elements": elements}
    return response


def test_build_poi_query_uses_overpass_bbox_order():
    query = build_poi_query(BBOX, ['node["tourism"]', 'node["natural"="spring"]'], timeout=25)

    assert query.startswith("[out:json][timeout:25][bbox:44.8,5.6,44.9,5.8];")
    assert '  node["tourism"];\n' in query
    assert '  node["natural"="spring"];\n' in query
    assert query.rstrip().endswith("out center;")


def test_default_filters_exclude_trees_and_shrubs():
    query = build_poi_query(BBOX, TrackPoisConfig().poi_filters)

    assert '["natural"!="tree"]' in query
    assert '["natural"!="shrub"]' in query
    assert 'node["tourism"]' in query


def test_parse_poi_elements(caplog):
    with caplog.at_level(logging.WARNING, logger="trackpois.overpass"):
        candidates = parse_poi_elements(ELEMENTS)

    assert [c.external_id for c in candidates] == [101, 202]

    spring = candidates[0]
    assert spring.kind == "node"
    assert spring.name == "Source du Lac"
    assert spring.position == GeoPoint(latitude=44.85, longitude=5.7)
    assert spring.tags == {"natural": "spring", "name": "Source du Lac"}

    viewpoint = candidates[1]
    assert viewpoint.kind == "way"
    assert viewpoint.name is None
    assert viewpoint.position == GeoPoint(latitude=44.86, longitude=5.71)

    assert "303" in caplog.text
    assert "404" in caplog.text


def test_parse_poi_elements_ignores_count_elements():
    elements = [{"type": "count", "id": 0, "tags": {"total": "3"}}]
    assert parse_poi_elements(elements) == []


@patch("trackpois.overpass.requests.post")
def test_query_overpass_pois(mock_post):
    mock_post.return_value = mock_response(ELEMENTS[:2])
    config = TrackPoisConfig(timeout=12)

    candidates = query_overpass_pois(BBOX, config)

    assert [c.external_id for c in candidates] == [101, 202]
    mock_post.assert_called_once()
    args, kwargs = mock_post.call_args
    assert args[0] == OVERPASS_API_URL
    assert kwargs["timeout"] == 12
    assert "[bbox:44.8,5.6,44.9,5.8]" in kwargs["data"]


@patch("trackpois.overpass.requests.post")
def test_query_overpass_pois_does_not_retry(mock_post):
    response = MagicMock()
    response.raise_for_status.side_effect = requests.exceptions.HTTPError("429 Too Many Requests")
    mock_post.return_value = response

    with pytest.raises(requests.exceptions.HTTPError):
        query_overpass_pois(BBOX, TrackPoisConfig())

    assert mock_post.call_count == 1


def test_build_around_count_query():
    query = build_around_count_query(GeoPoint(44.85, 5.7), 1000)

    for key in ["amenity", "shop", "tourism", "leisure"]:
        assert f'node["{key}"](around:1000,44.85,5.7);' in query
    assert query.rstrip().endswith("out count;")


@patch("trackpois.overpass.requests.post")
def test_query_overpass_poi_count(mock_post):
    mock_post.return_value = mock_response(
        [{"type": "count", "id": 0, "tags": {"nodes": "42", "total": "42"}}]
    )

    assert query_overpass_poi_count(GeoPoint(44.85, 5.7), 1000, TrackPoisConfig()) == 42


@patch("trackpois.overpass.requests.post")
def test_query_overpass_poi_count_without_count_element(mock_post):
    mock_post.return_value = mock_response(ELEMENTS[:2])

    assert query_overpass_poi_count(GeoPoint(44.85, 5.7), 1000, TrackPoisConfig()) == 2


def test_parse_poi_elements_skips_elements_without_id(caplog):
    elements = [
        {"type": "node", "lat": 1.0, "lon": 2.0, "tags": {"tourism": "hotel"}},
        {"type": "node", "id": "not-a-number", "lat": 1.0, "lon": 2.0},
        {"type": "node", "id": 7, "lat": 1.0, "lon": 2.0},
    ]

    with caplog.at_level(logging.WARNING, logger="trackpois.overpass"):
        candidates = parse_poi_elements(elements)

    assert [c.external_id for c in candidates] == [7]
    assert len(caplog.records) == 2
