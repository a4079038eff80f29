import math

import pytest

from trackpois.errors import CoordinateRangeError, InvalidGeometryError
from trackpois.geometry import (
    BoundingBox,
    GeoPoint,
    LineStringGeometry,
    PointGeometry,
    PolygonGeometry,
    bounding_box,
    bounding_box_of_points,
    geometry_from_geojson,
    geometry_to_geojson,
    geometry_vertices,
)


@pytest.mark.parametrize(
    "latitude, longitude",
    [(90.5, 0.0), (-91.0, 0.0), (0.0, 180.1), (0.0, -181.0), (math.nan, 0.0), (0.0, math.inf)],
)
def test_geopoint_rejects_invalid_coordinates(latitude, longitude):
    with pytest.raises(CoordinateRangeError):
        GeoPoint(latitude=latitude, longitude=longitude)


def test_geopoint_accepts_range_limits():
    assert GeoPoint(latitude=90.0, longitude=-180.0).latitude == 90.0
    assert GeoPoint(latitude=-90.0, longitude=180.0).longitude == 180.0


def test_geopoint_from_lon_lat_swaps_axes_once():
    point = GeoPoint.from_lon_lat(5.7, 44.8)
    assert point.latitude == 44.8
    assert point.longitude == 5.7
    assert point.to_lon_lat() == [5.7, 44.8]


def test_bounding_box_of_linestring():
    geometry = LineStringGeometry(
        (
            GeoPoint(44.87, 5.70),
            GeoPoint(44.90, 5.65),
            GeoPoint(44.85, 5.75),
        )
    )
    assert bounding_box(geometry) == BoundingBox(44.85, 5.65, 44.90, 5.75)


def test_bounding_box_of_point():
    geometry = PointGeometry(GeoPoint(10.0, 20.0))
    assert bounding_box(geometry) == BoundingBox(10.0, 20.0, 10.0, 20.0)


def test_bounding_box_of_polygon_counts_every_ring():
    exterior = (GeoPoint(0.0, 0.0), GeoPoint(0.0, 1.0), GeoPoint(1.0, 1.0), GeoPoint(0.0, 0.0))
    # A malformed hole sticking out of the exterior still counts
    hole = (GeoPoint(0.5, 0.5), GeoPoint(2.0, -1.0), GeoPoint(0.5, 0.5))
    geometry = PolygonGeometry((exterior, hole))

    assert bounding_box(geometry) == BoundingBox(0.0, -1.0, 2.0, 1.0)
    assert len(geometry_vertices(geometry)) == 7


@pytest.mark.parametrize(
    "geometry",
    [PointGeometry(None), LineStringGeometry(()), PolygonGeometry(()), PolygonGeometry(((),))],
)
def test_bounding_box_without_coordinates(geometry):
    assert bounding_box(geometry) is None


def test_bounding_box_of_points_empty():
    assert bounding_box_of_points([]) is None


def test_geometry_vertices_rejects_unknown_types():
    with pytest.raises(TypeError):
        geometry_vertices([GeoPoint(0.0, 0.0)])


def test_buffered_bounding_box_contains_original():
    bbox = BoundingBox(44.85, 5.65, 44.90, 5.75)
    buffered = bbox.buffered(500.0)

    assert buffered.min_lat < bbox.min_lat
    assert buffered.max_lat > bbox.max_lat
    assert buffered.min_lon < bbox.min_lon
    assert buffered.max_lon > bbox.max_lon
    assert bbox.max_lat - bbox.min_lat + 2 * 500.0 / 111000.0 == pytest.approx(
        buffered.max_lat - buffered.min_lat
    )


def test_buffered_bounding_box_is_clamped():
    bbox = BoundingBox(89.999, 179.999, 90.0, 180.0)
    buffered = bbox.buffered(1000.0)
    assert buffered.max_lat == 90.0
    assert buffered.max_lon == 180.0


def test_zero_buffer_returns_same_box():
    bbox = BoundingBox(1.0, 2.0, 3.0, 4.0)
    assert bbox.buffered(0.0) == bbox


def test_bounding_box_overpass_order_and_center():
    bbox = BoundingBox(min_lat=44.0, min_lon=5.0, max_lat=46.0, max_lon=7.0)
    assert bbox.as_south_west_north_east() == (44.0, 5.0, 46.0, 7.0)
    assert bbox.center() == GeoPoint(45.0, 6.0)


def test_geometry_from_geojson_feature():
    feature = {
        "type": "Feature",
        "properties": {},
        "geometry": {
            "type": "LineString",
            "coordinates": [[5.700719, 44.872651], [5.700673, 44.872703]],
        },
    }

    geometry = geometry_from_geojson(feature)

    assert isinstance(geometry, LineStringGeometry)
    assert geometry.points == (
        GeoPoint(latitude=44.872651, longitude=5.700719),
        GeoPoint(latitude=44.872703, longitude=5.700673),
    )


def test_geometry_from_geojson_point_and_polygon():
    point = geometry_from_geojson({"type": "Point", "coordinates": [5.7, 44.8, 213.0]})
    assert point == PointGeometry(GeoPoint(44.8, 5.7))

    polygon = geometry_from_geojson(
        {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]}
    )
    assert isinstance(polygon, PolygonGeometry)
    assert polygon.rings[0][1] == GeoPoint(latitude=0.0, longitude=1.0)


def test_geometry_from_geojson_skips_short_positions():
    geometry = geometry_from_geojson(
        {"type": "LineString", "coordinates": [[5.7], [5.7, 44.8], []]}
    )
    assert geometry == LineStringGeometry((GeoPoint(44.8, 5.7),))


def test_geometry_from_geojson_empty_coordinates():
    assert geometry_from_geojson({"type": "LineString", "coordinates": []}) == LineStringGeometry(())
    assert geometry_from_geojson({"type": "Point", "coordinates": []}) == PointGeometry(None)


@pytest.mark.parametrize(
    "obj",
    [
        {"type": "MultiLineString", "coordinates": []},
        {"type": "LineString", "coordinates": [["a", "b"]]},
        {"type": "LineString", "coordinates": "nope"},
        {"type": "Feature", "geometry": None},
        ["not", "a", "mapping"],
    ],
)
def test_geometry_from_geojson_rejects_malformed_input(obj):
    with pytest.raises(InvalidGeometryError):
        geometry_from_geojson(obj)


def test_geometry_from_geojson_rejects_out_of_range():
    with pytest.raises(CoordinateRangeError):
        geometry_from_geojson({"type": "LineString", "coordinates": [[44.8, 95.0]]})


def test_geometry_to_geojson_restores_storage_order():
    geojson = {"type": "LineString", "coordinates": [[5.700719, 44.872651], [5.700673, 44.872703]]}
    assert geometry_to_geojson(geometry_from_geojson(geojson)) == geojson
