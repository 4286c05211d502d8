"""Tests for the degree-space pre-filters."""

from shapely.geometry import LineString

from rideshare.core.bbox import (
    endpoint_prefilter_clause,
    near_endpoints,
    passes_prefilter,
    route_bbox_contains,
    within_bounding_box,
    MARGIN_PAD_FACTOR,
)
from rideshare.core.geodesy import GeoPoint
from rideshare.models.tables import RideWanted

ORIGIN = GeoPoint(lat=0.0, lng=0.0)


def test_within_box_inclusive_edges():
    assert within_bounding_box(GeoPoint(lat=0.9, lng=0.9), ORIGIN, 0.9)
    assert within_bounding_box(GeoPoint(lat=-0.9, lng=-0.9), ORIGIN, 0.9)
    assert not within_bounding_box(GeoPoint(lat=0.91, lng=0.0), ORIGIN, 0.9)
    assert not within_bounding_box(GeoPoint(lat=0.0, lng=-0.95), ORIGIN, 0.9)


def test_near_either_endpoint():
    far = GeoPoint(lat=10.0, lng=10.0)
    near = GeoPoint(lat=0.5, lng=0.5)
    assert near_endpoints(ORIGIN, far, near, 0.9)
    assert near_endpoints(ORIGIN, near, far, 0.9)
    assert not near_endpoints(ORIGIN, far, far, 0.9)


def test_prefilter_needs_both_query_points():
    cand_from = GeoPoint(lat=43.7, lng=-79.4)
    cand_to = GeoPoint(lat=45.5, lng=-73.6)
    toronto = GeoPoint(lat=43.65, lng=-79.38)
    montreal = GeoPoint(lat=45.50, lng=-73.57)
    vancouver = GeoPoint(lat=49.28, lng=-123.12)

    assert passes_prefilter(toronto, montreal, cand_from, cand_to, 0.9)
    # Reversed direction still passes the coarse filter
    assert passes_prefilter(montreal, toronto, cand_from, cand_to, 0.9)
    assert not passes_prefilter(toronto, vancouver, cand_from, cand_to, 0.9)


def test_sql_clause_covers_all_endpoint_columns():
    clause = endpoint_prefilter_clause(RideWanted, ORIGIN, GeoPoint(lat=1.0, lng=1.0), 0.9)
    sql = str(clause.compile())
    for col in ("from_lat", "from_lng", "to_lat", "to_lng"):
        assert f"ride_wanted.{col}" in sql
    assert " OR " in sql


def test_route_bbox_contains_near_point():
    line = LineString([(0.0, 0.0), (0.0, 1.0)])
    assert route_bbox_contains(line, GeoPoint(lat=0.5, lng=0.05), radius_km=10)
    assert route_bbox_contains(line, GeoPoint(lat=1.05, lng=0.0), radius_km=10)


def test_route_bbox_rejects_far_point():
    line = LineString([(0.0, 0.0), (0.0, 1.0)])
    assert not route_bbox_contains(line, GeoPoint(lat=0.5, lng=0.5), radius_km=10)
    assert not route_bbox_contains(line, GeoPoint(lat=2.0, lng=0.0), radius_km=10)


def test_route_bbox_is_wider_than_radius():
    line = LineString([(0.0, 0.0), (0.0, 1.0)])
    # ~10 km east of the route at the equator
    assert route_bbox_contains(line, GeoPoint(lat=0.5, lng=10.0 / 111.19), radius_km=10)
    assert MARGIN_PAD_FACTOR > 1.0
