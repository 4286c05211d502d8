"""Cheap rectangular pre-filters applied before exact geometric scoring.

These tests work in degree space and are never the final inclusion test.
They only shrink the candidate set handed to the projection and haversine
code, so every margin here errs on the wide side.
"""

from sqlalchemy import and_, or_
from shapely.geometry.base import BaseGeometry

from rideshare.core.geodesy import GeoPoint, km_to_degrees

# Widening applied to radius-derived margins: covers 0.1 km rounding and
# great circles cutting inside parallels.
MARGIN_PAD_FACTOR = 1.1
MARGIN_PAD_KM = 0.1


def within_bounding_box(point: GeoPoint, reference: GeoPoint, margin_deg: float) -> bool:
    """True if point lies in the square of +/- margin_deg around reference."""
    return (
        reference.lat - margin_deg <= point.lat <= reference.lat + margin_deg
        and reference.lng - margin_deg <= point.lng <= reference.lng + margin_deg
    )


def near_endpoints(query: GeoPoint, from_point: GeoPoint, to_point: GeoPoint, margin_deg: float) -> bool:
    """True if query is near either endpoint of a candidate."""
    return (
        within_bounding_box(from_point, query, margin_deg)
        or within_bounding_box(to_point, query, margin_deg)
    )


def passes_prefilter(
    query_from: GeoPoint,
    query_to: GeoPoint,
    from_point: GeoPoint,
    to_point: GeoPoint,
    margin_deg: float,
) -> bool:
    """Both query points must be near one of the candidate's endpoints."""
    return (
        near_endpoints(query_from, from_point, to_point, margin_deg)
        and near_endpoints(query_to, from_point, to_point, margin_deg)
    )


def _near_clause(model, query: GeoPoint, margin_deg: float):
    return or_(
        and_(
            model.from_lat >= query.lat - margin_deg,
            model.from_lat <= query.lat + margin_deg,
            model.from_lng >= query.lng - margin_deg,
            model.from_lng <= query.lng + margin_deg,
        ),
        and_(
            model.to_lat >= query.lat - margin_deg,
            model.to_lat <= query.lat + margin_deg,
            model.to_lng >= query.lng - margin_deg,
            model.to_lng <= query.lng + margin_deg,
        ),
    )


def endpoint_prefilter_clause(model, query_from: GeoPoint, query_to: GeoPoint, margin_deg: float):
    """SQL form of passes_prefilter over a model with from_/to_ lat/lng columns."""
    return and_(
        _near_clause(model, query_from, margin_deg),
        _near_clause(model, query_to, margin_deg),
    )


def route_bbox_contains(geometry: BaseGeometry, point: GeoPoint, radius_km: float) -> bool:
    """True if point lies within the route's bounds widened by radius_km.

    A point outside this box cannot be within radius_km of any point on the
    route, so the candidate can be skipped without projecting.
    """
    min_lng, min_lat, max_lng, max_lat = geometry.bounds
    widest_lat = max(abs(min_lat), abs(max_lat), abs(point.lat))
    lat_margin, lng_margin = km_to_degrees(radius_km * MARGIN_PAD_FACTOR + MARGIN_PAD_KM, widest_lat)
    return (
        min_lat - lat_margin <= point.lat <= max_lat + lat_margin
        and min_lng - lng_margin <= point.lng <= max_lng + lng_margin
    )
