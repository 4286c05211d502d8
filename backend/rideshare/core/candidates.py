"""Load match candidates and single listings from the database.

Queries here apply the cheap filters (status, departure cutoff, bounding
box) in SQL and hand plain candidate dataclasses to the matcher.
"""

import datetime
import logging
import uuid

from geoalchemy2.shape import from_shape, to_shape
from shapely.geometry import LineString
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rideshare.core.bbox import MARGIN_PAD_FACTOR, MARGIN_PAD_KM, endpoint_prefilter_clause
from rideshare.core.errors import NotFoundError
from rideshare.core.geodesy import GeoPoint, km_to_degrees
from rideshare.core.matcher import (
    PassengerRouteCandidate,
    RideWantedCandidate,
    TripCandidate,
)
from rideshare.core.ranking import Page, paginate
from rideshare.models.tables import DriverRoute, PassengerRoute, RideWanted, Trip, User

logger = logging.getLogger(__name__)

# Bookings that hold a seat
SEAT_HOLDING_BOOKINGS = ("confirmed",)


def _point_expr(lng_col, lat_col):
    return func.ST_SetSRID(func.ST_MakePoint(lng_col, lat_col), 4326)


def _search_margin_deg(radius_km: float, *lats: float) -> float:
    """Planar degree distance that is never tighter than radius_km."""
    _, lng_deg = km_to_degrees(radius_km * MARGIN_PAD_FACTOR + MARGIN_PAD_KM, max(abs(lat) for lat in lats))
    return lng_deg


def _user_summary(user: User | None) -> dict | None:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "username": user.username, "image": user.image}


def _endpoint_details(row) -> dict:
    return {
        "from_place_id": row.from_place_id,
        "from_name": row.from_name,
        "from_address": row.from_address,
        "to_place_id": row.to_place_id,
        "to_name": row.to_name,
        "to_address": row.to_address,
    }


def route_coordinates(route: DriverRoute) -> list[list[float]]:
    """Stored route geometry as [[lng, lat], ...]; empty if unreadable."""
    try:
        geom = to_shape(route.route_geometry)
        return [[c[0], c[1]] for c in geom.coords]
    except Exception:
        logger.warning("Driver route %s: stored geometry could not be decoded", route.id)
        return []


# ----------------------------------------------------------------------
# Row -> candidate


def seats_available(trip: Trip, route: DriverRoute) -> int:
    held = sum(b.seats_booked for b in trip.bookings if b.status in SEAT_HOLDING_BOOKINGS)
    return max(0, route.seats_offered - held)


def trip_candidate(trip: Trip) -> TripCandidate:
    route = trip.driver_route
    details = _endpoint_details(route)
    details.update(
        distance_km=route.distance_km,
        duration_minutes=route.duration_minutes,
        price_per_seat=route.price_per_seat,
        description=route.description,
        driver=_user_summary(trip.driver),
    )
    return TripCandidate(
        id=str(trip.id),
        owner_id=trip.driver_id,
        from_point=GeoPoint(lat=route.from_lat, lng=route.from_lng),
        to_point=GeoPoint(lat=route.to_lat, lng=route.to_lng),
        departure_time=trip.departure_time,
        status=trip.status,
        details=details,
        driver_route_id=str(route.id),
        route_coordinates=route_coordinates(route),
        seats_available=seats_available(trip, route),
    )


def passenger_route_candidate(pr: PassengerRoute) -> PassengerRouteCandidate:
    details = _endpoint_details(pr)
    details.update(
        flexibility_minutes=pr.flexibility_minutes,
        max_price_per_seat=pr.max_price_per_seat,
        description=pr.description,
        passenger=_user_summary(pr.passenger),
    )
    return PassengerRouteCandidate(
        id=str(pr.id),
        owner_id=pr.passenger_id,
        from_point=GeoPoint(lat=pr.from_lat, lng=pr.from_lng),
        to_point=GeoPoint(lat=pr.to_lat, lng=pr.to_lng),
        departure_time=pr.departure_time,
        status=pr.status,
        details=details,
        seats_needed=pr.seats_needed,
    )


def ride_wanted_candidate(rw: RideWanted) -> RideWantedCandidate:
    details = _endpoint_details(rw)
    details.update(
        max_price_per_seat=rw.max_price_per_seat,
        description=rw.description,
        passenger=_user_summary(rw.passenger),
    )
    return RideWantedCandidate(
        id=str(rw.id),
        owner_id=rw.passenger_id,
        from_point=GeoPoint(lat=rw.from_lat, lng=rw.from_lng),
        to_point=GeoPoint(lat=rw.to_lat, lng=rw.to_lng),
        departure_time=rw.departure_time,
        status=rw.status,
        details=details,
        seats_needed=rw.seats_needed,
        flexibility_minutes=rw.flexibility_minutes,
    )


# ----------------------------------------------------------------------
# Search fetches


async def fetch_trip_candidates(
    session: AsyncSession,
    cutoff: datetime.datetime,
    pickup: GeoPoint,
    dropoff: GeoPoint,
    radius_km: float,
) -> list[TripCandidate]:
    """Scheduled upcoming trips whose route passes near both pickup and dropoff."""
    margin = _search_margin_deg(radius_km, pickup.lat, dropoff.lat)
    stmt = (
        select(Trip)
        .join(Trip.driver_route)
        .where(
            Trip.status == TripCandidate.active_status,
            Trip.departure_time >= cutoff,
            func.ST_DWithin(DriverRoute.route_geometry, _point_expr(pickup.lng, pickup.lat), margin),
            func.ST_DWithin(DriverRoute.route_geometry, _point_expr(dropoff.lng, dropoff.lat), margin),
        )
        .options(
            selectinload(Trip.driver_route),
            selectinload(Trip.driver),
            selectinload(Trip.bookings),
        )
    )
    result = await session.execute(stmt)
    trips = result.scalars().all()
    logger.debug("Trip candidates near (%s, %s): %d", pickup, dropoff, len(trips))
    return [trip_candidate(t) for t in trips]


async def fetch_passenger_route_candidates(
    session: AsyncSession,
    cutoff: datetime.datetime,
    route_coords: list[tuple[float, float]],
    radius_km: float,
) -> list[PassengerRouteCandidate]:
    """Active upcoming passenger routes with both endpoints near the driver route."""
    lats = [lat for _, lat in route_coords]
    margin = _search_margin_deg(radius_km, *lats)
    if len(route_coords) == 1:
        route_geom = func.ST_SetSRID(func.ST_MakePoint(*route_coords[0]), 4326)
    else:
        route_geom = from_shape(LineString(route_coords), srid=4326)

    stmt = (
        select(PassengerRoute)
        .where(
            PassengerRoute.status == PassengerRouteCandidate.active_status,
            PassengerRoute.departure_time >= cutoff,
            func.ST_DWithin(_point_expr(PassengerRoute.from_lng, PassengerRoute.from_lat), route_geom, margin),
            func.ST_DWithin(_point_expr(PassengerRoute.to_lng, PassengerRoute.to_lat), route_geom, margin),
        )
        .options(selectinload(PassengerRoute.passenger))
    )
    result = await session.execute(stmt)
    return [passenger_route_candidate(pr) for pr in result.scalars().all()]


async def fetch_ride_wanted_candidates(
    session: AsyncSession,
    cutoff: datetime.datetime,
    from_point: GeoPoint,
    to_point: GeoPoint,
    margin_deg: float,
) -> list[RideWantedCandidate]:
    """Active upcoming ride-wanted posts inside the endpoint bounding boxes."""
    stmt = (
        select(RideWanted)
        .where(
            RideWanted.status == RideWantedCandidate.active_status,
            RideWanted.departure_time >= cutoff,
            endpoint_prefilter_clause(RideWanted, from_point, to_point, margin_deg),
        )
        .order_by(RideWanted.departure_time.asc())
        .options(selectinload(RideWanted.passenger))
    )
    result = await session.execute(stmt)
    return [ride_wanted_candidate(rw) for rw in result.scalars().all()]


# ----------------------------------------------------------------------
# Lookups


def _parse_id(kind: str, record_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(record_id)
    except ValueError:
        raise NotFoundError(kind, record_id) from None


async def get_trip(session: AsyncSession, trip_id: str) -> Trip:
    result = await session.execute(
        select(Trip)
        .where(Trip.id == _parse_id("Trip", trip_id))
        .options(
            selectinload(Trip.driver_route),
            selectinload(Trip.driver),
            selectinload(Trip.bookings),
        )
    )
    trip = result.scalar_one_or_none()
    if trip is None:
        raise NotFoundError("Trip", trip_id)
    return trip


async def get_driver_route(session: AsyncSession, route_id: str) -> DriverRoute:
    """Driver route with its driver and trips; trip bookings are loaded for seat counts."""
    result = await session.execute(
        select(DriverRoute)
        .where(DriverRoute.id == _parse_id("Driver route", route_id))
        .options(
            selectinload(DriverRoute.driver),
            selectinload(DriverRoute.trips).selectinload(Trip.bookings),
        )
    )
    route = result.scalar_one_or_none()
    if route is None:
        raise NotFoundError("Driver route", route_id)
    return route


async def get_passenger_route(session: AsyncSession, route_id: str) -> PassengerRoute:
    result = await session.execute(
        select(PassengerRoute)
        .where(PassengerRoute.id == _parse_id("Passenger route", route_id))
        .options(selectinload(PassengerRoute.passenger))
    )
    pr = result.scalar_one_or_none()
    if pr is None:
        raise NotFoundError("Passenger route", route_id)
    return pr


async def get_ride_wanted(session: AsyncSession, post_id: str) -> RideWanted:
    result = await session.execute(
        select(RideWanted)
        .where(RideWanted.id == _parse_id("Ride wanted", post_id))
        .options(selectinload(RideWanted.passenger))
    )
    rw = result.scalar_one_or_none()
    if rw is None:
        raise NotFoundError("Ride wanted", post_id)
    return rw


async def list_ride_wanted(
    session: AsyncSession,
    now: datetime.datetime,
    limit: int,
    cursor: str | None = None,
) -> Page[RideWantedCandidate]:
    """Active upcoming ride-wanted posts by departure time, cursor paginated.

    The cursor is the id of the first post of the page to return.
    """
    stmt = (
        select(RideWanted)
        .where(
            RideWanted.status == RideWantedCandidate.active_status,
            RideWanted.departure_time >= now,
        )
        .order_by(RideWanted.departure_time.asc(), RideWanted.id.asc())
        .limit(limit + 1)
        .options(selectinload(RideWanted.passenger))
    )
    if cursor:
        start = await get_ride_wanted(session, cursor)
        stmt = stmt.where(
            or_(
                RideWanted.departure_time > start.departure_time,
                and_(RideWanted.departure_time == start.departure_time, RideWanted.id >= start.id),
            )
        )
    result = await session.execute(stmt)
    rows = [ride_wanted_candidate(rw) for rw in result.scalars().all()]
    return paginate(rows, limit, cursor_of=lambda c: c.id)
