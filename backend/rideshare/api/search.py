"""Route search REST API endpoints."""

import datetime
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.core import candidates
from rideshare.core.geodesy import GeoPoint
from rideshare.core.matcher import (
    Candidate,
    MatchStats,
    PassengerRouteCandidate,
    RideWantedCandidate,
    TripCandidate,
    match_drivers_for_passenger,
    match_passengers_for_driver_route,
)
from rideshare.core.route_projector import validate_coordinates
from rideshare.db.session import get_session
from rideshare.schemas.search import (
    DriverMatchOut,
    DriverRouteOut,
    FindDriversRequest,
    FindPassengersRequest,
    LatLng,
    PassengerListingOut,
    PassengerMatchOut,
    RouteGeometry,
    RouteTripOut,
    TripOut,
    UserSummary,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])


def search_cutoff(date: datetime.datetime | None) -> datetime.datetime:
    """Requested date, or now; naive datetimes are taken as UTC."""
    if date is None:
        return datetime.datetime.now(datetime.timezone.utc)
    if date.tzinfo is None:
        return date.replace(tzinfo=datetime.timezone.utc)
    return date


def _lat_lng(p: GeoPoint) -> LatLng:
    return LatLng(lat=p.lat, lng=p.lng)


def _user(data: dict | None) -> UserSummary | None:
    return UserSummary(**data) if data else None


def _route_geometry(coords: list) -> RouteGeometry | None:
    return RouteGeometry(coordinates=coords) if coords else None


def _listing_fields(c: Candidate) -> dict:
    d = c.details
    return dict(
        id=c.id,
        kind=c.kind,
        owner_id=c.owner_id,
        status=c.status,
        departure_time=c.departure_time,
        from_point=_lat_lng(c.from_point),
        to_point=_lat_lng(c.to_point),
        from_name=d.get("from_name"),
        from_address=d.get("from_address"),
        to_name=d.get("to_name"),
        to_address=d.get("to_address"),
        description=d.get("description"),
    )


def trip_out(c: TripCandidate) -> TripOut:
    d = c.details
    return TripOut(
        **_listing_fields(c),
        driver_route_id=c.driver_route_id,
        route_geometry=_route_geometry(c.route_coordinates),
        seats_available=c.seats_available,
        distance_km=d.get("distance_km"),
        duration_minutes=d.get("duration_minutes"),
        price_per_seat=d.get("price_per_seat"),
        driver=_user(d.get("driver")),
    )


def passenger_listing_out(c: PassengerRouteCandidate | RideWantedCandidate) -> PassengerListingOut:
    d = c.details
    flexibility = getattr(c, "flexibility_minutes", None)
    if flexibility is None:
        flexibility = d.get("flexibility_minutes")
    return PassengerListingOut(
        **_listing_fields(c),
        seats_needed=c.seats_needed,
        flexibility_minutes=flexibility,
        max_price_per_seat=d.get("max_price_per_seat"),
        passenger=_user(d.get("passenger")),
    )


@router.post("/drivers", response_model=list[DriverMatchOut])
async def find_drivers(body: FindDriversRequest, session: AsyncSession = Depends(get_session)):
    """Find upcoming trips whose route passes the passenger's pickup, then dropoff."""
    cutoff = search_cutoff(body.date)
    pickup = GeoPoint(lat=body.pickup.lat, lng=body.pickup.lng)
    dropoff = GeoPoint(lat=body.dropoff.lat, lng=body.dropoff.lng)

    trips = await candidates.fetch_trip_candidates(session, cutoff, pickup, dropoff, body.radius_km)
    stats = MatchStats()
    matches = match_drivers_for_passenger(
        trips, pickup, dropoff,
        radius_km=body.radius_km,
        cutoff=cutoff,
        min_seats=body.min_seats,
        limit=body.limit,
        stats=stats,
    )
    logger.debug("findDrivers: %s", stats)
    return [
        DriverMatchOut(
            trip=trip_out(m.candidate),
            pickup_distance_km=m.pickup_distance_km,
            dropoff_distance_km=m.dropoff_distance_km,
            pickup_along_route_km=m.pickup_along_route_km,
            dropoff_along_route_km=m.dropoff_along_route_km,
        )
        for m in matches
    ]


@router.post("/passengers", response_model=list[PassengerMatchOut])
async def find_passengers(body: FindPassengersRequest, session: AsyncSession = Depends(get_session)):
    """Find passenger routes lying along a driver's route, in pickup order."""
    cutoff = search_cutoff(body.date)
    coords = validate_coordinates(body.route_geometry.coordinates)

    routes = await candidates.fetch_passenger_route_candidates(session, cutoff, coords, body.radius_km)
    stats = MatchStats()
    matches = match_passengers_for_driver_route(
        routes, coords,
        radius_km=body.radius_km,
        cutoff=cutoff,
        limit=body.limit,
        stats=stats,
    )
    logger.debug("findPassengers: %s", stats)
    return [
        PassengerMatchOut(
            passenger_route=passenger_listing_out(m.candidate),
            origin_distance_km=m.origin_distance_km,
            destination_distance_km=m.destination_distance_km,
            origin_along_route_km=m.origin_along_route_km,
            destination_along_route_km=m.destination_along_route_km,
        )
        for m in matches
    ]


@router.get("/trips/{trip_id}", response_model=TripOut)
async def get_trip(trip_id: str, session: AsyncSession = Depends(get_session)):
    """Get a trip with its driver route."""
    trip = await candidates.get_trip(session, trip_id)
    return trip_out(candidates.trip_candidate(trip))


@router.get("/driver-routes/{route_id}", response_model=DriverRouteOut)
async def get_driver_route(route_id: str, session: AsyncSession = Depends(get_session)):
    """Get a driver route with its geometry and trips, soonest departure first."""
    r = await candidates.get_driver_route(session, route_id)
    driver = r.driver
    trips = [
        RouteTripOut(
            id=str(t.id),
            status=t.status,
            departure_time=t.departure_time,
            seats_available=candidates.seats_available(t, r),
        )
        for t in sorted(r.trips, key=lambda t: t.departure_time)
    ]
    return DriverRouteOut(
        id=str(r.id),
        driver_id=r.driver_id,
        status=r.status,
        from_point=LatLng(lat=r.from_lat, lng=r.from_lng),
        to_point=LatLng(lat=r.to_lat, lng=r.to_lng),
        from_name=r.from_name,
        to_name=r.to_name,
        route_geometry=_route_geometry(candidates.route_coordinates(r)),
        distance_km=r.distance_km,
        duration_minutes=r.duration_minutes,
        seats_offered=r.seats_offered,
        price_per_seat=r.price_per_seat,
        description=r.description,
        driver=UserSummary(id=driver.id, name=driver.name, username=driver.username, image=driver.image)
        if driver else None,
        trips=trips,
    )


@router.get("/passenger-routes/{route_id}", response_model=PassengerListingOut)
async def get_passenger_route(route_id: str, session: AsyncSession = Depends(get_session)):
    """Get a passenger route."""
    pr = await candidates.get_passenger_route(session, route_id)
    return passenger_listing_out(candidates.passenger_route_candidate(pr))
