"""Match passengers and drivers by route proximity and direction of travel.

Three searches share the same shape: take candidates already narrowed by
the persistence layer, score each one geometrically, drop the ones that
break the radius or direction constraints, then rank and cap.

- Drivers for a passenger: project pickup and dropoff onto each trip's
  route; closest pickup first.
- Passengers for a driver route: project each passenger's origin and
  destination onto the driver's route; earliest along the route first.
- Ride-wanted posts for a driver: no route exists yet, so endpoints are
  compared directly by haversine; closest origin first.

Equal sort keys are ordered by candidate id.
"""

import datetime
import logging
from dataclasses import dataclass, field
from typing import ClassVar

from rideshare.config import settings
from rideshare.core.bbox import passes_prefilter, route_bbox_contains
from rideshare.core.errors import ValidationError
from rideshare.core.geodesy import GeoPoint, haversine_km, round_km
from rideshare.core.ranking import rank
from rideshare.core.route_projector import RouteProjector

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Candidates


@dataclass
class Candidate:
    kind: ClassVar[str] = ""
    active_status: ClassVar[str] = "active"

    id: str
    owner_id: str
    from_point: GeoPoint
    to_point: GeoPoint
    departure_time: datetime.datetime
    status: str
    details: dict = field(default_factory=dict)  # display fields passed through untouched

    def is_eligible(self, cutoff: datetime.datetime) -> bool:
        return self.status == self.active_status and _as_utc(self.departure_time) >= _as_utc(cutoff)


@dataclass
class TripCandidate(Candidate):
    """A scheduled trip on a driver's route."""

    kind: ClassVar[str] = "trip"
    active_status: ClassVar[str] = "scheduled"

    driver_route_id: str = ""
    route_coordinates: list = field(default_factory=list)  # [[lng, lat], ...]
    seats_available: int = 0


@dataclass
class PassengerRouteCandidate(Candidate):
    kind: ClassVar[str] = "passenger_route"

    seats_needed: int = 1


@dataclass
class RideWantedCandidate(Candidate):
    kind: ClassVar[str] = "ride_wanted"

    seats_needed: int = 1
    flexibility_minutes: int | None = None


# ----------------------------------------------------------------------
# Results


@dataclass
class DriverMatch:
    candidate: TripCandidate
    pickup_distance_km: float
    dropoff_distance_km: float
    pickup_along_route_km: float
    dropoff_along_route_km: float


@dataclass
class PassengerMatch:
    candidate: PassengerRouteCandidate
    origin_distance_km: float
    destination_distance_km: float
    origin_along_route_km: float
    destination_along_route_km: float


@dataclass
class RideWantedMatch:
    candidate: RideWantedCandidate
    from_distance_km: float
    to_distance_km: float


@dataclass
class MatchStats:
    """Per-search counters, logged by the API layer."""

    considered: int = 0
    skipped_ineligible: int = 0
    skipped_prefilter: int = 0
    skipped_invalid: int = 0
    matched: int = 0
    returned: int = 0


# ----------------------------------------------------------------------
# Parameter checks


def check_radius(radius_km: float, max_km: float) -> float:
    if not settings.radius_min_km <= radius_km <= max_km:
        raise ValidationError(
            f"radiusKm must be between {settings.radius_min_km:g} and {max_km:g}, got {radius_km}"
        )
    return radius_km


def check_limit(limit: int) -> int:
    if not 1 <= limit <= settings.result_limit_max:
        raise ValidationError(f"limit must be between 1 and {settings.result_limit_max}, got {limit}")
    return limit


def check_min_seats(min_seats: int) -> int:
    if not 1 <= min_seats <= settings.min_seats_max:
        raise ValidationError(f"minSeats must be between 1 and {settings.min_seats_max}, got {min_seats}")
    return min_seats


def _as_utc(dt: datetime.datetime) -> datetime.datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc)


# ----------------------------------------------------------------------
# Searches


def match_drivers_for_passenger(
    candidates: list[TripCandidate],
    pickup: GeoPoint,
    dropoff: GeoPoint,
    radius_km: float,
    cutoff: datetime.datetime,
    min_seats: int = 1,
    limit: int = 20,
    stats: MatchStats | None = None,
) -> list[DriverMatch]:
    """Trips whose route passes within radius_km of pickup, then of dropoff."""
    check_radius(radius_km, settings.route_search_radius_max_km)
    check_min_seats(min_seats)
    check_limit(limit)
    pickup.validate()
    dropoff.validate()
    stats = stats if stats is not None else MatchStats()

    matches: list[DriverMatch] = []
    for trip in candidates:
        stats.considered += 1
        if not trip.is_eligible(cutoff) or trip.seats_available < min_seats:
            stats.skipped_ineligible += 1
            continue

        try:
            projector = RouteProjector(trip.route_coordinates)
        except ValidationError as e:
            stats.skipped_invalid += 1
            logger.warning("Trip %s: skipping, bad route geometry on driver route %s: %s",
                           trip.id, trip.driver_route_id, e)
            continue

        route_geom = projector.geometry
        if not (route_bbox_contains(route_geom, pickup, radius_km)
                and route_bbox_contains(route_geom, dropoff, radius_km)):
            stats.skipped_prefilter += 1
            continue

        pickup_proj = projector.project(pickup)
        dropoff_proj = projector.project(dropoff)
        pickup_km = round_km(pickup_proj.perpendicular_distance_km)
        dropoff_km = round_km(dropoff_proj.perpendicular_distance_km)

        if pickup_km > radius_km or dropoff_km > radius_km:
            continue
        # Pickup must come strictly before dropoff in the driver's direction
        if pickup_proj.along_route_km >= dropoff_proj.along_route_km:
            continue

        matches.append(DriverMatch(
            candidate=trip,
            pickup_distance_km=pickup_km,
            dropoff_distance_km=dropoff_km,
            pickup_along_route_km=pickup_proj.along_route_km,
            dropoff_along_route_km=dropoff_proj.along_route_km,
        ))

    stats.matched = len(matches)
    ranked = rank(matches, key=lambda m: m.pickup_distance_km, tie_break=lambda m: m.candidate.id, limit=limit)
    stats.returned = len(ranked)
    return ranked


def match_passengers_for_driver_route(
    candidates: list[PassengerRouteCandidate],
    route_coordinates,
    radius_km: float,
    cutoff: datetime.datetime,
    limit: int = 20,
    stats: MatchStats | None = None,
) -> list[PassengerMatch]:
    """Passenger routes lying along a driver's route, in pickup order."""
    check_radius(radius_km, settings.route_search_radius_max_km)
    check_limit(limit)
    # The driver's own route is request input: a bad one fails the request
    projector = RouteProjector(route_coordinates)
    route_geom = projector.geometry
    stats = stats if stats is not None else MatchStats()

    matches: list[PassengerMatch] = []
    for pr in candidates:
        stats.considered += 1
        if not pr.is_eligible(cutoff):
            stats.skipped_ineligible += 1
            continue

        try:
            pr.from_point.validate()
            pr.to_point.validate()
        except ValidationError as e:
            stats.skipped_invalid += 1
            logger.warning("Passenger route %s: skipping, bad endpoint: %s", pr.id, e)
            continue

        if not (route_bbox_contains(route_geom, pr.from_point, radius_km)
                and route_bbox_contains(route_geom, pr.to_point, radius_km)):
            stats.skipped_prefilter += 1
            continue

        origin_proj = projector.project(pr.from_point)
        dest_proj = projector.project(pr.to_point)
        origin_km = round_km(origin_proj.perpendicular_distance_km)
        dest_km = round_km(dest_proj.perpendicular_distance_km)

        if origin_km > radius_km or dest_km > radius_km:
            continue
        if origin_proj.along_route_km >= dest_proj.along_route_km:
            continue

        matches.append(PassengerMatch(
            candidate=pr,
            origin_distance_km=origin_km,
            destination_distance_km=dest_km,
            origin_along_route_km=origin_proj.along_route_km,
            destination_along_route_km=dest_proj.along_route_km,
        ))

    stats.matched = len(matches)
    ranked = rank(matches, key=lambda m: m.origin_along_route_km, tie_break=lambda m: m.candidate.id, limit=limit)
    stats.returned = len(ranked)
    return ranked


def match_ride_wanted(
    candidates: list[RideWantedCandidate],
    from_point: GeoPoint,
    to_point: GeoPoint,
    radius_km: float,
    cutoff: datetime.datetime,
    limit: int = 20,
    prefilter_degrees: float | None = None,
    stats: MatchStats | None = None,
) -> list[RideWantedMatch]:
    """Ride-wanted posts whose endpoints are each within radius_km of ours."""
    check_radius(radius_km, settings.ride_wanted_radius_max_km)
    check_limit(limit)
    from_point.validate()
    to_point.validate()
    margin = settings.prefilter_degrees if prefilter_degrees is None else prefilter_degrees
    stats = stats if stats is not None else MatchStats()

    matches: list[RideWantedMatch] = []
    for rw in candidates:
        stats.considered += 1
        if not rw.is_eligible(cutoff):
            stats.skipped_ineligible += 1
            continue

        try:
            rw.from_point.validate()
            rw.to_point.validate()
        except ValidationError as e:
            stats.skipped_invalid += 1
            logger.warning("Ride wanted %s: skipping, bad endpoint: %s", rw.id, e)
            continue

        if not passes_prefilter(from_point, to_point, rw.from_point, rw.to_point, margin):
            stats.skipped_prefilter += 1
            continue

        from_km = round_km(haversine_km(from_point, rw.from_point))
        to_km = round_km(haversine_km(to_point, rw.to_point))
        if from_km <= radius_km and to_km <= radius_km:
            matches.append(RideWantedMatch(candidate=rw, from_distance_km=from_km, to_distance_km=to_km))

    stats.matched = len(matches)
    ranked = rank(matches, key=lambda m: m.from_distance_km, tie_break=lambda m: m.candidate.id, limit=limit)
    stats.returned = len(ranked)
    return ranked
