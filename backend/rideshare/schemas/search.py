import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from rideshare.config import settings


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LatLng(ApiModel):
    lat: float = Field(ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(ge=-180, le=180, allow_inf_nan=False)


class RouteGeometry(ApiModel):
    type: Literal["LineString"] = "LineString"
    coordinates: list[tuple[float, float]]  # [[lng, lat], ...]

    @field_validator("coordinates")
    @classmethod
    def _non_empty(cls, v: list[tuple[float, float]]) -> list[tuple[float, float]]:
        if not v:
            raise ValueError("coordinates must not be empty")
        return v


class FindDriversRequest(ApiModel):
    pickup: LatLng
    dropoff: LatLng
    radius_km: float = Field(
        default=settings.route_search_radius_default_km,
        ge=settings.radius_min_km, le=settings.route_search_radius_max_km,
    )
    date: datetime.datetime | None = None
    min_seats: int = Field(default=1, ge=1, le=settings.min_seats_max)
    limit: int = Field(default=settings.result_limit_default, ge=1, le=settings.result_limit_max)


class FindPassengersRequest(ApiModel):
    route_geometry: RouteGeometry
    radius_km: float = Field(
        default=settings.route_search_radius_default_km,
        ge=settings.radius_min_km, le=settings.route_search_radius_max_km,
    )
    date: datetime.datetime | None = None
    limit: int = Field(default=settings.result_limit_default, ge=1, le=settings.result_limit_max)


class RideWantedSearchRequest(ApiModel):
    from_: LatLng = Field(alias="from")
    to: LatLng
    radius_km: float = Field(
        default=settings.ride_wanted_radius_default_km,
        ge=settings.radius_min_km, le=settings.ride_wanted_radius_max_km,
    )
    date: datetime.datetime | None = None
    limit: int = Field(default=settings.result_limit_default, ge=1, le=settings.result_limit_max)


# ----------------------------------------------------------------------
# Responses


class UserSummary(ApiModel):
    id: str
    name: str
    username: str | None = None
    image: str | None = None


class ListingOut(ApiModel):
    id: str
    kind: str
    owner_id: str
    status: str
    departure_time: datetime.datetime
    from_point: LatLng
    to_point: LatLng
    from_name: str | None = None
    from_address: str | None = None
    to_name: str | None = None
    to_address: str | None = None
    description: str | None = None


class TripOut(ListingOut):
    driver_route_id: str
    route_geometry: RouteGeometry | None = None
    seats_available: int
    distance_km: float | None = None
    duration_minutes: int | None = None
    price_per_seat: int | None = None
    driver: UserSummary | None = None


class PassengerListingOut(ListingOut):
    seats_needed: int = 1
    flexibility_minutes: int | None = None
    max_price_per_seat: int | None = None
    passenger: UserSummary | None = None


class DriverMatchOut(ApiModel):
    trip: TripOut
    pickup_distance_km: float
    dropoff_distance_km: float
    pickup_along_route_km: float
    dropoff_along_route_km: float


class PassengerMatchOut(ApiModel):
    passenger_route: PassengerListingOut
    origin_distance_km: float
    destination_distance_km: float
    origin_along_route_km: float
    destination_along_route_km: float


class RideWantedMatchOut(ApiModel):
    ride_wanted: PassengerListingOut
    from_distance_km: float
    to_distance_km: float


class RideWantedPage(ApiModel):
    items: list[PassengerListingOut]
    next_cursor: str | None = None


class RouteTripOut(ApiModel):
    id: str
    status: str
    departure_time: datetime.datetime
    seats_available: int


class DriverRouteOut(ApiModel):
    id: str
    driver_id: str
    status: str
    from_point: LatLng
    to_point: LatLng
    from_name: str
    to_name: str
    route_geometry: RouteGeometry | None = None
    distance_km: float | None = None
    duration_minutes: int | None = None
    seats_offered: int
    price_per_seat: int | None = None
    description: str | None = None
    driver: UserSummary | None = None
    trips: list[RouteTripOut] = []
