"""Great-circle distance helpers shared by the route and ride-wanted matchers."""

import math
from dataclasses import dataclass

from rideshare.core.errors import ValidationError

EARTH_RADIUS_KM = 6371.0

# Length of one degree of latitude on the haversine sphere (~111.19 km)
KM_PER_DEG_LAT = 2 * math.pi * EARTH_RADIUS_KM / 360.0


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def validate(self) -> "GeoPoint":
        """Raise ValidationError unless lat/lng are finite and in range."""
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            raise ValidationError(f"Non-finite coordinate ({self.lat}, {self.lng})")
        if not -90.0 <= self.lat <= 90.0:
            raise ValidationError(f"Latitude {self.lat} outside [-90, 90]")
        if not -180.0 <= self.lng <= 180.0:
            raise ValidationError(f"Longitude {self.lng} outside [-180, 180]")
        return self

    @classmethod
    def from_lng_lat(cls, pair) -> "GeoPoint":
        """Build from a GeoJSON-ordered [lng, lat] pair."""
        return cls(lat=float(pair[1]), lng=float(pair[0]))


def to_radians(deg: float) -> float:
    return deg * (math.pi / 180.0)


def to_degrees(rad: float) -> float:
    return rad * (180.0 / math.pi)


def haversine_km(p1: GeoPoint, p2: GeoPoint) -> float:
    """Great-circle distance in kilometers between two points."""
    dlat = to_radians(p2.lat - p1.lat)
    dlng = to_radians(p2.lng - p1.lng)
    a = (math.sin(dlat / 2) ** 2 +
         math.cos(to_radians(p1.lat)) * math.cos(to_radians(p2.lat)) *
         math.sin(dlng / 2) ** 2)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def round_km(distance_km: float) -> float:
    """Round to 0.1 km with halves going up (not banker's rounding)."""
    return math.floor(distance_km * 10 + 0.5) / 10


def km_to_degrees(distance_km: float, at_lat: float) -> tuple[float, float]:
    """Approximate (lat_deg, lng_deg) spans covering distance_km at a latitude."""
    lat_deg = distance_km / KM_PER_DEG_LAT
    cos_lat = math.cos(to_radians(min(abs(at_lat), 89.0)))
    return lat_deg, lat_deg / cos_lat
