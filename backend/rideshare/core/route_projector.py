"""Project points onto driver route polylines.

Routes are scanned segment by segment in the (lng, lat) plane; the nearest
point found there is then measured with haversine, and its position along
the route is the haversine length of the preceding segments plus the partial
segment up to the nearest point.
"""

import math
from dataclasses import dataclass

from shapely.geometry import LineString, Point
from shapely.geometry.base import BaseGeometry

from rideshare.core.errors import ValidationError
from rideshare.core.geodesy import GeoPoint, haversine_km


@dataclass
class ProjectionResult:
    perpendicular_distance_km: float
    along_route_km: float
    nearest: GeoPoint
    segment_index: int  # -1 for a single-vertex route


def validate_coordinates(coords) -> list[tuple[float, float]]:
    """Check a sequence of [lng, lat] pairs and return them as float tuples."""
    if coords is None or len(coords) == 0:
        raise ValidationError("Route geometry has no coordinates")
    vertices = []
    for i, pair in enumerate(coords):
        try:
            if len(pair) < 2:
                raise ValidationError(f"Vertex {i} has fewer than two values")
            point = GeoPoint.from_lng_lat(pair)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Vertex {i} is not numeric: {pair!r}") from e
        point.validate()
        vertices.append((point.lng, point.lat))
    return vertices


class RouteProjector:
    """A route prepared for repeated projections (cumulative lengths cached)."""

    def __init__(self, coords) -> None:
        self._vertices = validate_coordinates(coords)
        self._points = [GeoPoint(lat=lat, lng=lng) for lng, lat in self._vertices]

        # _cumulative_km[i] = haversine length from vertex 0 to vertex i
        self._cumulative_km = [0.0]
        for i in range(1, len(self._points)):
            self._cumulative_km.append(
                self._cumulative_km[-1] + haversine_km(self._points[i - 1], self._points[i])
            )

    @property
    def vertices(self) -> list[tuple[float, float]]:
        return list(self._vertices)

    @property
    def total_length_km(self) -> float:
        return self._cumulative_km[-1]

    @property
    def geometry(self) -> BaseGeometry:
        """Shapely geometry of the route, in (lng, lat) order."""
        if len(self._vertices) == 1:
            return Point(self._vertices[0])
        return LineString(self._vertices)

    def project(self, point: GeoPoint) -> ProjectionResult:
        """Find the nearest point on the route to point."""
        point.validate()
        if len(self._points) == 1:
            only = self._points[0]
            return ProjectionResult(
                perpendicular_distance_km=haversine_km(only, point),
                along_route_km=0.0,
                nearest=only,
                segment_index=-1,
            )

        best_idx, best_lng, best_lat = self._find_nearest_segment(point)
        nearest = GeoPoint(lat=best_lat, lng=best_lng)
        along = self._cumulative_km[best_idx] + haversine_km(self._points[best_idx], nearest)
        return ProjectionResult(
            perpendicular_distance_km=haversine_km(point, nearest),
            along_route_km=along,
            nearest=nearest,
            segment_index=best_idx,
        )

    def _find_nearest_segment(self, point: GeoPoint) -> tuple[int, float, float]:
        """Return (segment index, lng, lat) of the closest point; first minimum wins."""
        px, py = point.lng, point.lat
        best_idx = 0
        best_dist_sq = math.inf
        best_x, best_y = self._vertices[0]

        for i in range(len(self._vertices) - 1):
            ax, ay = self._vertices[i]
            bx, by = self._vertices[i + 1]
            cx, cy = _closest_on_segment(px, py, ax, ay, bx, by)
            dx, dy = px - cx, py - cy
            dist_sq = dx * dx + dy * dy
            if dist_sq < best_dist_sq:
                best_dist_sq = dist_sq
                best_idx = i
                best_x, best_y = cx, cy

        return best_idx, best_x, best_y


def _closest_on_segment(
    px: float, py: float,
    ax: float, ay: float,
    bx: float, by: float,
) -> tuple[float, float]:
    """Orthogonal projection of p onto segment a-b, clamped to its ends."""
    dx, dy = bx - ax, by - ay
    len_sq = dx * dx + dy * dy
    if len_sq <= 0.0:  # duplicate vertices
        return ax, ay
    t = max(0.0, min(1.0, ((px - ax) * dx + (py - ay) * dy) / len_sq))
    return ax + t * dx, ay + t * dy


def project_onto_route(coords, point: GeoPoint) -> ProjectionResult:
    """One-off projection of point onto a route given as [lng, lat] pairs."""
    return RouteProjector(coords).project(point)
