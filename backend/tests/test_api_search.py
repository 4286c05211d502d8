"""API tests for the search and ride-wanted endpoints (database stubbed out)."""

import datetime
import uuid

from geoalchemy2.shape import from_shape
from shapely.geometry import LineString
from starlette.testclient import TestClient

from rideshare.api.search import passenger_listing_out
from rideshare.core import candidates
from rideshare.core.errors import NotFoundError
from rideshare.core.geodesy import GeoPoint
from rideshare.core.matcher import PassengerRouteCandidate, RideWantedCandidate, TripCandidate
from rideshare.core.ranking import Page
from rideshare.db.session import get_session
from rideshare.main import app
from rideshare.models.tables import Booking, DriverRoute, Trip, User

UTC = datetime.timezone.utc
DEPARTS = datetime.datetime(2026, 6, 2, 9, 0, tzinfo=UTC)
SEARCH_DATE = "2026-06-01T08:00:00Z"


async def _no_session():
    yield None


def _client() -> TestClient:
    app.dependency_overrides[get_session] = _no_session
    # No context manager: skip lifespan (database)
    return TestClient(app)


def _trip(trip_id: str) -> TripCandidate:
    return TripCandidate(
        id=trip_id,
        owner_id="driver-1",
        from_point=GeoPoint(lat=0.0, lng=0.0),
        to_point=GeoPoint(lat=1.0, lng=0.0),
        departure_time=DEPARTS,
        status="scheduled",
        details={"from_name": "South", "to_name": "North", "driver": {"id": "driver-1", "name": "Dana"}},
        driver_route_id="route-1",
        route_coordinates=[[0.0, 0.0], [0.0, 1.0]],
        seats_available=2,
    )


def _wanted(post_id: str, origin: GeoPoint, dest: GeoPoint) -> RideWantedCandidate:
    return RideWantedCandidate(
        id=post_id,
        owner_id="passenger-1",
        from_point=origin,
        to_point=dest,
        departure_time=DEPARTS,
        status="active",
        details={"from_name": "A", "to_name": "B"},
        flexibility_minutes=30,
    )


def test_find_drivers(monkeypatch):
    seen = {}

    async def fake_fetch(session, cutoff, pickup, dropoff, radius_km):
        seen.update(cutoff=cutoff, radius_km=radius_km)
        return [_trip("t1")]

    monkeypatch.setattr(candidates, "fetch_trip_candidates", fake_fetch)
    resp = _client().post("/api/search/drivers", json={
        "pickup": {"lat": 0.3, "lng": 0.01},
        "dropoff": {"lat": 0.7, "lng": 0.01},
        "radiusKm": 5,
        "date": SEARCH_DATE,
    })
    assert resp.status_code == 200
    data = resp.json()
    assert len(data) == 1
    assert data[0]["pickupDistanceKm"] == 1.1
    assert data[0]["trip"]["id"] == "t1"
    assert data[0]["trip"]["seatsAvailable"] == 2
    assert data[0]["trip"]["routeGeometry"]["type"] == "LineString"
    assert data[0]["trip"]["driver"]["name"] == "Dana"
    assert data[0]["pickupAlongRouteKm"] < data[0]["dropoffAlongRouteKm"]
    assert seen["radius_km"] == 5
    assert seen["cutoff"] == datetime.datetime(2026, 6, 1, 8, 0, tzinfo=UTC)


def test_find_drivers_defaults(monkeypatch):
    seen = {}

    async def fake_fetch(session, cutoff, pickup, dropoff, radius_km):
        seen["radius_km"] = radius_km
        return []

    monkeypatch.setattr(candidates, "fetch_trip_candidates", fake_fetch)
    resp = _client().post("/api/search/drivers", json={
        "pickup": {"lat": 0.3, "lng": 0.01},
        "dropoff": {"lat": 0.7, "lng": 0.01},
    })
    assert resp.status_code == 200
    assert resp.json() == []
    assert seen["radius_km"] == 10


def test_find_drivers_radius_out_of_bounds():
    resp = _client().post("/api/search/drivers", json={
        "pickup": {"lat": 0.3, "lng": 0.01},
        "dropoff": {"lat": 0.7, "lng": 0.01},
        "radiusKm": 60,
    })
    assert resp.status_code == 422


def test_find_passengers(monkeypatch):
    async def fake_fetch(session, cutoff, route_coords, radius_km):
        return [
            PassengerRouteCandidate(
                id="p1", owner_id="passenger-1",
                from_point=GeoPoint(lat=0.2, lng=0.0), to_point=GeoPoint(lat=0.6, lng=0.0),
                departure_time=DEPARTS, status="active",
            ),
        ]

    monkeypatch.setattr(candidates, "fetch_passenger_route_candidates", fake_fetch)
    resp = _client().post("/api/search/passengers", json={
        "routeGeometry": {"type": "LineString", "coordinates": [[0.0, 0.0], [0.0, 1.0]]},
        "date": SEARCH_DATE,
    })
    assert resp.status_code == 200
    data = resp.json()
    assert [d["passengerRoute"]["id"] for d in data] == ["p1"]
    assert data[0]["originDistanceKm"] == 0.0
    assert data[0]["passengerRoute"]["kind"] == "passenger_route"


def test_find_passengers_single_vertex_route(monkeypatch):
    seen = {}

    async def fake_fetch(session, cutoff, route_coords, radius_km):
        seen["route_coords"] = route_coords
        return []

    monkeypatch.setattr(candidates, "fetch_passenger_route_candidates", fake_fetch)
    resp = _client().post("/api/search/passengers", json={
        "routeGeometry": {"type": "LineString", "coordinates": [[-79.38, 43.65]]},
    })
    assert resp.status_code == 200
    assert resp.json() == []
    assert seen["route_coords"] == [(-79.38, 43.65)]


def test_find_passengers_bad_geometry():
    resp = _client().post("/api/search/passengers", json={
        "routeGeometry": {"type": "LineString", "coordinates": [[0.0, 0.0], [0.0, 95.0]]},
    })
    assert resp.status_code == 422
    assert "Latitude" in resp.json()["detail"]


def test_find_passengers_empty_geometry():
    resp = _client().post("/api/search/passengers", json={
        "routeGeometry": {"type": "LineString", "coordinates": []},
    })
    assert resp.status_code == 422


def test_ride_wanted_search(monkeypatch):
    toronto = GeoPoint(lat=43.6532, lng=-79.3832)
    montreal = GeoPoint(lat=45.5017, lng=-73.5673)

    async def fake_fetch(session, cutoff, from_point, to_point, margin_deg):
        return [
            _wanted("near", GeoPoint(lat=43.70, lng=-79.40), GeoPoint(lat=45.50, lng=-73.60)),
            _wanted("backwards", montreal, toronto),
        ]

    monkeypatch.setattr(candidates, "fetch_ride_wanted_candidates", fake_fetch)
    resp = _client().post("/api/ride-wanted/search", json={
        "from": {"lat": toronto.lat, "lng": toronto.lng},
        "to": {"lat": montreal.lat, "lng": montreal.lng},
        "date": SEARCH_DATE,
    })
    assert resp.status_code == 200
    data = resp.json()
    assert [d["rideWanted"]["id"] for d in data] == ["near"]
    assert data[0]["rideWanted"]["flexibilityMinutes"] == 30
    assert data[0]["fromDistanceKm"] == round(data[0]["fromDistanceKm"], 1)


def test_ride_wanted_radius_above_100_rejected():
    resp = _client().post("/api/ride-wanted/search", json={
        "from": {"lat": 0.0, "lng": 0.0},
        "to": {"lat": 1.0, "lng": 1.0},
        "radiusKm": 101,
    })
    assert resp.status_code == 422


def test_ride_wanted_list(monkeypatch):
    async def fake_list(session, now, limit, cursor=None):
        assert limit == 1
        assert cursor is None
        origin = GeoPoint(lat=0.0, lng=0.0)
        return Page(items=[_wanted("first", origin, origin)], next_cursor="second")

    monkeypatch.setattr(candidates, "list_ride_wanted", fake_list)
    resp = _client().get("/api/ride-wanted", params={"limit": 1})
    assert resp.status_code == 200
    data = resp.json()
    assert [i["id"] for i in data["items"]] == ["first"]
    assert data["nextCursor"] == "second"


def test_ride_wanted_not_found(monkeypatch):
    async def fake_get(session, post_id):
        raise NotFoundError("Ride wanted", post_id)

    monkeypatch.setattr(candidates, "get_ride_wanted", fake_get)
    resp = _client().get("/api/ride-wanted/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404
    assert "not found" in resp.json()["detail"]


def test_health():
    resp = _client().get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_zero_flexibility_is_kept():
    origin = GeoPoint(lat=0.0, lng=0.0)
    post = _wanted("flex0", origin, origin)
    post.flexibility_minutes = 0
    assert passenger_listing_out(post).flexibility_minutes == 0


def test_driver_route_lists_trips(monkeypatch):
    route_id = uuid.uuid4()
    later, sooner = uuid.uuid4(), uuid.uuid4()
    route = DriverRoute(
        id=route_id, driver_id="driver-1", status="active", seats_offered=3,
        from_place_id="a", from_name="South", from_lat=0.0, from_lng=0.0,
        to_place_id="b", to_name="North", to_lat=1.0, to_lng=0.0,
        route_geometry=from_shape(LineString([(0.0, 0.0), (0.0, 1.0)]), srid=4326),
        driver=User(id="driver-1", name="Dana"),
    )
    route.trips = [
        Trip(id=later, driver_id="driver-1", status="scheduled",
             departure_time=DEPARTS + datetime.timedelta(days=1),
             bookings=[Booking(passenger_id="p1", seats_booked=2, status="confirmed")]),
        Trip(id=sooner, driver_id="driver-1", status="scheduled", departure_time=DEPARTS,
             bookings=[Booking(passenger_id="p2", seats_booked=1, status="cancelled")]),
    ]

    async def fake_get(session, rid):
        return route

    monkeypatch.setattr(candidates, "get_driver_route", fake_get)
    resp = _client().get(f"/api/search/driver-routes/{route_id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["routeGeometry"]["coordinates"] == [[0.0, 0.0], [0.0, 1.0]]
    assert [t["id"] for t in data["trips"]] == [str(sooner), str(later)]
    assert [t["seatsAvailable"] for t in data["trips"]] == [3, 1]
