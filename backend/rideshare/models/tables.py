import datetime
import uuid

from geoalchemy2 import Geometry
from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rideshare.models.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # auth provider id
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    username: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)


class _Endpoints:
    """Origin/destination columns shared by every listing table."""

    from_place_id: Mapped[str] = mapped_column(String(256), nullable=False)
    from_name: Mapped[str] = mapped_column(String(256), nullable=False)
    from_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    from_lat: Mapped[float] = mapped_column(Float, nullable=False)
    from_lng: Mapped[float] = mapped_column(Float, nullable=False)

    to_place_id: Mapped[str] = mapped_column(String(256), nullable=False)
    to_name: Mapped[str] = mapped_column(String(256), nullable=False)
    to_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    to_lat: Mapped[float] = mapped_column(Float, nullable=False)
    to_lng: Mapped[float] = mapped_column(Float, nullable=False)


class DriverRoute(_Endpoints, Base):
    __tablename__ = "driver_route"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    driver_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    route_geometry = mapped_column(Geometry("LINESTRING", srid=4326), nullable=False)
    distance_km: Mapped[float | None] = mapped_column(Float, nullable=True)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    seats_offered: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    price_per_seat: Mapped[int | None] = mapped_column(Integer, nullable=True)  # cents
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")  # active, paused, closed
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    driver: Mapped["User"] = relationship()
    trips: Mapped[list["Trip"]] = relationship(back_populates="driver_route")


class Trip(Base):
    __tablename__ = "trip"
    __table_args__ = (
        Index("ix_trip_status_departure", "status", "departure_time"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    driver_route_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("driver_route.id", ondelete="CASCADE"), nullable=False
    )
    driver_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    departure_time: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # scheduled, in_progress, completed, cancelled
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="scheduled")

    driver_route: Mapped["DriverRoute"] = relationship(back_populates="trips")
    driver: Mapped["User"] = relationship()
    bookings: Mapped[list["Booking"]] = relationship(back_populates="trip")


class Booking(Base):
    __tablename__ = "booking"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("trip.id", ondelete="CASCADE"), nullable=False)
    passenger_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    seats_booked: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="confirmed")

    trip: Mapped["Trip"] = relationship(back_populates="bookings")


class PassengerRoute(_Endpoints, Base):
    __tablename__ = "passenger_route"
    __table_args__ = (
        Index("ix_passenger_route_status_departure", "status", "departure_time"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    passenger_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    departure_time: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    flexibility_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True, default=30)
    seats_needed: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_price_per_seat: Mapped[int | None] = mapped_column(Integer, nullable=True)  # cents
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")  # active, fulfilled, closed

    passenger: Mapped["User"] = relationship()


class RideWanted(_Endpoints, Base):
    __tablename__ = "ride_wanted"
    __table_args__ = (
        Index("ix_ride_wanted_status_departure", "status", "departure_time"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    passenger_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    departure_time: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    flexibility_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True, default=30)
    seats_needed: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_price_per_seat: Mapped[int | None] = mapped_column(Integer, nullable=True)  # cents
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # active, fulfilled, cancelled, expired
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")

    passenger: Mapped["User"] = relationship()
