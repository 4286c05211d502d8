"""Create users, driver_route, trip, booking, passenger_route and ride_wanted tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from geoalchemy2 import Geometry

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _endpoint_columns() -> list[sa.Column]:
    cols = []
    for side in ("from", "to"):
        cols += [
            sa.Column(f"{side}_place_id", sa.String(256), nullable=False),
            sa.Column(f"{side}_name", sa.String(256), nullable=False),
            sa.Column(f"{side}_address", sa.Text, nullable=True),
            sa.Column(f"{side}_lat", sa.Float, nullable=False),
            sa.Column(f"{side}_lng", sa.Float, nullable=False),
        ]
    return cols


def _user_fk(name: str) -> sa.Column:
    return sa.Column(name, sa.String(64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("username", sa.String(64), nullable=True, unique=True),
        sa.Column("image", sa.Text, nullable=True),
    )
    op.create_table(
        "driver_route",
        sa.Column("id", sa.Uuid, primary_key=True),
        _user_fk("driver_id"),
        *_endpoint_columns(),
        sa.Column("route_geometry", Geometry("LINESTRING", srid=4326), nullable=False),
        sa.Column("distance_km", sa.Float, nullable=True),
        sa.Column("duration_minutes", sa.Integer, nullable=True),
        sa.Column("seats_offered", sa.Integer, nullable=False, server_default="3"),
        sa.Column("price_per_seat", sa.Integer, nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        "trip",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "driver_route_id", sa.Uuid,
            sa.ForeignKey("driver_route.id", ondelete="CASCADE"), nullable=False,
        ),
        _user_fk("driver_id"),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="scheduled"),
    )
    op.create_index("ix_trip_status_departure", "trip", ["status", "departure_time"])
    op.create_table(
        "booking",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("trip_id", sa.Uuid, sa.ForeignKey("trip.id", ondelete="CASCADE"), nullable=False),
        _user_fk("passenger_id"),
        sa.Column("seats_booked", sa.Integer, nullable=False, server_default="1"),
        sa.Column("status", sa.String(32), nullable=False, server_default="confirmed"),
    )
    for table in ("passenger_route", "ride_wanted"):
        op.create_table(
            table,
            sa.Column("id", sa.Uuid, primary_key=True),
            _user_fk("passenger_id"),
            *_endpoint_columns(),
            sa.Column("departure_time", sa.DateTime(timezone=True), nullable=False),
            sa.Column("flexibility_minutes", sa.Integer, nullable=True, server_default="30"),
            sa.Column("seats_needed", sa.Integer, nullable=False, server_default="1"),
            sa.Column("max_price_per_seat", sa.Integer, nullable=True),
            sa.Column("description", sa.Text, nullable=True),
            sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        )
        op.create_index(f"ix_{table}_status_departure", table, ["status", "departure_time"])


def downgrade() -> None:
    op.drop_table("ride_wanted")
    op.drop_table("passenger_route")
    op.drop_table("booking")
    op.drop_table("trip")
    op.drop_table("driver_route")
    op.drop_table("users")
