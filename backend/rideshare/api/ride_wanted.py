"""Ride-wanted REST API endpoints."""

import datetime
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.api.search import passenger_listing_out, search_cutoff
from rideshare.config import settings
from rideshare.core import candidates
from rideshare.core.geodesy import GeoPoint
from rideshare.core.matcher import MatchStats, match_ride_wanted
from rideshare.db.session import get_session
from rideshare.schemas.search import (
    PassengerListingOut,
    RideWantedMatchOut,
    RideWantedPage,
    RideWantedSearchRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ride-wanted", tags=["ride-wanted"])


@router.get("", response_model=RideWantedPage)
async def list_ride_wanted(
    limit: int = Query(default=settings.result_limit_default, ge=1, le=settings.result_limit_max),
    cursor: str | None = None,
    session: AsyncSession = Depends(get_session),
):
    """List active upcoming ride-wanted posts, soonest departure first."""
    now = datetime.datetime.now(datetime.timezone.utc)
    page = await candidates.list_ride_wanted(session, now, limit, cursor)
    return RideWantedPage(
        items=[passenger_listing_out(c) for c in page.items],
        next_cursor=page.next_cursor,
    )


@router.post("/search", response_model=list[RideWantedMatchOut])
async def search_ride_wanted(body: RideWantedSearchRequest, session: AsyncSession = Depends(get_session)):
    """Find posts whose origin and destination are near the driver's."""
    cutoff = search_cutoff(body.date)
    from_point = GeoPoint(lat=body.from_.lat, lng=body.from_.lng)
    to_point = GeoPoint(lat=body.to.lat, lng=body.to.lng)
    margin = settings.prefilter_degrees

    posts = await candidates.fetch_ride_wanted_candidates(session, cutoff, from_point, to_point, margin)
    stats = MatchStats()
    matches = match_ride_wanted(
        posts, from_point, to_point,
        radius_km=body.radius_km,
        cutoff=cutoff,
        limit=body.limit,
        prefilter_degrees=margin,
        stats=stats,
    )
    logger.debug("rideWanted.search: %s", stats)
    return [
        RideWantedMatchOut(
            ride_wanted=passenger_listing_out(m.candidate),
            from_distance_km=m.from_distance_km,
            to_distance_km=m.to_distance_km,
        )
        for m in matches
    ]


@router.get("/{post_id}", response_model=PassengerListingOut)
async def get_ride_wanted(post_id: str, session: AsyncSession = Depends(get_session)):
    """Get a single ride-wanted post."""
    rw = await candidates.get_ride_wanted(session, post_id)
    return passenger_listing_out(candidates.ride_wanted_candidate(rw))
