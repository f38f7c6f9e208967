from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from app import schemas, services
from app.core.config import settings
from app.core.errors import InvalidOperation
from app.db.session import get_db
from app.security import get_current_user_id

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/profiles", response_model=schemas.ProfilesResponse)
async def get_profiles(
    min_age: int = Query(settings.DISCOVERY_MIN_AGE, alias="minAge", ge=0, le=150),
    max_age: int = Query(settings.DISCOVERY_MAX_AGE, alias="maxAge", ge=0, le=150),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    max_distance_km: float = Query(settings.DISCOVERY_MAX_DISTANCE_KM, alias="maxDistanceKm", gt=0),
    limit: int = Query(settings.DISCOVERY_PAGE_SIZE, ge=1, le=100),
    page: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Candidate feed for the current user, nearest first."""
    if lat is None or lon is None:
        raise InvalidOperation("lat and lon query parameters are required (e.g. ?lat=14.5995&lon=120.9842)")

    filters = schemas.DiscoveryFilters(
        min_age=min_age,
        max_age=max_age,
        latitude=lat,
        longitude=lon,
        max_distance_km=max_distance_km,
        limit=limit,
        page=page,
    )
    profiles = await services.discovery_service.fetch_candidates(db, viewer_id=user_id, filters=filters)
    return {"success": True, "profiles": profiles}


@router.get("/likes/received", response_model=schemas.ReceivedLikesResponse)
async def get_received_likes(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Users who liked me and are not matched with me yet."""
    likes = await services.discovery_service.list_received_likes(db, user_id=user_id)
    return {"success": True, "likes": likes}


@router.post("/likes/decline/{liker_id}", response_model=schemas.DeclineResponse)
async def decline_received_like(
    liker_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    result = await services.discovery_service.decline_like(db, current_user_id=user_id, liker_id=liker_id)
    return {"success": True, **result.model_dump()}


@router.get("/sent", response_model=schemas.SentLikesResponse)
async def get_sent_likes(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Users I have liked, matched or not."""
    items = await services.discovery_service.list_sent_likes(db, user_id=user_id)
    return {"success": True, "items": items}


@router.get("/matches", response_model=schemas.MatchesResponse)
async def get_matches(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    matches = await services.discovery_service.list_matches(db, user_id=user_id)
    return {"success": True, "matches": matches}


@router.get("/isMatched/{partner_id}", response_model=schemas.IsMatchedResponse)
async def get_is_matched(
    partner_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    matched = await services.discovery_service.is_matched(db, user_id=user_id, partner_id=partner_id)
    return {"success": True, "matched": matched}


@router.post("/unmatch/{partner_id}", response_model=schemas.UnmatchResponse)
async def unmatch_partner(
    partner_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Remove the match with partner and delete our conversation."""
    result = await services.discovery_service.unmatch(db, user_id=user_id, partner_id=partner_id)
    return {"success": True, **result.model_dump()}


@router.post("/{target_id}/like", response_model=schemas.LikeResponse)
async def like_user(
    target_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    result = await services.discovery_service.like(db, liker_id=user_id, liked_id=target_id)
    return {"success": True, **result.model_dump()}


@router.post("/{target_id}/skip", response_model=schemas.AckResponse)
async def skip_user(
    target_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    await services.discovery_service.skip(db, viewer_id=user_id, target_id=target_id)
    return {"success": True, "message": "Like or match removed successfully"}


@router.post("/{target_id}/view", response_model=schemas.AckResponse)
async def view_user(
    target_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    await services.discovery_service.record_view(db, viewer_id=user_id, target_id=target_id)
    return {"success": True}
