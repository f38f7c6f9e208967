from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy import Select, and_
import logging
import math

from app.models.user import User
from app.models.discovery import Interaction
from app.schemas.user import ProfileUpdate
from typing import List, Optional, Sequence, Dict, Any, Tuple
from app.core.errors import Conflict

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0088
KM_PER_DEGREE_LAT = 111.32


def normalize_email(email: str) -> str:
    return email.strip().lower()


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


async def get_user_by_id(db: AsyncSession, *, user_id: str) -> User | None:
    logger.debug(f"Fetching user by ID: {user_id}")
    result = await db.execute(select(User).filter(User.id == user_id))
    return result.scalars().first()


async def get_user_by_email(db: AsyncSession, *, email: str) -> User | None:
    logger.debug(f"Fetching user by email: {email}")
    result = await db.execute(select(User).filter(User.email == normalize_email(email)))
    return result.scalars().first()


async def get_users_by_ids(db: AsyncSession, *, user_ids: Sequence[str]) -> List[User]:
    if not user_ids:
        return []
    result = await db.execute(select(User).filter(User.id.in_(list(user_ids))))
    return list(result.scalars().all())


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    name: str = "",
    hashed_password: Optional[str] = None,
    **profile_fields: Any,
) -> User:
    db_user = User(
        email=normalize_email(email),
        name=name.strip(),
        hashed_password=hashed_password,
        **profile_fields,
    )
    db.add(db_user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Registration rejected, email already in use: {email}")
        raise Conflict("Email is already registered.")
    await db.refresh(db_user)
    logger.info(f"Created user {db_user.id}")
    return db_user


async def update_profile(db: AsyncSession, *, db_obj: User, obj_in: ProfileUpdate) -> User:
    update_data = obj_in.model_dump(exclude_unset=True)
    logger.info(f"Updating profile of user {db_obj.id}. Fields: {sorted(update_data)}")
    for field, value in update_data.items():
        if value is None and field in ("name", "tags", "latitude", "longitude"):
            # Non-nullable columns; an explicit null means "leave unchanged"
            continue
        setattr(db_obj, field, value)
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def set_profile_picture(db: AsyncSession, *, db_obj: User, url: str, public_id: str) -> User:
    db_obj.profile_picture_url = url
    db_obj.profile_picture_public_id = public_id
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


def _seen_by(viewer_id: str) -> Select:
    return select(Interaction.target_id).where(Interaction.viewer_id == viewer_id)


async def find_candidates(
    db: AsyncSession,
    *,
    viewer_id: str,
    min_age: int,
    max_age: int,
    limit: int,
    offset: int,
) -> List[User]:
    """Unseen users in the age range, oldest accounts first. No distance filter."""
    stmt = (
        select(User)
        .where(
            User.id != viewer_id,
            User.age >= min_age,
            User.age <= max_age,
            User.id.not_in(_seen_by(viewer_id)),
        )
        .order_by(User.created_at.asc(), User.id.asc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def find_candidates_near(
    db: AsyncSession,
    *,
    viewer_id: str,
    min_age: int,
    max_age: int,
    latitude: float,
    longitude: float,
    max_distance_km: float,
    limit: int,
    offset: int,
) -> List[Tuple[User, float]]:
    """Unseen users in the age range within max_distance_km, nearest first.

    A bounding box narrows the rows in SQL; exact great-circle distances are
    computed here so the query runs on any backend.
    """
    lat_delta = max_distance_km / KM_PER_DEGREE_LAT
    conditions = [
        User.id != viewer_id,
        User.age >= min_age,
        User.age <= max_age,
        User.id.not_in(_seen_by(viewer_id)),
        User.latitude.between(latitude - lat_delta, latitude + lat_delta),
    ]
    cos_lat = math.cos(math.radians(latitude))
    if cos_lat > 1e-6:
        lon_delta = max_distance_km / (KM_PER_DEGREE_LAT * cos_lat)
        if lon_delta < 180:
            west, east = longitude - lon_delta, longitude + lon_delta
            if west < -180:
                conditions.append((User.longitude >= west + 360) | (User.longitude <= east))
            elif east > 180:
                conditions.append((User.longitude >= west) | (User.longitude <= east - 360))
            else:
                conditions.append(User.longitude.between(west, east))

    # Only (id, lat, lon) tuples for the whole box are held in memory; full
    # rows are loaded for the requested page alone. Exact ordering needs every
    # in-radius distance, so the box is the upper bound on work per request.
    result = await db.execute(select(User.id, User.latitude, User.longitude).where(and_(*conditions)))
    nearby = []
    for user_id, user_lat, user_lon in result.all():
        distance = haversine_km(latitude, longitude, user_lat, user_lon)
        if distance <= max_distance_km:
            nearby.append((distance, user_id))
    nearby.sort()
    page = nearby[offset:offset + limit]
    if not page:
        return []

    users = {u.id: u for u in await get_users_by_ids(db, user_ids=[user_id for _, user_id in page])}
    return [(users[user_id], distance) for distance, user_id in page if user_id in users]


async def lock_users(db: AsyncSession, *, user_ids: Sequence[str]) -> Dict[str, User]:
    """Row-lock the given users in id order for the rest of the transaction.

    Callers that touch the same pair serialise on these locks. SQLite has no
    row locks; its sessions already hold the database write lock.
    """
    stmt = (
        select(User)
        .where(User.id.in_(sorted(set(user_ids))))
        .order_by(User.id)
        .with_for_update()
    )
    result = await db.execute(stmt)
    return {user.id: user for user in result.scalars().all()}
