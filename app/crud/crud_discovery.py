from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy import and_, or_, delete
from sqlalchemy.dialects import postgresql, sqlite
from typing import List, Optional, Sequence, Set, Tuple
import logging

from app.models.discovery import Like, Match, Interaction
from app.models.enums import InteractionAction
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


def pair_key(user1_id: str, user2_id: str) -> Tuple[str, str]:
    """Canonical ordering of an undirected pair: smaller id first."""
    return (user1_id, user2_id) if user1_id < user2_id else (user2_id, user1_id)


def _insert_for(db: AsyncSession, model):
    dialect = db.bind.dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upserts are not supported on dialect '{dialect}'")


# --- Interaction log --- #

async def upsert_interaction(
    db: AsyncSession, *, viewer_id: str, target_id: str, action: InteractionAction
) -> None:
    """Record the viewer's latest action on target, replacing any earlier one. Does not commit."""
    now = utcnow()
    stmt = _insert_for(db, Interaction).values(
        viewer_id=viewer_id, target_id=target_id, action=action, created_at=now
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[Interaction.viewer_id, Interaction.target_id],
        set_={"action": action, "created_at": now},
    )
    await db.execute(stmt)


async def get_interaction(db: AsyncSession, *, viewer_id: str, target_id: str) -> Optional[Interaction]:
    result = await db.execute(
        select(Interaction).where(Interaction.viewer_id == viewer_id, Interaction.target_id == target_id)
    )
    return result.scalars().first()


# --- Like ledger --- #

async def insert_like(db: AsyncSession, *, liker_id: str, liked_id: str) -> bool:
    """Insert liker -> liked inside a savepoint.

    Returns False when the edge already existed; the duplicate key is absorbed
    and the enclosing transaction stays usable. Does not commit.
    """
    try:
        async with db.begin_nested():
            db.add(Like(liker_id=liker_id, liked_id=liked_id))
    except IntegrityError:
        logger.debug(f"Like {liker_id} -> {liked_id} already recorded")
        return False
    return True


async def get_like(db: AsyncSession, *, liker_id: str, liked_id: str) -> Optional[Like]:
    result = await db.execute(
        select(Like).where(Like.liker_id == liker_id, Like.liked_id == liked_id)
    )
    return result.scalars().first()


async def get_likes_received(db: AsyncSession, *, user_id: str) -> List[Like]:
    result = await db.execute(
        select(Like).where(Like.liked_id == user_id).order_by(Like.created_at.asc(), Like.id.asc())
    )
    return list(result.scalars().all())


async def get_likes_sent(db: AsyncSession, *, user_id: str) -> List[Like]:
    result = await db.execute(
        select(Like).where(Like.liker_id == user_id).order_by(Like.created_at.asc(), Like.id.asc())
    )
    return list(result.scalars().all())


async def delete_likes_between(db: AsyncSession, *, user1_id: str, user2_id: str) -> int:
    """Delete the like edges between two users in both directions. Does not commit."""
    stmt = delete(Like).where(
        or_(
            and_(Like.liker_id == user1_id, Like.liked_id == user2_id),
            and_(Like.liker_id == user2_id, Like.liked_id == user1_id),
        )
    )
    result = await db.execute(stmt)
    return result.rowcount or 0


async def delete_like(db: AsyncSession, *, liker_id: str, liked_id: str) -> int:
    """Delete the single directed edge liker -> liked. Does not commit."""
    result = await db.execute(
        delete(Like).where(Like.liker_id == liker_id, Like.liked_id == liked_id)
    )
    return result.rowcount or 0


# --- Match registry --- #

async def insert_match(db: AsyncSession, *, user1_id: str, user2_id: str) -> Optional[Match]:
    """Create the match for the pair inside a savepoint.

    Returns None when the pair is already matched (another transaction won the
    race); the caller fetches the surviving row. Does not commit.
    """
    user_a, user_b = pair_key(user1_id, user2_id)
    match = Match(user_a=user_a, user_b=user_b)
    try:
        async with db.begin_nested():
            db.add(match)
    except IntegrityError:
        logger.debug(f"Match {user_a} <-> {user_b} already exists")
        return None
    return match


async def get_match_between(db: AsyncSession, *, user1_id: str, user2_id: str) -> Optional[Match]:
    user_a, user_b = pair_key(user1_id, user2_id)
    result = await db.execute(
        select(Match).where(Match.user_a == user_a, Match.user_b == user_b)
    )
    return result.scalars().first()


async def get_matches_for_user(db: AsyncSession, *, user_id: str) -> List[Match]:
    result = await db.execute(
        select(Match)
        .where(or_(Match.user_a == user_id, Match.user_b == user_id))
        .order_by(Match.matched_at.desc(), Match.id.desc())
    )
    return list(result.scalars().all())


async def get_matched_partner_ids(
    db: AsyncSession, *, user_id: str, candidate_ids: Sequence[str]
) -> Set[str]:
    """Which of candidate_ids are matched with user_id."""
    if not candidate_ids:
        return set()
    candidates = list(candidate_ids)
    result = await db.execute(
        select(Match).where(
            or_(
                and_(Match.user_a == user_id, Match.user_b.in_(candidates)),
                and_(Match.user_b == user_id, Match.user_a.in_(candidates)),
            )
        )
    )
    return {m.partner_of(user_id) for m in result.scalars().all()}


async def delete_match_between(db: AsyncSession, *, user1_id: str, user2_id: str) -> int:
    """Delete the pair's match. Does not commit."""
    user_a, user_b = pair_key(user1_id, user2_id)
    result = await db.execute(
        delete(Match).where(Match.user_a == user_a, Match.user_b == user_b)
    )
    return result.rowcount or 0
