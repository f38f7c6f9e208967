"""
Discovery engine: candidate feed plus the like / skip / decline / unmatch
protocols over the like ledger, match registry and interaction log.

The service keeps no state of its own. Every call reads current state from
the session, decides, and writes. Coordination between concurrent callers is
left to the database: unique constraints on likes, matches and interactions,
plus row locks on the two users of a pair for the writes that can leave a
match without both of its likes.
"""
import logging
from typing import List, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app import crud, schemas
from app.core.errors import DiscoveryError, InvalidOperation, NotFound, PartialCompletion
from app.models.enums import InteractionAction
from app.socket_instance import emit_to_users

logger = logging.getLogger(__name__)


async def _lock_pair(db: AsyncSession, user1_id: str, user2_id: str) -> None:
    users = await crud.crud_user.lock_users(db, user_ids=[user1_id, user2_id])
    missing = [uid for uid in (user1_id, user2_id) if uid not in users]
    if missing:
        raise NotFound(f"User {missing[0]} not found.")


async def _require_user(db: AsyncSession, user_id: str) -> None:
    if not await crud.crud_user.get_user_by_id(db, user_id=user_id):
        raise NotFound(f"User {user_id} not found.")


def _reject_self(user_id: str, other_id: str, verb: str) -> None:
    if user_id == other_id:
        logger.warning(f"User {user_id} attempted to {verb} themselves.")
        raise InvalidOperation(f"Cannot {verb} yourself.")


async def fetch_candidates(
    db: AsyncSession, *, viewer_id: str, filters: schemas.DiscoveryFilters
) -> List[schemas.CandidateProfile]:
    """One page of profiles the viewer has not acted on yet.

    With a position the page is restricted to ``max_distance_km`` and sorted
    nearest first; without one it is ordered by account age.
    """
    await _require_user(db, viewer_id)
    offset = filters.page * filters.limit

    if filters.has_position:
        rows = await crud.crud_user.find_candidates_near(
            db,
            viewer_id=viewer_id,
            min_age=filters.min_age,
            max_age=filters.max_age,
            latitude=filters.latitude,
            longitude=filters.longitude,
            max_distance_km=filters.max_distance_km,
            limit=filters.limit,
            offset=offset,
        )
        profiles = []
        for user, distance in rows:
            profile = schemas.CandidateProfile.model_validate(user)
            profile.distance_km = round(distance, 3)
            profiles.append(profile)
    else:
        users = await crud.crud_user.find_candidates(
            db,
            viewer_id=viewer_id,
            min_age=filters.min_age,
            max_age=filters.max_age,
            limit=filters.limit,
            offset=offset,
        )
        profiles = [schemas.CandidateProfile.model_validate(u) for u in users]

    logger.debug(f"Fetched {len(profiles)} candidates for user {viewer_id} (page {filters.page})")
    return profiles


async def like(db: AsyncSession, *, liker_id: str, liked_id: str) -> schemas.LikeResult:
    """Record liker -> liked and form the match if the like is mutual.

    One transaction: the like edge, the interaction and the match commit
    together or not at all. Both users are row-locked first, so like(A, B)
    and like(B, A) on the same pair serialise and the later one always sees
    the earlier one's edge. A match is only written while both of its likes
    are visible under that lock.
    """
    _reject_self(liker_id, liked_id, "like")

    created = False
    try:
        await _lock_pair(db, liker_id, liked_id)
        await crud.crud_discovery.insert_like(db, liker_id=liker_id, liked_id=liked_id)
        await crud.crud_discovery.upsert_interaction(
            db, viewer_id=liker_id, target_id=liked_id, action=InteractionAction.LIKE
        )
        reverse = await crud.crud_discovery.get_like(db, liker_id=liked_id, liked_id=liker_id)
        if reverse is None:
            await db.commit()
            logger.info(f"User {liker_id} liked {liked_id}; no match yet")
            return schemas.LikeResult(matched=False)

        match = await crud.crud_discovery.get_match_between(db, user1_id=liker_id, user2_id=liked_id)
        if match is None:
            match = await crud.crud_discovery.insert_match(db, user1_id=liker_id, user2_id=liked_id)
            if match is None:
                # Another creator won; the like and interaction writes stand
                match = await crud.crud_discovery.get_match_between(db, user1_id=liker_id, user2_id=liked_id)
            else:
                created = True
        match_data = schemas.MatchSchema.model_validate(match) if match else None
        await db.commit()
    except DiscoveryError:
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        logger.error(f"Like {liker_id} -> {liked_id} aborted", exc_info=True)
        raise

    if not created:
        logger.info(f"User {liker_id} liked {liked_id}; joined existing match {match_data.id if match_data else None}")
        return schemas.LikeResult(matched=True, match=match_data)

    logger.info(f"Match {match_data.id} created between {match_data.user_a} and {match_data.user_b}")
    await emit_to_users("match_created", match_data.model_dump(mode="json"), [liker_id, liked_id])
    return schemas.LikeResult(matched=True, match=match_data)


async def record_view(db: AsyncSession, *, viewer_id: str, target_id: str) -> None:
    """Mark target as seen by viewer without expressing interest."""
    _reject_self(viewer_id, target_id, "view")
    await _require_user(db, target_id)
    await crud.crud_discovery.upsert_interaction(
        db, viewer_id=viewer_id, target_id=target_id, action=InteractionAction.VIEW
    )
    await db.commit()


async def skip(db: AsyncSession, *, viewer_id: str, target_id: str) -> None:
    """Hide target from viewer's feed and reset the relationship.

    Step 1 stores the skip. Step 2 removes likes in both directions and any
    match, in one transaction under the pair lock. If step 2 fails, step 1
    stays committed and PartialCompletion is raised; calling skip again
    finishes the job.
    """
    _reject_self(viewer_id, target_id, "skip")
    await _require_user(db, target_id)

    await crud.crud_discovery.upsert_interaction(
        db, viewer_id=viewer_id, target_id=target_id, action=InteractionAction.SKIP
    )
    await db.commit()

    try:
        await _lock_pair(db, viewer_id, target_id)
        likes_removed = await crud.crud_discovery.delete_likes_between(
            db, user1_id=viewer_id, user2_id=target_id
        )
        matches_removed = await crud.crud_discovery.delete_match_between(
            db, user1_id=viewer_id, user2_id=target_id
        )
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Skip {viewer_id} -> {target_id} only partially applied", exc_info=True)
        raise PartialCompletion(
            "Skip was recorded but the like/match cleanup failed; retry the request.",
            completed_steps=["interaction"],
        ) from e

    logger.info(
        f"User {viewer_id} skipped {target_id}; removed {likes_removed} like(s), {matches_removed} match(es)"
    )
    if matches_removed:
        await emit_to_users("unmatched", {"user_ids": [viewer_id, target_id]}, [viewer_id, target_id])


async def list_matches(db: AsyncSession, *, user_id: str) -> List[schemas.MatchWithPartner]:
    matches = await crud.crud_discovery.get_matches_for_user(db, user_id=user_id)
    partner_ids = [m.partner_of(user_id) for m in matches]
    partners = {u.id: u for u in await crud.crud_user.get_users_by_ids(db, user_ids=partner_ids)}

    results = []
    for match in matches:
        partner = partners.get(match.partner_of(user_id))
        if partner is None:
            logger.warning(f"Match {match.id} of user {user_id} points at a missing partner")
        results.append(
            schemas.MatchWithPartner(
                match=schemas.MatchSchema.model_validate(match),
                partner=schemas.PartnerProfile.model_validate(partner) if partner else None,
            )
        )
    return results


async def is_matched(db: AsyncSession, *, user_id: str, partner_id: str) -> bool:
    match = await crud.crud_discovery.get_match_between(db, user1_id=user_id, user2_id=partner_id)
    return match is not None


def _ordered_profiles(users, ordered_ids: Sequence[str]) -> List[schemas.UserPublic]:
    by_id = {u.id: u for u in users}
    return [schemas.UserPublic.model_validate(by_id[uid]) for uid in ordered_ids if uid in by_id]


async def list_received_likes(db: AsyncSession, *, user_id: str) -> List[schemas.UserPublic]:
    """Users who liked user_id and are not matched with them yet, in like order."""
    likes = await crud.crud_discovery.get_likes_received(db, user_id=user_id)
    if not likes:
        return []

    liker_ids = list(dict.fromkeys(like.liker_id for like in likes))
    matched = await crud.crud_discovery.get_matched_partner_ids(db, user_id=user_id, candidate_ids=liker_ids)
    pending_ids = [uid for uid in liker_ids if uid not in matched]
    if not pending_ids:
        return []

    users = await crud.crud_user.get_users_by_ids(db, user_ids=pending_ids)
    return _ordered_profiles(users, pending_ids)


async def list_sent_likes(db: AsyncSession, *, user_id: str) -> List[schemas.UserPublic]:
    """Users user_id has liked, in like order. Matched ones are included."""
    likes = await crud.crud_discovery.get_likes_sent(db, user_id=user_id)
    if not likes:
        return []
    liked_ids = [like.liked_id for like in likes]
    users = await crud.crud_user.get_users_by_ids(db, user_ids=liked_ids)
    return _ordered_profiles(users, liked_ids)


async def decline_like(db: AsyncSession, *, current_user_id: str, liker_id: str) -> schemas.DeclineResult:
    """Drop liker -> current_user. Interactions and matches are left alone.

    Takes the pair lock so a like from current_user that is forming a match
    right now cannot read the edge this call is deleting.
    """
    try:
        await crud.crud_user.lock_users(db, user_ids=[current_user_id, liker_id])
        deleted = await crud.crud_discovery.delete_like(db, liker_id=liker_id, liked_id=current_user_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info(f"User {current_user_id} declined like from {liker_id}, deleted={deleted}")
    return schemas.DeclineResult(deleted_count=deleted)


async def unmatch(db: AsyncSession, *, user_id: str, partner_id: str) -> schemas.UnmatchResult:
    """Remove the pair's match, then every message between them.

    Likes and interactions stay, so the feed keeps hiding the partner and
    either user may like again later. The two deletions commit separately;
    a failure in the second raises PartialCompletion.
    """
    _reject_self(user_id, partner_id, "unmatch")

    removed = await crud.crud_discovery.delete_match_between(db, user1_id=user_id, user2_id=partner_id)
    await db.commit()

    try:
        deleted_messages = await crud.crud_message.delete_messages_between(
            db, user1_id=user_id, user2_id=partner_id
        )
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Unmatch {user_id} / {partner_id}: match removed but messages remain", exc_info=True)
        raise PartialCompletion(
            "Match removed but conversation cleanup failed; retry the request.",
            completed_steps=["match"],
        ) from e

    logger.info(f"User {user_id} unmatched {partner_id}; match removed={bool(removed)}, messages={deleted_messages}")
    if removed:
        await emit_to_users("unmatched", {"user_ids": [user_id, partner_id]}, [user_id, partner_id])
    return schemas.UnmatchResult(removed_match=bool(removed), deleted_messages=deleted_messages)
