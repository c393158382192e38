"""
Follow graph store — the directed edge set (follower → following).

Every mutation is a single statement against the `follows` table, whose
composite primary key is the uniqueness guarantee. The pre-checks only give
callers a precise error; a concurrent duplicate that slips past them still
fails on the key and is reported the same way.
"""
import logging

from opentelemetry import trace
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from gamefeed.errors import (
    AlreadyFollowingError,
    NotFollowingError,
    NotFoundError,
    SelfFollowError,
    TargetNotFoundError,
)
from gamefeed.models import Follow, Review, User
from gamefeed.schemas import SocialStats
from gamefeed.telemetry import FOLLOW_EVENTS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def follow(db: AsyncSession, follower_id: str, following_id: str) -> Follow:
    with tracer.start_as_current_span("follow_user") as span:
        span.set_attribute("follow.follower_id", follower_id)
        span.set_attribute("follow.following_id", following_id)

        if follower_id == following_id:
            raise SelfFollowError("You cannot follow yourself")

        if await db.get(User, follower_id) is None:
            raise NotFoundError("Follower not found")
        if await db.get(User, following_id) is None:
            raise TargetNotFoundError("User not found")

        if await is_following(db, follower_id, following_id):
            raise AlreadyFollowingError("You are already following this user")

        edge = Follow(follower_id=follower_id, following_id=following_id)
        db.add(edge)
        try:
            await db.flush()
        except IntegrityError as exc:
            # Lost the race against a concurrent follow of the same pair
            raise AlreadyFollowingError("You are already following this user") from exc

        FOLLOW_EVENTS_TOTAL.labels(action="follow").inc()
        logger.info("%s followed %s", follower_id, following_id)
        return edge


async def unfollow(db: AsyncSession, follower_id: str, following_id: str) -> None:
    with tracer.start_as_current_span("unfollow_user"):
        if follower_id == following_id:
            raise SelfFollowError("You cannot unfollow yourself")

        result = await db.execute(
            delete(Follow).where(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id,
            )
        )
        if result.rowcount == 0:
            raise NotFollowingError("You are not following this user")

        FOLLOW_EVENTS_TOTAL.labels(action="unfollow").inc()
        logger.info("%s unfollowed %s", follower_id, following_id)


async def is_following(db: AsyncSession, follower_id: str, following_id: str) -> bool:
    row = await db.execute(
        select(Follow.follower_id).where(
            Follow.follower_id == follower_id,
            Follow.following_id == following_id,
        )
    )
    return row.first() is not None


async def list_following(db: AsyncSession, user_id: str) -> set[str]:
    rows = await db.execute(
        select(Follow.following_id).where(Follow.follower_id == user_id)
    )
    return set(rows.scalars().all())


async def list_followers(db: AsyncSession, user_id: str) -> set[str]:
    rows = await db.execute(
        select(Follow.follower_id).where(Follow.following_id == user_id)
    )
    return set(rows.scalars().all())


async def mutual_follows(db: AsyncSession, user_a: str, user_b: str) -> set[str]:
    """Users followed by both `user_a` and `user_b`."""
    fa = aliased(Follow)
    fb = aliased(Follow)
    rows = await db.execute(
        select(fa.following_id)
        .join(fb, fb.following_id == fa.following_id)
        .where(fa.follower_id == user_a, fb.follower_id == user_b)
    )
    return set(rows.scalars().all())


async def social_stats(db: AsyncSession, user_id: str) -> SocialStats:
    followers = await db.scalar(
        select(func.count()).select_from(Follow).where(Follow.following_id == user_id)
    )
    following = await db.scalar(
        select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
    )
    reviews = await db.scalar(
        select(func.count())
        .select_from(Review)
        .where(Review.user_id == user_id, Review.is_published.is_(True))
    )
    return SocialStats(
        followers_count=followers or 0,
        following_count=following or 0,
        reviews_count=reviews or 0,
    )
