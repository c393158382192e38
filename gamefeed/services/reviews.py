"""
Review writes and listing.

Each write runs on the request session and, when it changes what the game's
published set looks like, recomputes the game's rating aggregate on that same
session before the request commits:

  create  — new review is published
  update  — publication toggled, or rating changed while published
  delete  — removed review was published

Edits to title / content / spoiler flag never touch the aggregate.
Every write locks the game row (`lock_game`) before touching a review, so
writers of the same game run one after another.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from opentelemetry import trace
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gamefeed.errors import ConflictError, ForbiddenError, NotFoundError
from gamefeed.models import Review, User
from gamefeed.schemas import (
    PageMeta,
    ReviewCreate,
    ReviewFilters,
    ReviewListResponse,
    ReviewResponse,
    ReviewUpdate,
)
from gamefeed.services.filters import PredicateBuilder
from gamefeed.services.rating_aggregator import lock_game, recompute_game_rating

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class RatingState:
    """The two review fields the aggregate depends on."""
    is_published: bool
    rating: float

    @classmethod
    def of(cls, review: Review) -> "RatingState":
        return cls(is_published=review.is_published, rating=review.rating)


def needs_rating_recompute(
    before: Optional[RatingState],
    after: Optional[RatingState],
) -> bool:
    """`before` is None for a create, `after` is None for a delete."""
    if before is None and after is None:
        return False
    if before is None:
        return after.is_published
    if after is None:
        return before.is_published
    if before.is_published != after.is_published:
        return True
    return after.is_published and before.rating != after.rating


async def has_reviewed(db: AsyncSession, user_id: str, game_id: str) -> bool:
    row = await db.execute(
        select(Review.id).where(Review.user_id == user_id, Review.game_id == game_id)
    )
    return row.first() is not None


async def create_review(db: AsyncSession, user_id: str, body: ReviewCreate) -> Review:
    with tracer.start_as_current_span("create_review") as span:
        span.set_attribute("review.game_id", body.game_id)

        game = await lock_game(db, body.game_id)
        author = await db.get(User, user_id)
        if author is None:
            raise NotFoundError("User not found")

        if await has_reviewed(db, user_id, body.game_id):
            raise ConflictError("You have already reviewed this game")

        review = Review(
            user_id=user_id,
            game_id=body.game_id,
            author=author,
            game=game,
            title=body.title,
            content=body.content,
            rating=body.rating,
            is_published=body.is_published,
            is_spoiler=body.is_spoiler,
        )
        db.add(review)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise ConflictError("You have already reviewed this game") from exc

        if needs_rating_recompute(None, RatingState.of(review)):
            await recompute_game_rating(db, body.game_id, trigger="create")

        logger.info("Review %s created by %s for game %s", review.id, user_id, body.game_id)
        return review


async def _owned_review(db: AsyncSession, review_id: str, user_id: str, action: str) -> Review:
    review = await db.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")
    if review.user_id != user_id:
        raise ForbiddenError(f"You can only {action} your own reviews")
    return review


async def update_review(
    db: AsyncSession,
    review_id: str,
    user_id: str,
    body: ReviewUpdate,
) -> Review:
    with tracer.start_as_current_span("update_review") as span:
        span.set_attribute("review.id", review_id)

        review = await _owned_review(db, review_id, user_id, "update")
        await lock_game(db, review.game_id)
        before = RatingState.of(review)

        for field, value in body.model_dump(exclude_unset=True).items():
            setattr(review, field, value)
        await db.flush()

        after = RatingState.of(review)
        recompute = needs_rating_recompute(before, after)
        span.set_attribute("review.rating_recompute", recompute)
        if recompute:
            await recompute_game_rating(db, review.game_id, trigger="update")

        logger.info("Review %s updated", review_id)
        return review


async def delete_review(db: AsyncSession, review_id: str, user_id: str) -> None:
    with tracer.start_as_current_span("delete_review"):
        review = await _owned_review(db, review_id, user_id, "delete")
        await lock_game(db, review.game_id)
        before = RatingState.of(review)
        game_id = review.game_id

        await db.delete(review)
        await db.flush()

        if needs_rating_recompute(before, None):
            await recompute_game_rating(db, game_id, trigger="delete")

        logger.info("Review %s deleted", review_id)


async def list_reviews(
    db: AsyncSession,
    filters: ReviewFilters,
    viewer_id: Optional[str] = None,
) -> ReviewListResponse:
    own_listing = filters.user_id is not None and filters.user_id == viewer_id

    where = PredicateBuilder()
    if filters.is_published is not None and (filters.is_published or own_listing):
        where.add(Review.is_published.is_(filters.is_published))
    elif not own_listing:
        # Drafts are only visible to their author
        where.add(Review.is_published.is_(True))
    where.add_if(filters.game_id, lambda v: Review.game_id == v)
    where.add_if(filters.user_id, lambda v: Review.user_id == v)
    where.add_if(filters.min_rating, lambda v: Review.rating >= v)
    where.add_if(filters.max_rating, lambda v: Review.rating <= v)
    where.add_if(filters.is_spoiler, lambda v: Review.is_spoiler.is_(v))
    clause = where.build()

    total = await db.scalar(select(func.count()).select_from(Review).where(clause))
    rows = await db.execute(
        select(Review)
        .where(clause)
        .order_by(Review.created_at.desc(), Review.id)
        .offset((filters.page - 1) * filters.limit)
        .limit(filters.limit)
    )
    items = [ReviewResponse.model_validate(r) for r in rows.scalars().all()]
    return ReviewListResponse(
        items=items,
        meta=PageMeta.build(filters.page, filters.limit, total or 0),
    )
