"""
Read-only activity sources for the feed.

Each source turns rows authored by an interest set into ActivityItems,
newest first, bounded by an optional `before` timestamp. Sources page
independently: they read one row past the requested limit so a page can
say whether the source has anything left beyond it.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from gamefeed.models import Follow, Review
from gamefeed.schemas import ActivityItem, ActivityType, UserSummary
from gamefeed.services.filters import PredicateBuilder


@dataclass
class SourcePage:
    items: list[ActivityItem]
    exhausted: bool   # True when no row exists beyond `items`


class ActivitySource:
    activity_type: ActivityType

    @property
    def name(self) -> str:
        return self.activity_type.value

    async def fetch(
        self,
        db: AsyncSession,
        author_ids: Iterable[str],
        limit: int,
        before: Optional[datetime] = None,
    ) -> SourcePage:
        author_ids = list(author_ids)
        if not author_ids or limit <= 0:
            return SourcePage(items=[], exhausted=True)

        rows = await db.execute(self._query(author_ids, before).limit(limit + 1))
        records = rows.scalars().all()
        return SourcePage(
            items=[self._to_item(r) for r in records[:limit]],
            exhausted=len(records) <= limit,
        )

    def _query(self, author_ids: list[str], before: Optional[datetime]) -> Select:
        raise NotImplementedError

    def _to_item(self, row) -> ActivityItem:  # noqa: ANN001
        raise NotImplementedError


class ReviewActivitySource(ActivitySource):
    """Published reviews written by the interest set."""

    activity_type = ActivityType.REVIEW

    def _query(self, author_ids: list[str], before: Optional[datetime]) -> Select:
        where = (
            PredicateBuilder()
            .add(Review.user_id.in_(author_ids))
            .add(Review.is_published.is_(True))
            .add_if(before, lambda ts: Review.created_at < ts)
        )
        return (
            select(Review)
            .where(where.build())
            .order_by(Review.created_at.desc(), Review.id)
        )

    def _to_item(self, review: Review) -> ActivityItem:
        game = review.game
        return ActivityItem(
            id=f"review_{review.id}",
            type=ActivityType.REVIEW,
            user_id=review.user_id,
            user=UserSummary.model_validate(review.author) if review.author else None,
            target_id=review.game_id,
            target_type="game",
            created_at=review.created_at,
            metadata={
                "review": {
                    "id": review.id,
                    "title": review.title,
                    "rating": review.rating,
                    "is_spoiler": review.is_spoiler,
                    "game": (
                        {"id": game.id, "title": game.title, "slug": game.slug}
                        if game else None
                    ),
                }
            },
            source_id=review.id,
        )


class FollowActivitySource(ActivitySource):
    """Follow edges created by the interest set."""

    activity_type = ActivityType.FOLLOW

    def _query(self, author_ids: list[str], before: Optional[datetime]) -> Select:
        where = (
            PredicateBuilder()
            .add(Follow.follower_id.in_(author_ids))
            .add_if(before, lambda ts: Follow.created_at < ts)
        )
        return (
            select(Follow)
            .where(where.build())
            .order_by(Follow.created_at.desc(), Follow.follower_id, Follow.following_id)
        )

    def _to_item(self, edge: Follow) -> ActivityItem:
        target = edge.following
        return ActivityItem(
            id=f"follow_{edge.follower_id}_{edge.following_id}",
            type=ActivityType.FOLLOW,
            user_id=edge.follower_id,
            user=UserSummary.model_validate(edge.follower) if edge.follower else None,
            target_id=edge.following_id,
            target_type="user",
            created_at=edge.created_at,
            metadata={
                "target_user": (
                    UserSummary.model_validate(target).model_dump() if target else None
                ),
            },
            source_id=f"{edge.follower_id}_{edge.following_id}",
        )


DEFAULT_SOURCES: tuple[ActivitySource, ...] = (
    ReviewActivitySource(),
    FollowActivitySource(),
)
