"""
Follow suggestions — two-hop traversal of the follow graph.

Candidates are the users followed by the viewer's followees, minus the
viewer and everyone the viewer already follows. A candidate's score is the
number of users both the viewer and the candidate follow; ties go to the
most recently created account.
"""
import logging
from collections import Counter
from typing import Optional

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gamefeed.config import settings
from gamefeed.errors import ValidationError
from gamefeed.models import Follow, User
from gamefeed.schemas import FollowSuggestion
from gamefeed.services.follow_graph import list_following

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def suggest_follows(
    db: AsyncSession,
    viewer_id: str,
    limit: Optional[int] = None,
) -> list[FollowSuggestion]:
    if limit is None:
        limit = settings.suggestions_default_limit
    if limit < 1 or limit > settings.suggestions_max_limit:
        raise ValidationError(
            f"limit must be between 1 and {settings.suggestions_max_limit}"
        )

    with tracer.start_as_current_span("follow_suggestions") as span:
        span.set_attribute("user.id", viewer_id)

        following = await list_following(db, viewer_id)
        if not following:
            return []

        # Second hop: who do the viewer's followees follow?
        rows = await db.execute(
            select(Follow.following_id).where(Follow.follower_id.in_(following))
        )
        candidates = set(rows.scalars().all()) - following - {viewer_id}
        if not candidates:
            return []

        # Per candidate: how many of the viewer's followees it also follows
        rows = await db.execute(
            select(Follow.follower_id).where(
                Follow.follower_id.in_(candidates),
                Follow.following_id.in_(following),
            )
        )
        mutual_counts = Counter(rows.scalars().all())

        users = await db.execute(select(User).where(User.id.in_(candidates)))
        ranked = sorted(
            users.scalars().all(),
            key=lambda u: (mutual_counts.get(u.id, 0), u.created_at, u.id),
            reverse=True,
        )[:limit]

        span.set_attribute("suggestions.candidates", len(candidates))
        logger.debug("%d suggestion candidates for %s", len(candidates), viewer_id)

        return [
            FollowSuggestion(
                user_id=u.id,
                username=u.username,
                display_name=u.display_name,
                avatar=u.avatar,
                mutual_follows_count=mutual_counts.get(u.id, 0),
            )
            for u in ranked
        ]
