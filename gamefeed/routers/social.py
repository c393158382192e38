"""
Social endpoints (viewer taken from X-User-Id):
  POST   /social/follow/{user_id}     — follow a user
  DELETE /social/follow/{user_id}     — unfollow
  GET    /social/following/{user_id}  — is the viewer following user_id?
  GET    /social/mutual/{user_id}     — users both follow
  GET    /social/feed                 — merged review + follow activity
  GET    /social/suggestions          — who to follow next
  GET    /social/stats[/{user_id}]    — follower / following / review counts
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gamefeed.auth import get_current_user_id
from gamefeed.config import settings
from gamefeed.database import get_db, get_session_factory
from gamefeed.schemas import (
    ActivityFeedResponse,
    ActivityType,
    FollowStatus,
    FollowSuggestion,
    MutualFollowsResponse,
    SocialStats,
)
from gamefeed.services import follow_graph
from gamefeed.services.feed_merger import get_activity_feed
from gamefeed.services.suggestions import suggest_follows

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/follow/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def follow_user(
    user_id: str,
    viewer_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await follow_graph.follow(db, viewer_id, user_id)
    await db.commit()


@router.delete("/follow/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow_user(
    user_id: str,
    viewer_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await follow_graph.unfollow(db, viewer_id, user_id)
    await db.commit()


@router.get("/following/{user_id}", response_model=FollowStatus)
async def is_following(
    user_id: str,
    viewer_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return FollowStatus(is_following=await follow_graph.is_following(db, viewer_id, user_id))


@router.get("/mutual/{user_id}", response_model=MutualFollowsResponse)
async def get_mutual_follows(
    user_id: str,
    viewer_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    mutual = await follow_graph.mutual_follows(db, viewer_id, user_id)
    return MutualFollowsResponse(mutual_follows=sorted(mutual))


@router.get("/feed", response_model=ActivityFeedResponse)
async def get_feed(
    page: int = Query(1, ge=1, le=settings.feed_max_page),
    limit: int = Query(settings.feed_default_limit, ge=1, le=settings.feed_max_limit),
    type: Optional[ActivityType] = Query(None, description="Restrict to one activity type"),
    cursor: Optional[str] = Query(None, description="next_cursor of the previous page"),
    viewer_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    return await get_activity_feed(
        db,
        session_factory,
        viewer_id,
        page=page,
        limit=limit,
        activity_type=type,
        cursor=cursor,
    )


@router.get("/suggestions", response_model=list[FollowSuggestion])
async def get_follow_suggestions(
    limit: int = Query(
        settings.suggestions_default_limit, ge=1, le=settings.suggestions_max_limit
    ),
    viewer_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await suggest_follows(db, viewer_id, limit)


@router.get("/stats", response_model=SocialStats)
async def get_own_stats(
    viewer_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await follow_graph.social_stats(db, viewer_id)


@router.get("/stats/{user_id}", response_model=SocialStats)
async def get_user_stats(user_id: str, db: AsyncSession = Depends(get_db)):
    return await follow_graph.social_stats(db, user_id)
