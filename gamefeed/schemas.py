"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.
"""
import math
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

MIN_RATING = 0.0
MAX_RATING = 10.0


def _one_decimal(value: Optional[float]) -> Optional[float]:
    # Ratings are stored with one decimal of precision
    if value is not None and round(value, 1) != value:
        raise ValueError("rating must have at most one decimal place")
    return value


# ──────────────────────────── Users ───────────────────────────────────────

class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    display_name: Optional[str] = None
    avatar: Optional[str] = None


class UserSummary(BaseModel):
    id: str
    username: str
    display_name: Optional[str] = None
    avatar: Optional[str] = None

    class Config:
        from_attributes = True


class UserResponse(UserSummary):
    created_at: datetime


# ──────────────────────────── Games ───────────────────────────────────────

class GameCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., pattern="^[a-z0-9]+(?:-[a-z0-9]+)*$")


class GameSummary(BaseModel):
    id: str
    title: str
    slug: str

    class Config:
        from_attributes = True


class GameResponse(GameSummary):
    average_rating: float
    review_count: int
    created_at: datetime


# ──────────────────────────── Reviews ─────────────────────────────────────

class ReviewCreate(BaseModel):
    game_id: str
    title: Optional[str] = Field(None, max_length=100)
    content: str = Field(..., min_length=10, max_length=5000)
    rating: float = Field(..., ge=MIN_RATING, le=MAX_RATING)
    is_published: bool = True
    is_spoiler: bool = False

    @field_validator("rating")
    @classmethod
    def check_rating(cls, value):
        return _one_decimal(value)


class ReviewUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=100)
    content: Optional[str] = Field(None, min_length=10, max_length=5000)
    rating: Optional[float] = Field(None, ge=MIN_RATING, le=MAX_RATING)
    is_published: Optional[bool] = None
    is_spoiler: Optional[bool] = None

    # Only `title` may be cleared with an explicit null
    @field_validator("content", "rating", "is_published", "is_spoiler")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("field cannot be null")
        return value

    @field_validator("rating")
    @classmethod
    def check_rating(cls, value):
        return _one_decimal(value)


class ReviewResponse(BaseModel):
    id: str
    user_id: str
    game_id: str
    title: Optional[str]
    content: str
    rating: float
    is_published: bool
    is_spoiler: bool
    author: Optional[UserSummary] = None
    game: Optional[GameSummary] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ReviewFilters(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(12, ge=1, le=100)
    game_id: Optional[str] = None
    user_id: Optional[str] = None
    min_rating: Optional[float] = Field(None, ge=MIN_RATING, le=MAX_RATING)
    max_rating: Optional[float] = Field(None, ge=MIN_RATING, le=MAX_RATING)
    is_published: Optional[bool] = None
    is_spoiler: Optional[bool] = None


# ──────────────────────────── Pagination ──────────────────────────────────

class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PageMeta":
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if limit else 0,
            has_next=page * limit < total,
            has_prev=page > 1,
        )


class ReviewListResponse(BaseModel):
    items: list[ReviewResponse]
    meta: PageMeta


# ──────────────────────────── Feed ────────────────────────────────────────

class ActivityType(str, Enum):
    REVIEW = "review"
    FOLLOW = "follow"


class ActivityItem(BaseModel):
    """A review or follow event synthesised for one feed response."""
    id: str                      # '<type>_<source row id>'
    type: ActivityType
    user_id: str                 # actor
    user: Optional[UserSummary] = None
    target_id: Optional[str] = None
    target_type: Optional[str] = None   # 'game' | 'user'
    created_at: datetime
    metadata: dict[str, Any] = {}
    # Identity of the underlying row within its type; used for dedup + tie-breaks
    source_id: str = Field(..., exclude=True)


class FeedMeta(PageMeta):
    next_cursor: Optional[str] = None
    partial: bool = False
    degraded_sources: list[str] = []


class ActivityFeedResponse(BaseModel):
    items: list[ActivityItem]
    meta: FeedMeta


# ──────────────────────────── Social ──────────────────────────────────────

class FollowStatus(BaseModel):
    is_following: bool


class MutualFollowsResponse(BaseModel):
    mutual_follows: list[str]


class FollowSuggestion(BaseModel):
    user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar: Optional[str] = None
    mutual_follows_count: int


class SocialStats(BaseModel):
    followers_count: int
    following_count: int
    reviews_count: int


class NeighborList(BaseModel):
    user_id: str
    users: list[str]
