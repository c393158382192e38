"""
Review endpoints (author taken from X-User-Id):
  POST   /reviews        — write a review; updates the game aggregate
  GET    /reviews        — filtered, paginated listing
  PATCH  /reviews/{id}   — edit rating / text / publication state
  DELETE /reviews/{id}   — remove a review

Every write and its aggregate recompute commit together or not at all.
"""
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gamefeed.auth import get_current_user_id
from gamefeed.database import get_db
from gamefeed.schemas import (
    ReviewCreate,
    ReviewFilters,
    ReviewListResponse,
    ReviewResponse,
    ReviewUpdate,
)
from gamefeed.services import reviews as review_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    body: ReviewCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    review = await review_service.create_review(db, user_id, body)
    await db.commit()
    return review


@router.get("/", response_model=ReviewListResponse)
async def list_reviews(
    filters: Annotated[ReviewFilters, Query()],
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db),
):
    return await review_service.list_reviews(db, filters, viewer_id=x_user_id)


@router.patch("/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_id: str,
    body: ReviewUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    review = await review_service.update_review(db, review_id, user_id, body)
    await db.commit()
    return review


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    review_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await review_service.delete_review(db, review_id, user_id)
    await db.commit()
