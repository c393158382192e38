"""
User endpoints:
  POST /users                  — create a user profile
  GET  /users/{id}             — fetch a user profile
  GET  /users/{id}/followers   — list followers
  GET  /users/{id}/following   — list followed users
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gamefeed.database import get_db
from gamefeed.models import User
from gamefeed.schemas import NeighborList, UserCreate, UserResponse
from gamefeed.services import follow_graph

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreate, db: AsyncSession = Depends(get_db)):
    with tracer.start_as_current_span("create_user"):
        existing = await db.execute(
            select(User).where(User.username == body.username)
        )
        if existing.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Username '{body.username}' already taken",
            )

        user = User(
            username=body.username,
            display_name=body.display_name,
            avatar=body.avatar,
        )
        db.add(user)
        await db.commit()

        logger.info("Created user %s (id=%s)", user.username, user.id)
        return user


async def _require_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, db: AsyncSession = Depends(get_db)):
    return await _require_user(db, user_id)


@router.get("/{user_id}/followers", response_model=NeighborList)
async def list_followers(user_id: str, db: AsyncSession = Depends(get_db)):
    await _require_user(db, user_id)
    followers = await follow_graph.list_followers(db, user_id)
    return NeighborList(user_id=user_id, users=sorted(followers))


@router.get("/{user_id}/following", response_model=NeighborList)
async def list_following(user_id: str, db: AsyncSession = Depends(get_db)):
    await _require_user(db, user_id)
    following = await follow_graph.list_following(db, user_id)
    return NeighborList(user_id=user_id, users=sorted(following))
