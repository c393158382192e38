"""
Shared fixtures: a throwaway SQLite store per test, a session on it, and an
HTTP client wired to the app with the store swapped in.
"""
import os

os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timedelta
from typing import Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import gamefeed.models  # noqa: F401  (registers tables)
from gamefeed.database import Base, get_db, get_session_factory
from gamefeed.main import app
from gamefeed.models import Follow, Game, Review, User

T0 = datetime(2024, 6, 1, 12, 0, 0)


def at(seconds: float) -> datetime:
    """A fixed timestamp `seconds` after T0."""
    return T0 + timedelta(seconds=seconds)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gamefeed.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


# ─────────────────────────── Row helpers ─────────────────────────────────

async def make_user(db, username: str, created_at: Optional[datetime] = None) -> User:
    user = User(username=username, display_name=username.title(), created_at=created_at or T0)
    db.add(user)
    await db.commit()
    return user


async def make_game(db, slug: str) -> Game:
    game = Game(title=slug.replace("-", " ").title(), slug=slug, average_rating=0.0, review_count=0)
    db.add(game)
    await db.commit()
    return game


async def make_review(
    db,
    author: User,
    game: Game,
    rating: float = 8.0,
    created_at: Optional[datetime] = None,
    is_published: bool = True,
) -> Review:
    review = Review(
        user_id=author.id,
        game_id=game.id,
        content="A thoroughly considered opinion.",
        rating=rating,
        is_published=is_published,
        created_at=created_at or T0,
        updated_at=created_at or T0,
    )
    db.add(review)
    await db.commit()
    return review


async def make_follow(db, follower: User, following: User, created_at: Optional[datetime] = None) -> Follow:
    edge = Follow(follower_id=follower.id, following_id=following.id, created_at=created_at or T0)
    db.add(edge)
    await db.commit()
    return edge
