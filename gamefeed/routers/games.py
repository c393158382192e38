"""
Game endpoints — just enough to register a game and read its aggregate:
  POST /games       — register a game
  GET  /games/{id}  — game with average_rating / review_count
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gamefeed.database import get_db
from gamefeed.models import Game
from gamefeed.schemas import GameCreate, GameResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=GameResponse, status_code=status.HTTP_201_CREATED)
async def create_game(body: GameCreate, db: AsyncSession = Depends(get_db)):
    existing = await db.execute(select(Game.id).where(Game.slug == body.slug))
    if existing.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Slug '{body.slug}' already taken",
        )

    game = Game(title=body.title, slug=body.slug, average_rating=0.0, review_count=0)
    db.add(game)
    await db.commit()
    logger.info("Created game %s (id=%s)", game.slug, game.id)
    return game


@router.get("/{game_id}", response_model=GameResponse)
async def get_game(game_id: str, db: AsyncSession = Depends(get_db)):
    game = await db.get(Game, game_id)
    if not game:
        raise HTTPException(status_code=404, detail="Game not found")
    return game
