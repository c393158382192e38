"""
Game rating aggregate.

`games.average_rating` / `games.review_count` always describe the game's
published reviews. The recompute runs on the caller's session, i.e. inside
the transaction of the review write that triggered it, and locks the game
row first so concurrent writers of the same game serialise instead of
overwriting each other. Review writes take that lock up front (`lock_game`);
the aggregate itself is a locking read so it counts reviews committed while
the transaction waited. Any failure aborts the whole transaction.
"""
import asyncio
import logging
from typing import Optional

from opentelemetry import trace
from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gamefeed.config import settings
from gamefeed.errors import ConsistencyError, NotFoundError
from gamefeed.models import Game, Review
from gamefeed.telemetry import RATING_RECOMPUTE_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _published_aggregate(game_id: str) -> Select:
    # Locking read: sees every committed review even when the transaction
    # holds an older snapshot from before it waited on the game row
    return (
        select(func.avg(Review.rating), func.count(Review.id))
        .where(Review.game_id == game_id, Review.is_published.is_(True))
        .with_for_update(read=True)
    )


async def lock_game(db: AsyncSession, game_id: str) -> Game:
    """
    Take the game row lock for the rest of the transaction.

    Review writes call this before touching any review row, so every writer
    on a game queues here and the aggregate read never waits on another
    writer's uncommitted review.
    """
    game = (
        await db.execute(select(Game).where(Game.id == game_id).with_for_update())
    ).scalar_one_or_none()
    if game is None:
        raise NotFoundError("Game not found")
    return game


async def _recompute(db: AsyncSession, game_id: str) -> Game:
    game = await lock_game(db, game_id)

    # Push pending review changes so the aggregate query sees them
    await db.flush()

    avg_rating, count = (await db.execute(_published_aggregate(game_id))).one()

    game.average_rating = float(avg_rating) if avg_rating is not None else 0.0
    game.review_count = count
    await db.flush()
    return game


async def recompute_game_rating(
    db: AsyncSession,
    game_id: str,
    trigger: str = "manual",
    timeout: Optional[float] = None,
) -> Game:
    """
    Rewrite the rating aggregate of `game_id` from its published reviews.

    Raises ConsistencyError when the store fails or the deadline passes;
    the caller's transaction must then be rolled back as a whole.
    """
    timeout = settings.rating_recompute_timeout_seconds if timeout is None else timeout

    with tracer.start_as_current_span("recompute_game_rating") as span:
        span.set_attribute("game.id", game_id)
        span.set_attribute("rating.trigger", trigger)
        try:
            game = await asyncio.wait_for(_recompute(db, game_id), timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Rating recompute for game %s timed out after %.1fs", game_id, timeout)
            raise ConsistencyError(
                f"Rating aggregate for game {game_id} could not be updated in time"
            ) from exc
        except SQLAlchemyError as exc:
            logger.exception("Rating recompute for game %s failed", game_id)
            raise ConsistencyError(
                f"Rating aggregate for game {game_id} could not be updated"
            ) from exc

        RATING_RECOMPUTE_TOTAL.labels(trigger=trigger).inc()
        span.set_attribute("rating.average", game.average_rating)
        span.set_attribute("rating.count", game.review_count)
        logger.info(
            "Game %s rating recomputed (%s): avg=%.2f count=%d",
            game_id, trigger, game.average_rating, game.review_count,
        )
        return game
