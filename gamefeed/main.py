"""
Game review social API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Create tables if not present
  3. Expose Prometheus /metrics endpoint
Shutdown closes the database pool.
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from gamefeed.config import settings
from gamefeed.database import dispose_db, init_db
from gamefeed.errors import GameFeedError
from gamefeed.routers import games, reviews, social, users
from gamefeed.telemetry import instrument_app, setup_tracing

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open and close the store around the app's lifetime."""
    logger.info("Starting Game Feed API (env=%s)", settings.environment)
    await init_db()
    logger.info("API ready.")
    yield
    logger.info("Shutting down...")
    await dispose_db()


app = FastAPI(
    title="Game Feed API",
    description=(
        "Follow graph, merged activity feed, follow suggestions and "
        "transactional game rating aggregates for a game review community."
    ),
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(GameFeedError)
async def game_feed_error_handler(request: Request, exc: GameFeedError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(games.router, prefix="/games", tags=["Games"])
app.include_router(reviews.router, prefix="/reviews", tags=["Reviews"])
app.include_router(social.router, prefix="/social", tags=["Social"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
