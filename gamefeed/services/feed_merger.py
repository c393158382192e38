"""
Activity feed — merge of independently paginated activity sources.

  1. Interest set   — the viewer plus everyone the viewer follows.
  2. Fan-out        — every enabled source is asked for a full page
                      (not limit / n_sources) in parallel, each on its own
                      session and under its own deadline.
  3. Merge          — dedupe on (type, source row), newest first, ties
                      broken by (type, source row) ascending.
  4. Paginate       — first `limit` items; has_next when the merged window
                      overflows or any source still has rows behind it.
  5. Continuation   — next_cursor is the created_at of the last item; the
                      next call reads each source strictly before it.

Items created at exactly the cursor timestamp but cut off by the page
boundary are not returned on the following page (strict `<`). Without a
cursor, page N is served by reading N * limit rows per source and slicing
the merged result. Page numbers stop at `feed_max_page`; deeper reads
follow next_cursor.

`total` / `total_pages` describe the merged window that was read, not the
full history of the interest set.
"""
import asyncio
import base64
import logging
import math
import time
from datetime import datetime
from typing import Iterable, Optional, Sequence

from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gamefeed.config import settings
from gamefeed.errors import PartialDataError, ValidationError
from gamefeed.schemas import ActivityFeedResponse, ActivityItem, ActivityType, FeedMeta
from gamefeed.services.activity_sources import DEFAULT_SOURCES, ActivitySource, SourcePage
from gamefeed.services.follow_graph import list_following
from gamefeed.telemetry import (
    FEED_LATENCY,
    FEED_SOURCE_DEGRADED_TOTAL,
    FEED_SOURCE_ITEMS_TOTAL,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


# ─────────────────────────── Cursor ──────────────────────────────────────

def encode_cursor(created_at: datetime) -> str:
    return base64.urlsafe_b64encode(created_at.isoformat().encode()).decode()


def decode_cursor(cursor: str) -> datetime:
    try:
        return datetime.fromisoformat(base64.urlsafe_b64decode(cursor.encode()).decode())
    except ValueError as exc:
        raise ValidationError("Invalid feed cursor") from exc


# ─────────────────────────── Merge (pure) ────────────────────────────────

def merge_activities(batches: Iterable[Sequence[ActivityItem]]) -> list[ActivityItem]:
    """Dedupe and order activity items from any number of sources."""
    unique: dict[tuple[str, str], ActivityItem] = {}
    for batch in batches:
        for item in batch:
            unique.setdefault((item.type.value, item.source_id), item)

    merged = sorted(unique.values(), key=lambda i: (i.type.value, i.source_id))
    # Stable: equal timestamps keep the (type, source row) order from above
    merged.sort(key=lambda i: i.created_at, reverse=True)
    return merged


# ─────────────────────────── Fan-out ─────────────────────────────────────

async def _fetch_source(
    session_factory: async_sessionmaker,
    source: ActivitySource,
    author_ids: set[str],
    limit: int,
    before: Optional[datetime],
    timeout: float,
) -> SourcePage:
    with tracer.start_as_current_span(f"feed_source.{source.name}") as span:
        span.set_attribute("feed.source.limit", limit)
        async with session_factory() as session:
            try:
                page = await asyncio.wait_for(
                    source.fetch(session, author_ids, limit, before), timeout=timeout
                )
            except asyncio.TimeoutError as exc:
                raise PartialDataError(
                    source.name, f"{source.name} source exceeded {timeout:.2f}s"
                ) from exc
        span.set_attribute("feed.source.items", len(page.items))
        span.set_attribute("feed.source.exhausted", page.exhausted)
        FEED_SOURCE_ITEMS_TOTAL.labels(source=source.name).inc(len(page.items))
        return page


def _resolve_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.feed_default_limit
    if limit < 1 or limit > settings.feed_max_limit:
        raise ValidationError(f"limit must be between 1 and {settings.feed_max_limit}")
    return limit


async def get_activity_feed(
    db: AsyncSession,
    session_factory: async_sessionmaker,
    viewer_id: str,
    page: int = 1,
    limit: Optional[int] = None,
    activity_type: Optional[ActivityType] = None,
    cursor: Optional[str] = None,
    sources: Sequence[ActivitySource] = DEFAULT_SOURCES,
    timeout: Optional[float] = None,
) -> ActivityFeedResponse:
    limit = _resolve_limit(limit)
    if page < 1 or page > settings.feed_max_page:
        raise ValidationError(
            f"page must be between 1 and {settings.feed_max_page}; use next_cursor to read further"
        )
    before = decode_cursor(cursor) if cursor else None
    timeout = settings.feed_source_timeout_seconds if timeout is None else timeout

    start_time = time.time()
    with tracer.start_as_current_span("get_activity_feed") as span:
        span.set_attribute("user.id", viewer_id)

        interest = await list_following(db, viewer_id)
        interest.add(viewer_id)
        span.set_attribute("feed.interest_set_size", len(interest))

        enabled = [
            s for s in sources
            if activity_type is None or s.activity_type == activity_type
        ]

        # A cursor continues from a timestamp; otherwise read through `page`
        offset = 0 if before is not None else (page - 1) * limit
        window = offset + limit

        results = await asyncio.gather(
            *[
                _fetch_source(session_factory, s, interest, window, before, timeout)
                for s in enabled
            ],
            return_exceptions=True,
        )

        pages: list[SourcePage] = []
        degraded: list[str] = []
        for source, result in zip(enabled, results):
            if isinstance(result, PartialDataError):
                logger.warning(
                    "Feed for %s served without %s source: %s",
                    viewer_id, result.source, result.message,
                )
                FEED_SOURCE_DEGRADED_TOTAL.labels(source=result.source).inc()
                degraded.append(result.source)
            elif isinstance(result, BaseException):
                raise result
            else:
                pages.append(result)

        merged = merge_activities(p.items for p in pages)
        items = merged[offset:window]

        has_next = len(merged) > window or any(not p.exhausted for p in pages)
        total = len(merged)
        meta = FeedMeta(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
            has_next=has_next,
            has_prev=page > 1 or before is not None,
            next_cursor=encode_cursor(items[-1].created_at) if has_next and items else None,
            partial=bool(degraded),
            degraded_sources=degraded,
        )

        latency = time.time() - start_time
        FEED_LATENCY.observe(latency)
        span.set_attribute("feed.items_returned", len(items))
        span.set_attribute("feed.partial", meta.partial)
        span.set_attribute("feed.latency_ms", latency * 1000)

        return ActivityFeedResponse(items=items, meta=meta)
