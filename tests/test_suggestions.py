"""
Follow suggestions ranked by mutual follows, newest account first on ties.
"""
from datetime import timedelta

import pytest

from conftest import T0, make_follow, make_user
from gamefeed.errors import ValidationError
from gamefeed.services.follow_graph import mutual_follows
from gamefeed.services.suggestions import suggest_follows


async def test_no_followees_no_suggestions(db):
    viewer = await make_user(db, "viewer")
    other = await make_user(db, "other")
    await make_follow(db, other, viewer)

    assert await suggest_follows(db, viewer.id) == []


async def test_ranked_by_mutual_follows_then_recency(db):
    viewer = await make_user(db, "viewer", created_at=T0)
    a = await make_user(db, "anna", created_at=T0 + timedelta(days=1))
    b = await make_user(db, "boris", created_at=T0 + timedelta(days=2))
    c = await make_user(db, "chen", created_at=T0 + timedelta(days=3))
    d = await make_user(db, "dina", created_at=T0 + timedelta(days=4))
    e = await make_user(db, "emil", created_at=T0 + timedelta(days=5))
    f = await make_user(db, "fara", created_at=T0 + timedelta(days=6))

    for follower, following in [
        (viewer, a), (viewer, b),
        # second hop from the viewer's followees
        (a, c), (a, d), (a, viewer), (a, b), (b, c), (b, e), (b, f),
        # what the candidates follow themselves
        (c, a), (c, b), (d, a),
    ]:
        await make_follow(db, follower, following)

    suggestions = await suggest_follows(db, viewer.id)

    assert [(s.user_id, s.mutual_follows_count) for s in suggestions] == [
        (c.id, 2),
        (d.id, 1),
        (f.id, 0),   # newer account than emil
        (e.id, 0),
    ]
    assert suggestions[0].username == "chen"
    for s in suggestions:
        assert s.mutual_follows_count == len(await mutual_follows(db, viewer.id, s.user_id))


async def test_excludes_viewer_and_already_followed(db):
    viewer = await make_user(db, "viewer")
    a = await make_user(db, "anna")
    b = await make_user(db, "boris")
    await make_follow(db, viewer, a)
    await make_follow(db, viewer, b)
    await make_follow(db, a, b)
    await make_follow(db, a, viewer)

    assert await suggest_follows(db, viewer.id) == []


async def test_limit_truncates(db):
    viewer = await make_user(db, "viewer")
    hub = await make_user(db, "hub")
    await make_follow(db, viewer, hub)
    for i in range(5):
        candidate = await make_user(db, f"cand{i}", created_at=T0 + timedelta(minutes=i))
        await make_follow(db, hub, candidate)

    suggestions = await suggest_follows(db, viewer.id, limit=3)

    assert [s.username for s in suggestions] == ["cand4", "cand3", "cand2"]


async def test_limit_bounds(db):
    viewer = await make_user(db, "viewer")

    with pytest.raises(ValidationError):
        await suggest_follows(db, viewer.id, limit=0)
    with pytest.raises(ValidationError):
        await suggest_follows(db, viewer.id, limit=51)
