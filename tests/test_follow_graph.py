"""
Follow graph store: edge uniqueness, self-follow rejection, neighbor sets
and mutual follows.
"""
import itertools

import pytest

from conftest import at, make_follow, make_game, make_review, make_user
from gamefeed.errors import (
    AlreadyFollowingError,
    ConflictError,
    NotFollowingError,
    NotFoundError,
    SelfFollowError,
    TargetNotFoundError,
    ValidationError,
)
from gamefeed.services import follow_graph


async def test_follow_creates_edge(db):
    alice = await make_user(db, "alice")
    bob = await make_user(db, "bob")

    await follow_graph.follow(db, alice.id, bob.id)
    await db.commit()

    assert await follow_graph.is_following(db, alice.id, bob.id)
    assert not await follow_graph.is_following(db, bob.id, alice.id)
    assert await follow_graph.list_following(db, alice.id) == {bob.id}
    assert await follow_graph.list_followers(db, bob.id) == {alice.id}


async def test_second_follow_is_a_conflict(db):
    alice = await make_user(db, "alice")
    bob = await make_user(db, "bob")

    alice_id, bob_id = alice.id, bob.id
    await follow_graph.follow(db, alice.id, bob.id)
    await db.commit()

    with pytest.raises(AlreadyFollowingError) as excinfo:
        await follow_graph.follow(db, alice.id, bob.id)
    assert isinstance(excinfo.value, ConflictError)
    assert excinfo.value.message == "You are already following this user"

    await db.rollback()
    assert await follow_graph.list_following(db, alice_id) == {bob_id}


async def test_self_follow_rejected_for_every_user(db):
    users = [await make_user(db, f"user{i}") for i in range(5)]

    for user in users:
        with pytest.raises(SelfFollowError) as excinfo:
            await follow_graph.follow(db, user.id, user.id)
        assert isinstance(excinfo.value, ValidationError)

    for user in users:
        assert await follow_graph.list_following(db, user.id) == set()


async def test_follow_missing_target(db):
    alice = await make_user(db, "alice")

    with pytest.raises(TargetNotFoundError):
        await follow_graph.follow(db, alice.id, "no-such-user")


async def test_unfollow(db):
    alice = await make_user(db, "alice")
    bob = await make_user(db, "bob")
    await make_follow(db, alice, bob)

    await follow_graph.unfollow(db, alice.id, bob.id)
    await db.commit()

    assert not await follow_graph.is_following(db, alice.id, bob.id)
    with pytest.raises(NotFollowingError) as excinfo:
        await follow_graph.unfollow(db, alice.id, bob.id)
    assert excinfo.value.message == "You are not following this user"


async def test_unfollow_self_rejected(db):
    alice = await make_user(db, "alice")

    with pytest.raises(SelfFollowError):
        await follow_graph.unfollow(db, alice.id, alice.id)


async def test_mutual_follows_is_intersection(db):
    a, b, c, d, e = [await make_user(db, name) for name in ("ann", "ben", "cat", "dan", "eve")]
    for follower, following in [(a, c), (a, d), (a, e), (b, c), (b, e), (b, a)]:
        await make_follow(db, follower, following)

    assert await follow_graph.mutual_follows(db, a.id, b.id) == {c.id, e.id}
    assert await follow_graph.mutual_follows(db, a.id, d.id) == set()


async def test_mutual_follows_symmetric(db):
    users = [await make_user(db, f"member{i}") for i in range(6)]
    # Irregular graph: i follows j when (i * 3 + j) % 4 != 0
    for i, j in itertools.permutations(range(6), 2):
        if (i * 3 + j) % 4 != 0:
            await make_follow(db, users[i], users[j], created_at=at(i * 10 + j))

    for x, y in itertools.combinations(users, 2):
        assert await follow_graph.mutual_follows(db, x.id, y.id) == \
            await follow_graph.mutual_follows(db, y.id, x.id)


async def test_social_stats(db):
    alice = await make_user(db, "alice")
    bob = await make_user(db, "bob")
    carol = await make_user(db, "carol")
    await make_follow(db, bob, alice)
    await make_follow(db, carol, alice)
    await make_follow(db, alice, bob)
    game = await make_game(db, "hollow-knight")
    other = await make_game(db, "celeste")
    await make_review(db, alice, game, is_published=True)
    await make_review(db, alice, other, is_published=False)

    stats = await follow_graph.social_stats(db, alice.id)

    assert stats.followers_count == 2
    assert stats.following_count == 1
    assert stats.reviews_count == 1


async def test_follow_requires_existing_follower(db):
    bob = await make_user(db, "bob")
    bob_id = bob.id

    with pytest.raises(NotFoundError) as excinfo:
        await follow_graph.follow(db, "ghost-id", bob.id)
    assert not isinstance(excinfo.value, TargetNotFoundError)

    await db.rollback()
    assert await follow_graph.list_followers(db, bob_id) == set()


async def test_concurrent_duplicate_follow_is_a_conflict(db, session_factory, monkeypatch):
    """
    A follow that passes the existence check while another session commits
    the same edge fails on the primary key and reports AlreadyFollowing.
    """
    alice = await make_user(db, "alice")
    bob = await make_user(db, "bob")
    alice_id, bob_id = alice.id, bob.id
    real_is_following = follow_graph.is_following
    checks = []

    async def check_then_lose_race(session, follower_id, following_id):
        seen = await real_is_following(session, follower_id, following_id)
        checks.append(seen)
        if len(checks) == 1:
            async with session_factory() as other:
                await follow_graph.follow(other, follower_id, following_id)
                await other.commit()
        return seen

    monkeypatch.setattr(follow_graph, "is_following", check_then_lose_race)

    with pytest.raises(AlreadyFollowingError):
        await follow_graph.follow(db, alice.id, bob.id)
    await db.rollback()

    # Both writers saw no edge before inserting
    assert checks == [False, False]
    assert await real_is_following(db, alice_id, bob_id)
    assert await follow_graph.list_followers(db, bob_id) == {alice_id}
