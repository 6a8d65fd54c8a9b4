"""
Tests for comment reactions and dislike-threshold retraction
"""
from datetime import datetime, timedelta

import pytest

from crud.comment import CommentRepository
from services.errors import InvalidInputError, NotFoundError
from services.moderation_service import ModerationGate
from tests.conftest import FrozenClock


@pytest.fixture
async def comment(test_db, user, video):
    return await CommentRepository(test_db).create_comment({
        "user_id": user.id,
        "video_id": video.id,
        "body": "Great video!",
        "user_commented": "Viewer",
    })


@pytest.mark.asyncio
async def test_second_dislike_retracts_comment(test_db, comment):
    clock = FrozenClock(datetime(2026, 3, 1, 12, 0, 0))
    gate = ModerationGate(test_db, threshold=2, clock=clock)

    first = await gate.react(comment.id, "dislike")
    assert first.auto_deleted is False
    assert first.comment.deleted is False
    assert first.comment.dislikes == 1

    second = await gate.react(comment.id, "dislike")
    assert second.auto_deleted is True
    assert second.comment.deleted is True
    assert second.comment.dislikes == 2
    assert second.comment.deleted_at == clock.now


@pytest.mark.asyncio
async def test_retraction_happens_once(test_db, comment):
    clock = FrozenClock(datetime(2026, 3, 1, 12, 0, 0))
    gate = ModerationGate(test_db, threshold=2, clock=clock)
    await gate.react(comment.id, "dislike")
    await gate.react(comment.id, "dislike")
    retracted_at = clock.now

    clock.advance(timedelta(minutes=10))
    third = await gate.react(comment.id, "dislike")

    assert third.auto_deleted is False
    assert third.comment.deleted is True
    assert third.comment.dislikes == 3
    assert third.comment.deleted_at == retracted_at


@pytest.mark.asyncio
async def test_likes_never_retract(test_db, comment):
    gate = ModerationGate(test_db, threshold=2)

    for _ in range(3):
        result = await gate.react(comment.id, "like")

    assert result.auto_deleted is False
    assert result.comment.likes == 3
    assert result.comment.deleted is False


@pytest.mark.asyncio
async def test_retracted_comment_leaves_feed(test_db, comment, video):
    gate = ModerationGate(test_db, threshold=1)

    await gate.react(comment.id, "dislike")

    assert await CommentRepository(test_db).list_for_video(video.id) == []


@pytest.mark.asyncio
async def test_invalid_reaction_type(test_db, comment):
    gate = ModerationGate(test_db)

    with pytest.raises(InvalidInputError):
        await gate.react(comment.id, "love")
    with pytest.raises(InvalidInputError):
        await gate.react(comment.id, None)


@pytest.mark.asyncio
async def test_unknown_comment(test_db):
    with pytest.raises(NotFoundError):
        await ModerationGate(test_db).react(9999, "like")
