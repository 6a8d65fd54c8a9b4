"""
Tests for comment posting, editing, retraction and translation enrichment
"""
import json

import httpx
import pytest

from services.comment_service import CommentService, clean_comment_body
from services.errors import ForbiddenError, InvalidInputError, NotFoundError
from services.gateways import GeoIPClient, TranslationClient
from services.moderation_service import ModerationGate


def _geoip(city="Pune", status=200):
    def handler(request):
        return httpx.Response(status, json={"city": city})
    return GeoIPClient(base_url="https://geo.test/json", transport=httpx.MockTransport(handler))


def _translator(calls=None):
    def handler(request):
        payload = json.loads(request.content)
        if calls is not None:
            calls.append(payload)
        return httpx.Response(200, json={"translatedText": f"[{payload['target']}] {payload['q']}"})
    return TranslationClient(url="https://translate.test/translate", api_key="", transport=httpx.MockTransport(handler))


def _broken_translator():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)
    return TranslationClient(url="https://translate.test/translate", api_key="", transport=httpx.MockTransport(handler))


@pytest.mark.parametrize("body", ["Nice one!", "  trimmed  ", "Très bien: 10/10 (really)", "Привет мир"])
def test_clean_comment_body_accepts(body):
    assert clean_comment_body(body) == body.strip()


@pytest.mark.parametrize("body", [None, "", "   ", "x" * 1001, "<script>", "hi @you", "50% off #deal"])
def test_clean_comment_body_rejects(body):
    with pytest.raises(InvalidInputError):
        clean_comment_body(body)


@pytest.mark.asyncio
async def test_post_comment_resolves_city_from_ip(test_db, user, video):
    service = CommentService(test_db, geoip=_geoip("Pune"))

    comment = await service.post_comment(video.id, user.id, "First!", client_ip="203.0.113.7")

    assert comment.city == "Pune"
    assert comment.likes == 0 and comment.dislikes == 0
    assert comment.deleted is False


@pytest.mark.asyncio
async def test_post_comment_keeps_supplied_city(test_db, user, video):
    service = CommentService(test_db, geoip=_geoip("Pune"))

    comment = await service.post_comment(video.id, user.id, "Hello", city="Delhi", client_ip="203.0.113.7")

    assert comment.city == "Delhi"


@pytest.mark.asyncio
async def test_geo_failure_does_not_block_posting(test_db, user, video):
    service = CommentService(test_db, geoip=_geoip(status=503))

    comment = await service.post_comment(video.id, user.id, "Still here", client_ip="203.0.113.7")

    assert comment.id is not None
    assert comment.city is None


@pytest.mark.asyncio
async def test_post_comment_requires_fields(test_db, user, video):
    service = CommentService(test_db)

    with pytest.raises(InvalidInputError):
        await service.post_comment(None, user.id, "Hello")
    with pytest.raises(InvalidInputError):
        await service.post_comment(video.id, None, "Hello")
    with pytest.raises(InvalidInputError):
        await service.post_comment(video.id, user.id, "<b>bold</b>")


@pytest.mark.asyncio
async def test_list_comments_with_translation(test_db, user, video):
    calls = []
    service = CommentService(test_db, translator=_translator(calls))
    await service.post_comment(video.id, user.id, "Hello")

    items = await service.list_comments(video.id, translate_to="hi")

    assert len(items) == 1
    assert items[0]["body"] == "Hello"
    assert items[0]["translated_text"] == "[hi] Hello"
    assert items[0]["translated_to"] == "hi"
    assert calls[0]["source"] == "auto"


@pytest.mark.asyncio
async def test_translation_failure_leaves_comment_untranslated(test_db, user, video):
    service = CommentService(test_db, translator=_broken_translator())
    await service.post_comment(video.id, user.id, "Hello")

    items = await service.list_comments(video.id, translate_to="fr")

    assert items[0]["translated_text"] is None
    assert items[0]["body"] == "Hello"


@pytest.mark.asyncio
async def test_list_comments_excludes_retracted(test_db, user, video):
    service = CommentService(test_db)
    kept = await service.post_comment(video.id, user.id, "Keep me")
    dropped = await service.post_comment(video.id, user.id, "Drop me")
    await ModerationGate(test_db, threshold=1).react(dropped.id, "dislike")

    items = await service.list_comments(video.id)

    assert [item["id"] for item in items] == [kept.id]


@pytest.mark.asyncio
async def test_edit_comment(test_db, user, other_user, video):
    service = CommentService(test_db)
    comment = await service.post_comment(video.id, user.id, "Frist")

    edited = await service.edit_comment(comment.id, "First", actor_id=user.id)
    assert edited.body == "First"

    with pytest.raises(ForbiddenError):
        await service.edit_comment(comment.id, "Mine now", actor_id=other_user.id)
    with pytest.raises(NotFoundError):
        await service.edit_comment(9999, "Anything", actor_id=user.id)


@pytest.mark.asyncio
async def test_retracted_comment_cannot_be_edited(test_db, user, video):
    service = CommentService(test_db)
    auto_retracted = await service.post_comment(video.id, user.id, "Hot take")
    removed = await service.post_comment(video.id, user.id, "Off topic")
    await ModerationGate(test_db, threshold=1).react(auto_retracted.id, "dislike")
    await service.delete_comment(removed.id)

    for comment in (auto_retracted, removed):
        with pytest.raises(NotFoundError):
            await service.edit_comment(comment.id, "Rewritten", actor_id=user.id)
        await test_db.refresh(comment)
        assert comment.body != "Rewritten"


@pytest.mark.asyncio
async def test_delete_comment_keeps_first_retraction_time(test_db, user, video):
    service = CommentService(test_db)
    comment = await service.post_comment(video.id, user.id, "Going away")

    first = await service.delete_comment(comment.id)
    first_deleted_at = first.deleted_at
    again = await service.delete_comment(comment.id)

    assert again.deleted is True
    assert again.deleted_at == first_deleted_at
    with pytest.raises(NotFoundError):
        await service.delete_comment(9999)


@pytest.mark.asyncio
async def test_translate_comment(test_db, user, video):
    service = CommentService(test_db, translator=_translator())
    comment = await service.post_comment(video.id, user.id, "Hello")

    assert await service.translate_comment(comment.id, "es") == "[es] Hello"
    with pytest.raises(InvalidInputError):
        await service.translate_comment(comment.id, None)
    with pytest.raises(NotFoundError):
        await service.translate_comment(9999, "es")
