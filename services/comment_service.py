"""
Comment Service - posting, listing, editing and translating video comments
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from crud.comment import CommentRepository
from database_models import Comment
from services.errors import ForbiddenError, InvalidInputError, NotFoundError
from services.gateways import GeoIPClient, TranslationClient

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000
# Punctuation allowed alongside Unicode letters, digits and whitespace
ALLOWED_PUNCTUATION = frozenset(".,?!:;'\"-()/")


def clean_comment_body(body: Optional[str]) -> str:
    """
    Trim and validate a comment body.

    Raises:
        InvalidInputError: empty, too long, or containing characters outside the allowed set
    """
    cleaned = str(body or "").strip()
    if not cleaned or len(cleaned) > MAX_COMMENT_LENGTH:
        raise InvalidInputError("Comment length invalid", field="body")
    if not all(ch.isalnum() or ch.isspace() or ch in ALLOWED_PUNCTUATION for ch in cleaned):
        raise InvalidInputError("Comment contains forbidden characters", field="body")
    return cleaned


def comment_to_dict(comment: Comment) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "user_id": comment.user_id,
        "video_id": comment.video_id,
        "body": comment.body,
        "user_commented": comment.user_commented,
        "city": comment.city,
        "lang": comment.lang,
        "likes": comment.likes,
        "dislikes": comment.dislikes,
        "deleted": comment.deleted,
        "deleted_at": comment.deleted_at.isoformat() if comment.deleted_at else None,
        "commented_on": comment.commented_on.isoformat() if comment.commented_on else None,
    }


class CommentService:
    """Geo-IP and translation are optional enrichment; their failures never fail a request."""

    def __init__(
        self,
        db: AsyncSession,
        geoip: Optional[GeoIPClient] = None,
        translator: Optional[TranslationClient] = None,
    ):
        self.db = db
        self.geoip = geoip
        self.translator = translator
        self.comments = CommentRepository(db)

    async def post_comment(
        self,
        video_id: int,
        user_id: int,
        body: str,
        city: Optional[str] = None,
        user_commented: Optional[str] = None,
        lang: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> Comment:
        if not video_id:
            raise InvalidInputError("Missing required fields", field="video_id")
        cleaned = clean_comment_body(body)
        if not user_id:
            raise InvalidInputError("Auth required", field="user_id")

        if not city and self.geoip is not None:
            city = await self.geoip.city_for(client_ip)

        return await self.comments.create_comment({
            "user_id": user_id,
            "video_id": video_id,
            "body": cleaned,
            "user_commented": user_commented,
            "city": city,
            "lang": lang,
        })

    async def list_comments(self, video_id: int, translate_to: Optional[str] = None) -> List[Dict[str, Any]]:
        """Visible comments, newest first, each optionally carrying a translation."""
        comments = await self.comments.list_for_video(video_id)
        items = [comment_to_dict(c) for c in comments]
        if not translate_to or self.translator is None:
            return items

        translations = await asyncio.gather(
            *(self.translator.translate(c.body, translate_to) for c in comments)
        )
        for item, translated in zip(items, translations):
            item["translated_text"] = translated
            item["translated_to"] = translate_to
        return items

    async def edit_comment(self, comment_id: int, body: str, actor_id: Optional[int] = None) -> Comment:
        cleaned = clean_comment_body(body)
        comment = await self.comments.get_comment_by_id(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        if comment.deleted:
            raise NotFoundError("Comment unavailable")
        if actor_id is not None and actor_id != comment.user_id:
            raise ForbiddenError("Not allowed to edit")
        return await self.comments.update_body(comment, cleaned)

    async def delete_comment(self, comment_id: int) -> Comment:
        """Administrative retraction. Already-retracted comments keep their original deleted_at."""
        if not await self.comments.retract(comment_id):
            if await self.comments.get_comment_by_id(comment_id) is None:
                raise NotFoundError("Comment unavailable")
        return await self.comments.get_comment_by_id(comment_id)

    async def translate_comment(self, comment_id: int, target_lang: Optional[str]) -> Optional[str]:
        if not target_lang:
            raise InvalidInputError("Target language required", field="to")
        comment = await self.comments.get_comment_by_id(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        if self.translator is None:
            return None
        return await self.translator.translate(comment.body, target_lang)
