"""
CommentRepository for database operations on Comment model
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from database_models import Comment, utcnow

REACTION_COLUMNS = {
    "like": Comment.likes,
    "dislike": Comment.dislikes,
}


class CommentRepository:
    """
    Repository class for Comment database operations.

    Counter changes and retraction are issued as UPDATE statements evaluated by
    the database, never as read-modify-write on loaded objects.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_comment(self, comment_data: dict) -> Comment:
        comment = Comment(
            user_id=comment_data["user_id"],
            video_id=comment_data["video_id"],
            body=comment_data["body"],
            user_commented=comment_data.get("user_commented"),
            city=comment_data.get("city"),
            lang=comment_data.get("lang"),
            likes=0,
            dislikes=0,
        )
        self.db.add(comment)
        await self.db.flush()
        await self.db.refresh(comment)
        return comment

    async def get_comment_by_id(self, comment_id: int) -> Optional[Comment]:
        result = await self.db.execute(
            select(Comment)
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_video(self, video_id: int) -> List[Comment]:
        """Visible comments for a video, newest first."""
        result = await self.db.execute(
            select(Comment)
            .where(Comment.video_id == video_id, Comment.deleted.is_(False))
            .order_by(Comment.commented_on.desc(), Comment.id.desc())
        )
        return list(result.scalars().all())

    async def update_body(self, comment: Comment, body: str) -> Comment:
        comment.body = body
        await self.db.flush()
        await self.db.refresh(comment)
        return comment

    async def increment_reaction(self, comment_id: int, reaction_type: str) -> bool:
        """
        Atomically add one to the like or dislike counter.

        Returns:
            False when no comment matched comment_id
        """
        column = REACTION_COLUMNS[reaction_type]
        result = await self.db.execute(
            update(Comment)
            .where(Comment.id == comment_id)
            .values({column: column + 1})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def retract(
        self,
        comment_id: int,
        min_dislikes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Set deleted/deleted_at on a comment that is not already deleted.

        With min_dislikes, the row must also have at least that many dislikes.
        Only one concurrent caller can match the row.

        Returns:
            True when this call performed the retraction
        """
        stmt = update(Comment).where(
            Comment.id == comment_id,
            Comment.deleted.is_(False),
        )
        if min_dislikes is not None:
            stmt = stmt.where(Comment.dislikes >= min_dislikes)
        result = await self.db.execute(
            stmt.values(deleted=True, deleted_at=now or utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
