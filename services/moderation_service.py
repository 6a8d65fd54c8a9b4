import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from crud.comment import REACTION_COLUMNS, CommentRepository
from database_models import Comment, utcnow
from services.errors import InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReactionResult:
    comment: Comment
    auto_deleted: bool


class ModerationGate:
    """
    Applies like/dislike reactions and retracts a comment the first time its
    dislikes reach the threshold. Retraction is terminal.
    """

    def __init__(
        self,
        db: AsyncSession,
        threshold: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.threshold = threshold if threshold is not None else settings.dislike_threshold
        self.clock = clock or utcnow
        self.comments = CommentRepository(db)

    async def react(self, comment_id: int, reaction_type: str) -> ReactionResult:
        """
        Raises:
            InvalidInputError: reaction_type is not like or dislike
            NotFoundError: no such comment
        """
        if reaction_type not in REACTION_COLUMNS:
            raise InvalidInputError("Invalid type", field="type")

        if not await self.comments.increment_reaction(comment_id, reaction_type):
            raise NotFoundError("Comment not found")

        # Conditional on deleted=false, so only one racing caller reports the crossing
        auto_deleted = await self.comments.retract(
            comment_id,
            min_dislikes=self.threshold,
            now=self.clock(),
        )
        if auto_deleted:
            logger.info(f"Comment {comment_id} auto-retracted at {self.threshold} dislikes")

        comment = await self.comments.get_comment_by_id(comment_id)
        return ReactionResult(comment=comment, auto_deleted=auto_deleted)
