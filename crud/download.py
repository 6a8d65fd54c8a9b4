"""
DownloadRepository for database operations on Download model
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from database_models import Download, Video, utcnow


class DownloadRepository:
    """
    Repository class for Download database operations.
    Rows are only ever soft-deleted.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def count_in_window(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
        is_premium_user: bool = False,
    ) -> int:
        """
        Count grants for a user with start <= downloaded_at < end.

        Soft-deleted rows are counted: removing an entry from history must not
        hand back the day's allowance.
        """
        result = await self.db.execute(
            select(func.count(Download.id)).where(
                Download.user_id == user_id,
                Download.downloaded_at >= start,
                Download.downloaded_at < end,
                Download.is_premium_user == is_premium_user,
            )
        )
        return int(result.scalar_one())

    async def create_download(
        self,
        user_id: int,
        video: Video,
        is_premium_user: bool,
        downloaded_at: Optional[datetime] = None,
    ) -> Download:
        """Persist a grant, copying the video's locator and title as they are right now."""
        download = Download(
            user_id=user_id,
            video_id=video.id,
            downloaded_at=downloaded_at or utcnow(),
            is_premium_user=is_premium_user,
            original_filepath=video.filepath,
            original_filename=video.filename,
            video_title=video.title,
        )
        self.db.add(download)
        await self.db.flush()
        await self.db.refresh(download)
        return download

    async def get_download_by_id(self, download_id: int) -> Optional[Download]:
        result = await self.db.execute(select(Download).where(Download.id == download_id))
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: int) -> List[Download]:
        """Non-deleted grants for a user, newest first."""
        result = await self.db.execute(
            select(Download)
            .where(Download.user_id == user_id, Download.deleted.is_(False))
            .order_by(Download.downloaded_at.desc(), Download.id.desc())
        )
        return list(result.scalars().all())

    async def soft_delete(self, download: Download) -> Download:
        download.deleted = True
        await self.db.flush()
        return download
