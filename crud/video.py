"""
VideoRepository - read access to video records
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database_models import Video


class VideoRepository:
    """Videos are owned by the upload pipeline; this core only reads them."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_video_by_id(self, video_id: int) -> Optional[Video]:
        result = await self.db.execute(select(Video).where(Video.id == video_id))
        return result.scalar_one_or_none()

    async def create_video(self, video_data: dict) -> Video:
        """Insert a video row. Used by seeding scripts and tests."""
        video = Video(
            title=video_data["title"],
            filename=video_data["filename"],
            filepath=video_data["filepath"],
            uploader_id=video_data.get("uploader_id"),
        )
        self.db.add(video)
        await self.db.flush()
        await self.db.refresh(video)
        return video
