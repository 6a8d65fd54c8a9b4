"""
Quota Service - per-user daily download allowance
"""

import logging
from dataclasses import dataclass
from datetime import datetime, time as dtime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from crud.download import DownloadRepository
from crud.video import VideoRepository
from database_models import Download, utcnow
from services.entitlement_service import EntitlementService
from services.errors import ForbiddenError, InvalidInputError, NotFoundError, QuotaExceededError

logger = logging.getLogger(__name__)


def local_day_window(now: datetime) -> Tuple[datetime, datetime]:
    """
    The server-local calendar day containing `now`, as naive UTC bounds.

    Args:
        now: naive UTC timestamp

    Returns:
        (start, end) with start at local midnight and end at the next local midnight
    """
    local_date = now.replace(tzinfo=timezone.utc).astimezone().date()
    start = datetime.combine(local_date, dtime.min).astimezone(timezone.utc)
    end = datetime.combine(local_date + timedelta(days=1), dtime.min).astimezone(timezone.utc)
    return start.replace(tzinfo=None), end.replace(tzinfo=None)


@dataclass(frozen=True)
class AllowanceResult:
    can_download: bool
    # None means unlimited
    remaining: Optional[int]
    is_premium: bool
    downloads_today: int
    daily_limit: Optional[int]
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "can_download": self.can_download,
            "remaining": self.remaining,
            "unlimited": self.remaining is None,
            "is_premium": self.is_premium,
            "downloads_today": self.downloads_today,
            "daily_limit": self.daily_limit,
            "message": self.message,
        }


class QuotaEnforcer:
    """
    Decides whether a user may download now.

    Any active paid plan downloads without limit. Everyone else gets a fixed
    number of grants per local calendar day, counted from non-premium grants
    recorded in that window.
    """

    def __init__(
        self,
        db: AsyncSession,
        entitlements: Optional[EntitlementService] = None,
        daily_limit: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.clock = clock or utcnow
        self.entitlements = entitlements or EntitlementService(db, clock=self.clock)
        self.daily_limit = daily_limit if daily_limit is not None else settings.free_daily_download_limit
        self.downloads = DownloadRepository(db)
        self.videos = VideoRepository(db)

    async def check_download_allowance(self, user_id: int) -> AllowanceResult:
        """
        Raises:
            InvalidInputError: user_id missing
            NotFoundError: user does not exist
        """
        entitlement = await self.entitlements.get_entitlement(user_id)
        if entitlement.is_active:
            return AllowanceResult(
                can_download=True,
                remaining=None,
                is_premium=True,
                downloads_today=0,
                daily_limit=None,
                message="Premium user - unlimited downloads",
            )

        downloads_today = await self._count_today(user_id)
        remaining = max(0, self.daily_limit - downloads_today)
        can_download = remaining > 0
        return AllowanceResult(
            can_download=can_download,
            remaining=remaining,
            is_premium=False,
            downloads_today=downloads_today,
            daily_limit=self.daily_limit,
            message=(
                f"You can download {remaining} more video today"
                if can_download
                else "Daily limit reached. Upgrade to premium for unlimited downloads"
            ),
        )

    async def grant_download(self, user_id: int, video_id: int) -> Download:
        """
        Record a download grant.

        The tier flag is decided here from a fresh entitlement read, not from an
        earlier allowance check.

        Raises:
            InvalidInputError: user_id or video_id missing
            NotFoundError: user or video does not exist
            QuotaExceededError: free user already at today's limit
        """
        if not user_id or not video_id:
            raise InvalidInputError("Missing video ID or user ID")

        entitlement = await self.entitlements.get_entitlement(user_id)
        video = await self.videos.get_video_by_id(video_id)
        if video is None:
            raise NotFoundError("Video not found")

        is_premium = entitlement.is_active
        if not is_premium:
            downloads_today = await self._count_today(user_id)
            if downloads_today >= self.daily_limit:
                logger.info(f"Download quota exceeded: user={user_id} today={downloads_today}")
                raise QuotaExceededError(
                    "Daily download limit reached. Upgrade to premium",
                    daily_limit=self.daily_limit,
                )

        download = await self.downloads.create_download(
            user_id=user_id,
            video=video,
            is_premium_user=is_premium,
            downloaded_at=self.clock(),
        )
        logger.info(f"Download granted: user={user_id} video={video_id} premium={is_premium}")
        return download

    async def soft_delete_download(self, user_id: int, download_id: int) -> None:
        """
        Hide a grant from the user's history. The grant still counts toward
        the day it was made.

        Raises:
            InvalidInputError: download_id missing
            NotFoundError: no such download
            ForbiddenError: download belongs to another user
        """
        if not download_id:
            raise InvalidInputError("Invalid download ID", field="download_id")
        download = await self.downloads.get_download_by_id(download_id)
        if download is None:
            raise NotFoundError("Download not found")
        if download.user_id != user_id:
            raise ForbiddenError("Not authorized to delete this download")
        await self.downloads.soft_delete(download)

    async def get_download_history(self, user_id: int) -> List[Download]:
        if not user_id:
            raise InvalidInputError("Invalid user ID", field="user_id")
        return await self.downloads.list_for_user(user_id)

    async def _count_today(self, user_id: int) -> int:
        start, end = local_day_window(self.clock())
        return await self.downloads.count_in_window(user_id, start, end, is_premium_user=False)
