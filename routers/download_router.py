"""
Download Router - daily allowance checks, grants and download history
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.utils.responses import service_error_response, success_response
from database import get_db
from database_models import Download
from models.download_models import CheckLimitRequest, DeleteDownloadRequest, DownloadRequest
from services.errors import ServiceError
from services.quota_service import QuotaEnforcer

download_router = APIRouter(prefix="/api/download", tags=["download"])


def get_quota_enforcer(db: AsyncSession = Depends(get_db)) -> QuotaEnforcer:
    return QuotaEnforcer(db)


def _download_to_dict(download: Download) -> dict:
    return {
        "download_id": download.id,
        "video_id": download.video_id,
        "filename": download.original_filename,
        "filepath": download.original_filepath,
        "title": download.video_title,
        "is_premium_user": download.is_premium_user,
        "downloaded_at": download.downloaded_at.isoformat() if download.downloaded_at else None,
    }


@download_router.post("/check-limit")
async def check_limit(
    request: Optional[CheckLimitRequest] = Body(default=None),
    quota: QuotaEnforcer = Depends(get_quota_enforcer),
):
    request = request or CheckLimitRequest()
    try:
        allowance = await quota.check_download_allowance(request.user_id)
    except ServiceError as e:
        return service_error_response(e)
    return success_response(data=allowance.to_dict(), message=allowance.message)


@download_router.post("/download")
async def download_video(
    request: Optional[DownloadRequest] = Body(default=None),
    quota: QuotaEnforcer = Depends(get_quota_enforcer),
):
    """Record a grant; the client fetches the file from the returned locator."""
    request = request or DownloadRequest()
    try:
        download = await quota.grant_download(request.user_id, request.video_id)
    except ServiceError as e:
        return service_error_response(e)
    return success_response(data={"download": _download_to_dict(download)}, message="Download initiated")


@download_router.get("/history/{user_id}")
async def download_history(
    user_id: int,
    quota: QuotaEnforcer = Depends(get_quota_enforcer),
):
    try:
        downloads = await quota.get_download_history(user_id)
    except ServiceError as e:
        return service_error_response(e)
    return success_response(data={
        "downloads": [_download_to_dict(d) for d in downloads],
        "total": len(downloads),
    })


@download_router.delete("/delete/{download_id}")
async def delete_download(
    download_id: int,
    request: Optional[DeleteDownloadRequest] = Body(default=None),
    quota: QuotaEnforcer = Depends(get_quota_enforcer),
):
    request = request or DeleteDownloadRequest()
    try:
        await quota.soft_delete_download(request.user_id, download_id)
    except ServiceError as e:
        return service_error_response(e)
    return success_response(message="Download deleted successfully")
