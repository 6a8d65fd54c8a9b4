"""
Comment Router - comment feed, posting, editing, reactions and translation
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.utils.responses import service_error_response, success_response
from database import get_db
from models.comment_models import EditCommentRequest, PostCommentRequest, ReactRequest, TranslateRequest
from services.comment_service import CommentService, comment_to_dict
from services.errors import ServiceError
from services.gateways import GeoIPClient, TranslationClient
from services.moderation_service import ModerationGate

comment_router = APIRouter(prefix="/api/comment", tags=["comment"])


def get_comment_service(db: AsyncSession = Depends(get_db)) -> CommentService:
    return CommentService(db, geoip=GeoIPClient(), translator=TranslationClient())


def get_moderation_gate(db: AsyncSession = Depends(get_db)) -> ModerationGate:
    return ModerationGate(db)


def _client_ip(request: Request) -> Optional[str]:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        # Take first IP in the list
        return xff.split(",")[0].strip()
    return request.client.host if request.client else None


@comment_router.get("/{video_id}")
async def get_all_comments(
    video_id: int,
    translate_to: Optional[str] = None,
    service: CommentService = Depends(get_comment_service),
):
    comments = await service.list_comments(video_id, translate_to=translate_to)
    return success_response(data={"comments": comments})


@comment_router.post("/postcomment")
async def post_comment(
    http_request: Request,
    request: Optional[PostCommentRequest] = Body(default=None),
    service: CommentService = Depends(get_comment_service),
):
    request = request or PostCommentRequest()
    try:
        comment = await service.post_comment(
            video_id=request.video_id,
            user_id=request.user_id,
            body=request.body,
            city=request.city,
            user_commented=request.user_commented,
            lang=request.lang,
            client_ip=_client_ip(http_request),
        )
    except ServiceError as e:
        return service_error_response(e)
    return success_response(data={"comment": comment_to_dict(comment)}, status=201)


@comment_router.post("/editcomment/{comment_id}")
async def edit_comment(
    comment_id: int,
    request: Optional[EditCommentRequest] = Body(default=None),
    service: CommentService = Depends(get_comment_service),
):
    request = request or EditCommentRequest()
    try:
        comment = await service.edit_comment(comment_id, request.body, actor_id=request.user_id)
    except ServiceError as e:
        return service_error_response(e)
    return success_response(data={"comment": comment_to_dict(comment)})


@comment_router.delete("/deletecomment/{comment_id}")
async def delete_comment(
    comment_id: int,
    service: CommentService = Depends(get_comment_service),
):
    try:
        comment = await service.delete_comment(comment_id)
    except ServiceError as e:
        return service_error_response(e)
    return success_response(data={"comment": comment_to_dict(comment)}, message="Comment removed")


@comment_router.post("/react/{comment_id}")
async def react_comment(
    comment_id: int,
    request: Optional[ReactRequest] = Body(default=None),
    gate: ModerationGate = Depends(get_moderation_gate),
):
    request = request or ReactRequest()
    try:
        result = await gate.react(comment_id, request.type)
    except ServiceError as e:
        return service_error_response(e)
    return success_response(data={
        "comment": comment_to_dict(result.comment),
        "auto_deleted": result.auto_deleted,
    })


@comment_router.post("/translate/{comment_id}")
async def translate_comment(
    comment_id: int,
    request: Optional[TranslateRequest] = Body(default=None),
    service: CommentService = Depends(get_comment_service),
):
    request = request or TranslateRequest()
    try:
        translated = await service.translate_comment(comment_id, request.to)
    except ServiceError as e:
        return service_error_response(e)
    return success_response(data={"translated_text": translated})
