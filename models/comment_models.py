"""
Comment request models
"""
from typing import Optional
from pydantic import BaseModel, Field


class PostCommentRequest(BaseModel):
    video_id: Optional[int] = Field(default=None, alias="videoid")
    user_id: Optional[int] = Field(default=None, alias="userid")
    body: Optional[str] = Field(default=None, alias="commentbody")
    city: Optional[str] = None
    lang: Optional[str] = None
    user_commented: Optional[str] = Field(default=None, alias="usercommented")

    model_config = {"populate_by_name": True}


class EditCommentRequest(BaseModel):
    body: Optional[str] = Field(default=None, alias="commentbody")
    user_id: Optional[int] = Field(default=None, alias="userid")

    model_config = {"populate_by_name": True}


class ReactRequest(BaseModel):
    type: Optional[str] = None


class TranslateRequest(BaseModel):
    to: Optional[str] = None
