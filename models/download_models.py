"""
Download request models
"""
from typing import Optional
from pydantic import BaseModel, Field


class CheckLimitRequest(BaseModel):
    user_id: Optional[int] = Field(default=None, alias="userid")

    model_config = {"populate_by_name": True}


class DownloadRequest(BaseModel):
    user_id: Optional[int] = Field(default=None, alias="userid")
    video_id: Optional[int] = Field(default=None, alias="videoid")

    model_config = {"populate_by_name": True}


class DeleteDownloadRequest(BaseModel):
    user_id: Optional[int] = Field(default=None, alias="userid")

    model_config = {"populate_by_name": True}
