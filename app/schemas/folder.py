"""Pydantic schemas for folder endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class FolderCreateRequest(BaseModel):
    folder_name: str = Field(alias="folderName")
    password: str = ""


class FolderCreateResponse(BaseModel):
    id: int


class FolderResponse(BaseModel):
    id: int
    name: str
    is_locked: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class FolderListResponse(BaseModel):
    folders: list[FolderResponse]


class FolderUnlockRequest(BaseModel):
    password: str
