"""Folder sharing schemas."""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from ..models import GrantLevel


class ShareRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=50)
    level: GrantLevel = GrantLevel.VIEWER


class PermissionUpdate(BaseModel):
    level: GrantLevel


class PermissionResponse(BaseModel):
    """A single grant on a folder."""
    id: int
    folder_id: int
    user_id: str
    level: GrantLevel
    granted_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ShareResponse(BaseModel):
    action: str  # 'created' or 'updated'
    permission: PermissionResponse


class SharedFolderResponse(BaseModel):
    """A folder someone else shared with the caller."""
    id: int
    name: str
    parent_id: Optional[int] = None
    owner_id: str
    level: GrantLevel
    document_count: int
    shared_at: datetime


class UserAccessResponse(BaseModel):
    user_id: str
    access_level: str
