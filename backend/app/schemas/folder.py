"""Folder and tree schemas."""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List

from .document import DocumentResponse


class FolderCreate(BaseModel):
    """Schema for creating a folder. Name rules are enforced by the service."""
    name: str
    parent_id: Optional[int] = None


class FolderRename(BaseModel):
    name: str


class FolderMoveRequest(BaseModel):
    """Move a folder under a new parent; ``null`` re-roots it."""
    parent_id: Optional[int] = None


class FolderCopyRequest(BaseModel):
    parent_id: Optional[int] = None


class FolderResponse(BaseModel):
    """Schema for folder response."""
    id: int
    name: str
    parent_id: Optional[int] = None
    owner_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FolderSummary(FolderResponse):
    """A folder as seen by one user."""
    access_level: str
    document_count: int = 0


class FolderDetail(BaseModel):
    folder: FolderSummary
    subfolders: List[FolderSummary]
    documents: List[DocumentResponse]


class FolderDeleteResponse(BaseModel):
    """Result of a delete; counts include the folder itself."""
    folder_id: int
    deleted_folders: int
    deleted_documents: int


class BreadcrumbItem(BaseModel):
    id: int
    name: str


class TreeNode(BaseModel):
    """Schema for tree navigation."""
    id: int
    name: str
    parent_id: Optional[int] = None
    owner_id: str
    access_level: str
    document_count: int = 0
    children: List['TreeNode'] = []
