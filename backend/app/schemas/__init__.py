"""Pydantic schemas for API validation."""

from .document import (
    DocumentCreate,
    DocumentUpdate,
    DocumentResponse,
    DocumentListResponse,
)
from .folder import (
    FolderCreate,
    FolderResponse,
    FolderSummary,
    FolderDetail,
    TreeNode,
)
from .sharing import ShareRequest, PermissionResponse
from .classification import RuleCreate, RuleUpdate, RuleResponse
from .label import LabelCreate, LabelResponse

__all__ = [
    "DocumentCreate",
    "DocumentUpdate",
    "DocumentResponse",
    "DocumentListResponse",
    "FolderCreate",
    "FolderResponse",
    "FolderSummary",
    "FolderDetail",
    "TreeNode",
    "ShareRequest",
    "PermissionResponse",
    "RuleCreate",
    "RuleUpdate",
    "RuleResponse",
    "LabelCreate",
    "LabelResponse",
]
