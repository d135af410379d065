"""Data access repositories."""

from .base import BaseRepository
from .document_repository import DocumentRepository
from .folder_repository import FolderRepository, Subtree, MISSING
from .grant_repository import GrantRepository
from .rule_repository import RuleRepository
from .label_repository import LabelRepository

__all__ = [
    "BaseRepository",
    "DocumentRepository",
    "FolderRepository",
    "Subtree",
    "MISSING",
    "GrantRepository",
    "RuleRepository",
    "LabelRepository",
]
