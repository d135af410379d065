"""Database models."""

from .folder import Folder
from .grant import FolderPermission, GrantLevel
from .document import Document
from .classification_rule import ClassificationRule
from .label import Label, DocumentLabel
from .activity import DocumentActivity

__all__ = [
    "Folder", "FolderPermission", "GrantLevel", "Document",
    "ClassificationRule", "Label", "DocumentLabel", "DocumentActivity",
]
