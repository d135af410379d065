"""Business logic services."""

from .access_resolver import AccessLevel, AccessResolver
from .classification_service import ClassificationResult, ClassificationService
from .document_service import DocumentService
from .folder_service import FolderService
from .label_service import LabelService
from .sharing_service import SharingService
from .storage import FileStorage, LocalFileStorage
from .visibility_service import VisibilityService

__all__ = [
    "AccessLevel",
    "AccessResolver",
    "ClassificationResult",
    "ClassificationService",
    "DocumentService",
    "FolderService",
    "LabelService",
    "SharingService",
    "FileStorage",
    "LocalFileStorage",
    "VisibilityService",
]
