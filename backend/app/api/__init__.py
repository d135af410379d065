"""API routes."""

from .documents import router as documents_router
from .folders import router as folders_router
from .classification import router as classification_router
from .labels import router as labels_router

__all__ = [
    "documents_router",
    "folders_router",
    "classification_router",
    "labels_router",
]
