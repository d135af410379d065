"""Which documents a user may see.

A document is visible to its owner, and to anyone holding a viewer or editor
grant on the folder that contains it. Listing and the title/content filter
both go through this predicate; single-document access additionally lets the
folder owner in.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..exceptions import ValidationError
from ..models import Document
from ..repositories import DocumentRepository, FolderRepository
from .access_resolver import AccessResolver

# Literal folder filter value meaning "documents not in any folder".
ROOT_SCOPE = "root"


@dataclass
class Page:
    """One page of documents plus pagination metadata."""

    items: List[Document]
    total: int
    page: int
    limit: int
    labels: Dict[int, List[str]] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


class VisibilityService:
    def __init__(self, db: Session, config: Optional[Settings] = None):
        self.db = db
        self.config = config or default_settings
        self.doc_repo = DocumentRepository(db)
        self.folder_repo = FolderRepository(db)
        self.access = AccessResolver(db)

    def _page_args(self, page: Optional[int], limit: Optional[int]):
        page = page or 1
        limit = limit or self.config.default_page_size
        if page < 1:
            raise ValidationError("page must be 1 or greater", field="page")
        if limit < 1:
            raise ValidationError("limit must be 1 or greater", field="limit")
        return page, min(limit, self.config.max_page_size)

    def _page(self, query, page: int, limit: int) -> Page:
        items, total = self.doc_repo.paginate(query, page, limit)
        labels = self.doc_repo.label_names([doc.id for doc in items])
        return Page(items=items, total=total, page=page, limit=limit, labels=labels)

    def visible_documents(
        self,
        user_id: str,
        folder_id=None,
        search: Optional[str] = None,
        labels: Optional[Sequence[str]] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page:
        """Owned documents plus documents in folders shared with the user.

        ``folder_id`` narrows to one folder, or to root-level documents when it
        is ``ROOT_SCOPE``.
        """
        page, limit = self._page_args(page, limit)
        root_only = folder_id == ROOT_SCOPE
        query = self.doc_repo.query_visible(
            user_id,
            folder_id=None if root_only else folder_id,
            root_only=root_only,
            search=search.strip() if search and search.strip() else None,
            labels=[name for name in (labels or []) if name],
        )
        return self._page(query, page, limit)

    def shared_documents(self, user_id: str, page: Optional[int] = None, limit: Optional[int] = None) -> Page:
        """Documents visible through a grant and owned by someone else."""
        page, limit = self._page_args(page, limit)
        return self._page(self.doc_repo.query_shared(user_id), page, limit)

    def can_view(self, document: Document, user_id: str) -> bool:
        if document.owner_id == user_id:
            return True
        if document.folder_id is None:
            return False
        folder = self.folder_repo.get_by_id_optional(document.folder_id)
        if folder is None:
            return False
        return self.access.level_for_folder(folder, user_id).can_read
