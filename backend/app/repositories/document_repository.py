"""Document repository for database operations.

Owns the visibility predicate used by every listing: a document is visible
to a user when they own it, or when its folder carries a viewer/editor grant
for them. The predicate is a correlated EXISTS, so a document reachable both
ways is still returned once.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, exists, func, or_
from sqlalchemy.orm import Query

from ..exceptions import DocumentNotFoundError
from ..models import Document, DocumentActivity, DocumentLabel, FolderPermission, GrantLevel, Label
from .base import BaseRepository

_SHARING_LEVELS = (GrantLevel.VIEWER, GrantLevel.EDITOR)


def _escape_like(term: str) -> str:
    """Make LIKE wildcards in a search term match literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class DocumentRepository(BaseRepository[Document]):
    """Repository for document CRUD and visibility queries."""

    model_class = Document
    not_found_error = DocumentNotFoundError

    # -- Predicates ---------------------------------------------------------

    @staticmethod
    def _granted_filter(user_id: str):
        """Document sits in a folder the user holds a viewer/editor grant on."""
        granted = (
            exists()
            .where(FolderPermission.folder_id == Document.folder_id)
            .where(FolderPermission.user_id == user_id)
            .where(FolderPermission.level.in_(_SHARING_LEVELS))
        )
        return and_(Document.folder_id.isnot(None), granted)

    @classmethod
    def visible_filter(cls, user_id: str):
        return or_(Document.owner_id == user_id, cls._granted_filter(user_id))

    @classmethod
    def shared_filter(cls, user_id: str):
        return and_(Document.owner_id != user_id, cls._granted_filter(user_id))

    # -- Queries --------------------------------------------------------------

    def query_visible(
        self,
        user_id: str,
        folder_id: Optional[int] = None,
        root_only: bool = False,
        search: Optional[str] = None,
        labels: Optional[Sequence[str]] = None,
    ) -> Query:
        """Visible documents, optionally narrowed to one folder or to the root scope."""
        query = self.db.query(Document).filter(self.visible_filter(user_id))

        if folder_id is not None:
            query = query.filter(Document.folder_id == folder_id)
        elif root_only:
            query = query.filter(Document.folder_id.is_(None))

        if search:
            pattern = f"%{_escape_like(search)}%"
            query = query.filter(or_(
                Document.title.ilike(pattern, escape="\\"),
                Document.content.ilike(pattern, escape="\\"),
            ))

        if labels:
            labelled = (
                exists()
                .where(DocumentLabel.document_id == Document.id)
                .where(DocumentLabel.label_id == Label.id)
                .where(Label.name.in_(list(labels)))
            )
            query = query.filter(labelled)

        return query

    def query_shared(self, user_id: str) -> Query:
        return self.db.query(Document).filter(self.shared_filter(user_id))

    @staticmethod
    def paginate(query: Query, page: int, limit: int) -> Tuple[List[Document], int]:
        """Most recently updated first. Returns (page_items, total)."""
        total = query.order_by(None).count()
        items = (
            query.order_by(Document.updated_at.desc(), Document.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    def list_in_folder(self, folder_id: int) -> List[Document]:
        return (
            self.db.query(Document)
            .filter(Document.folder_id == folder_id)
            .order_by(Document.created_at.desc(), Document.id.desc())
            .all()
        )

    def files_in_folder(self, folder_id: int) -> List[Tuple[int, Optional[str]]]:
        """(document id, stored file path) for every document directly in the folder."""
        return [
            (doc_id, path)
            for doc_id, path in self.db.query(Document.id, Document.file_path)
            .filter(Document.folder_id == folder_id)
            .all()
        ]

    def label_names(self, document_ids: Sequence[int]) -> Dict[int, List[str]]:
        """Label names attached to each document, alphabetically."""
        if not document_ids:
            return {}
        rows = (
            self.db.query(DocumentLabel.document_id, Label.name)
            .join(Label, Label.id == DocumentLabel.label_id)
            .filter(DocumentLabel.document_id.in_(list(document_ids)))
            .order_by(Label.name)
            .all()
        )
        names: Dict[int, List[str]] = {doc_id: [] for doc_id in document_ids}
        for doc_id, name in rows:
            names[doc_id].append(name)
        return names

    # -- Mutations -------------------------------------------------------------

    def create(self, **fields) -> Document:
        return self.add(Document(**fields))

    def delete_with_links(self, document_ids: Sequence[int]) -> int:
        """Remove label links, then activity rows, then the documents themselves."""
        ids = list(document_ids)
        if not ids:
            return 0
        self.db.query(DocumentLabel).filter(
            DocumentLabel.document_id.in_(ids)
        ).delete(synchronize_session=False)
        self.db.query(DocumentActivity).filter(
            DocumentActivity.document_id.in_(ids)
        ).delete(synchronize_session=False)
        return self.db.query(Document).filter(Document.id.in_(ids)).delete(synchronize_session=False)

    def recently_used(self, user_id: str, limit: int) -> List[Document]:
        """Visible documents the user acted on, most recent activity first."""
        latest = func.max(DocumentActivity.id)
        rows = (
            self.db.query(Document, latest)
            .join(DocumentActivity, DocumentActivity.document_id == Document.id)
            .filter(DocumentActivity.user_id == user_id, self.visible_filter(user_id))
            .group_by(Document.id)
            .order_by(latest.desc())
            .limit(limit)
            .all()
        )
        return [document for document, _ in rows]
