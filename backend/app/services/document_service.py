"""Document service: the upload entry point and single-document operations.

Upload runs classification before persistence so the stored row already
carries its final folder. Every other operation resolves access through the
document's owner and the grants on its folder.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..exceptions import ForbiddenRoleError, LabelNotFoundError, NotFoundOrDeniedError, ValidationError
from ..models import Document, DocumentActivity, GrantLevel
from ..models.document import TITLE_MAX_LENGTH
from ..repositories import DocumentRepository, FolderRepository, GrantRepository, LabelRepository
from ..schemas.document import DocumentFileResponse
from . import activity_service
from .access_resolver import AccessResolver
from .classification_service import ClassificationService
from .storage import FileStorage, LocalFileStorage
from .visibility_service import VisibilityService

logger = logging.getLogger(__name__)

# Marks an update field the caller did not send.
UNSET = object()


def validate_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise ValidationError("Title is required", field="title")
    title = title.strip()
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title must be {TITLE_MAX_LENGTH} characters or less", field="title")
    return title


def clean_text(text: Optional[str]) -> Optional[str]:
    """Strip NUL characters, which PostgreSQL text columns reject."""
    if text is None:
        return None
    return text.replace("\x00", "")


class DocumentService:
    """Deep module for document operations.

    Public methods:
        create_document   -- classify, then persist an uploaded document
        get_document      -- single document, if the caller may view it
        update_document   -- rename and/or move between folders
        delete_document   -- owner only; file removed after commit
        view_document / download_document -- record activity, return file location
        add_labels / remove_labels        -- owner only
        shared_users      -- who else can see it through its folder
        recent_documents  -- documents the caller recently acted on
        activity          -- activity history of a viewable document
    """

    def __init__(
        self,
        db: Session,
        storage: Optional[FileStorage] = None,
        config: Optional[Settings] = None,
    ):
        self.db = db
        self.config = config or default_settings
        self.storage = storage or LocalFileStorage(config=self.config)
        self.access = AccessResolver(db)
        self.visibility = VisibilityService(db, config=self.config)
        self.classifier = ClassificationService(db)
        self.doc_repo = DocumentRepository(db)
        self.folder_repo = FolderRepository(db)
        self.grant_repo = GrantRepository(db)
        self.label_repo = LabelRepository(db)

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def create_document(
        self,
        user_id: str,
        title: str,
        file_name: Optional[str],
        file_path: Optional[str],
        file_type: Optional[str] = None,
        file_size: Optional[int] = None,
        extracted_text: Optional[str] = None,
        folder_id: Optional[int] = None,
    ) -> Document:
        """Persist an uploaded document.

        A requested folder needs write access. Without one, the uploader's
        classification rules may pick a folder; otherwise the document lands
        at the root.
        """
        title = validate_title(title)
        if folder_id is not None:
            self.access.require_write(folder_id, user_id)

        content = clean_text(extracted_text)
        result = self.classifier.classify(content, user_id, manual_folder_id=folder_id)
        final_folder_id = result.target_folder_id if result.matched else folder_id

        try:
            document = self.doc_repo.create(
                title=title,
                file_name=file_name,
                file_path=file_path,
                file_type=file_type,
                file_size=file_size,
                owner_id=user_id,
                folder_id=final_folder_id,
                content=content,
                auto_classified=result.matched,
                classification_keyword=result.matched_keyword,
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(document)

        logger.info(
            "Created document",
            extra={
                "document_id": document.id,
                "folder_id": final_folder_id,
                "auto_classified": result.matched,
                "user_id": user_id,
            },
        )
        activity_service.record(self.db, document.id, user_id, "created", config=self.config)
        return document

    # ------------------------------------------------------------------
    # Single-document access
    # ------------------------------------------------------------------

    def get_document(self, document_id: int, user_id: str) -> Document:
        document = self.doc_repo.get_by_id_optional(document_id)
        if document is None or not self.visibility.can_view(document, user_id):
            raise NotFoundOrDeniedError("Document", document_id)
        return document

    def _get_owned(self, document_id: int, user_id: str, action: str) -> Document:
        document = self.get_document(document_id, user_id)
        if document.owner_id != user_id:
            raise ForbiddenRoleError(f"Only the document owner can {action} it")
        return document

    def _can_edit(self, document: Document, user_id: str) -> bool:
        if document.owner_id == user_id:
            return True
        if document.folder_id is None:
            return False
        folder = self.folder_repo.get_by_id_optional(document.folder_id)
        return folder is not None and self.access.level_for_folder(folder, user_id).can_write

    def update_document(self, document_id: int, user_id: str, title=UNSET, folder_id=UNSET) -> Document:
        """Rename and/or move a document. ``folder_id=None`` moves it to the root."""
        document = self.get_document(document_id, user_id)
        if not self._can_edit(document, user_id):
            raise ForbiddenRoleError("You only have view access to this document")

        if title is not UNSET:
            document.title = validate_title(title)
        if folder_id is not UNSET and folder_id != document.folder_id:
            if folder_id is not None:
                self.access.require_write(folder_id, user_id)
            document.folder_id = folder_id

        self.db.commit()
        self.db.refresh(document)
        logger.info("Updated document", extra={"document_id": document_id, "user_id": user_id})
        activity_service.record(self.db, document.id, user_id, "edited", config=self.config)
        return document

    def delete_document(self, document_id: int, user_id: str) -> None:
        document = self._get_owned(document_id, user_id, "delete")
        file_path = document.file_path

        try:
            self.doc_repo.delete_with_links([document.id])
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        if file_path:
            self.storage.delete_file(file_path)
        logger.info("Deleted document", extra={"document_id": document_id, "user_id": user_id})

    def view_document(self, document_id: int, user_id: str) -> DocumentFileResponse:
        return self._open(document_id, user_id, "viewed")

    def download_document(self, document_id: int, user_id: str) -> DocumentFileResponse:
        return self._open(document_id, user_id, "downloaded")

    def _open(self, document_id: int, user_id: str, kind: str) -> DocumentFileResponse:
        document = self.get_document(document_id, user_id)
        activity_service.record(self.db, document.id, user_id, kind, config=self.config)
        return DocumentFileResponse(
            document_id=document.id,
            file_name=document.file_name,
            file_path=document.file_path,
            file_type=document.file_type,
        )

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    def add_labels(self, document_id: int, user_id: str, label_ids: List[int]) -> List[str]:
        document = self._get_owned(document_id, user_id, "label")
        for label_id in label_ids:
            label = self._owned_label(label_id, document.owner_id)
            self.label_repo.link(document.id, label.id)
        self.db.commit()
        return [label.name for label in self.label_repo.labels_for_document(document.id)]

    def remove_labels(self, document_id: int, user_id: str, label_ids: List[int]) -> List[str]:
        document = self._get_owned(document_id, user_id, "label")
        for label_id in label_ids:
            label = self._owned_label(label_id, document.owner_id)
            self.label_repo.unlink(document.id, label.id)
        self.db.commit()
        return [label.name for label in self.label_repo.labels_for_document(document.id)]

    def _owned_label(self, label_id: int, owner_id: str):
        label = self.label_repo.get_by_id_optional(label_id)
        if label is None or label.user_id != owner_id:
            raise LabelNotFoundError(label_id)
        return label

    def labels_of(self, document: Document) -> List[str]:
        return [label.name for label in self.label_repo.labels_for_document(document.id)]

    # ------------------------------------------------------------------
    # Related reads
    # ------------------------------------------------------------------

    def shared_users(self, document_id: int, user_id: str) -> List[Tuple[str, GrantLevel]]:
        """Other users holding a grant on the document's folder."""
        document = self.get_document(document_id, user_id)
        if document.folder_id is None:
            return []
        return [
            (grant.user_id, GrantLevel(grant.level))
            for grant in self.grant_repo.list_for_folder(document.folder_id)
            if grant.user_id != user_id
        ]

    def recent_documents(self, user_id: str, limit: int = 10) -> List[Document]:
        limit = max(1, min(limit, self.config.max_page_size))
        return self.doc_repo.recently_used(user_id, limit)

    def activity(self, document_id: int, user_id: str, limit: int = 50) -> List[DocumentActivity]:
        document = self.get_document(document_id, user_id)
        return activity_service.history(self.db, document.id, limit=limit)
