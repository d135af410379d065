"""Repository for user labels and their document links."""

from typing import List, Optional

from ..exceptions import LabelNotFoundError
from ..models import DocumentLabel, Label
from .base import BaseRepository


class LabelRepository(BaseRepository[Label]):
    model_class = Label
    not_found_error = LabelNotFoundError

    def list_for_user(self, user_id: str) -> List[Label]:
        return self.db.query(Label).filter(Label.user_id == user_id).order_by(Label.name).all()

    def get_by_name(self, user_id: str, name: str) -> Optional[Label]:
        return self.db.query(Label).filter(Label.user_id == user_id, Label.name == name).first()

    def get_or_create(self, user_id: str, name: str, color: Optional[str] = None) -> Label:
        label = self.get_by_name(user_id, name)
        if label is None:
            label = self.add(Label(user_id=user_id, name=name, color=color))
        return label

    def get_link(self, document_id: int, label_id: int) -> Optional[DocumentLabel]:
        return (
            self.db.query(DocumentLabel)
            .filter(DocumentLabel.document_id == document_id, DocumentLabel.label_id == label_id)
            .first()
        )

    def link(self, document_id: int, label_id: int) -> bool:
        """Attach a label; returns False when it was already attached."""
        if self.get_link(document_id, label_id) is not None:
            return False
        self.db.add(DocumentLabel(document_id=document_id, label_id=label_id))
        self.db.flush()
        return True

    def unlink(self, document_id: int, label_id: int) -> bool:
        link = self.get_link(document_id, label_id)
        if link is None:
            return False
        self.db.delete(link)
        self.db.flush()
        return True

    def labels_for_document(self, document_id: int) -> List[Label]:
        return (
            self.db.query(Label)
            .join(DocumentLabel, DocumentLabel.label_id == Label.id)
            .filter(DocumentLabel.document_id == document_id)
            .order_by(Label.name)
            .all()
        )

    def delete(self, label: Label) -> None:
        self.db.query(DocumentLabel).filter(
            DocumentLabel.label_id == label.id
        ).delete(synchronize_session=False)
        self.db.delete(label)
        self.db.flush()
