"""Per-user labels."""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, LabelNotFoundError, ValidationError
from ..models import Label
from ..repositories import LabelRepository

LABEL_NAME_MAX_LENGTH = 100

logger = logging.getLogger(__name__)


class LabelService:
    def __init__(self, db: Session):
        self.db = db
        self.label_repo = LabelRepository(db)

    def list_labels(self, user_id: str) -> List[Label]:
        return self.label_repo.list_for_user(user_id)

    def get_owned(self, label_id: int, user_id: str) -> Label:
        """A label of *user_id*; labels of other users look missing."""
        label = self.label_repo.get_by_id_optional(label_id)
        if label is None or label.user_id != user_id:
            raise LabelNotFoundError(label_id)
        return label

    def create_label(self, user_id: str, name: str, color: Optional[str] = None) -> Label:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Label name is required", field="name")
        if len(name) > LABEL_NAME_MAX_LENGTH:
            raise ValidationError(
                f"Label name must be {LABEL_NAME_MAX_LENGTH} characters or less", field="name"
            )
        if self.label_repo.get_by_name(user_id, name):
            raise ConflictError("A label with this name already exists", details={"label": name})
        try:
            label = self.label_repo.add(Label(user_id=user_id, name=name, color=color))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("A label with this name already exists", details={"label": name})
        logger.info("Created label", extra={"label_id": label.id, "user_id": user_id})
        return label

    def delete_label(self, label_id: int, user_id: str) -> None:
        """Remove the label and detach it from every document."""
        label = self.get_owned(label_id, user_id)
        self.label_repo.delete(label)
        self.db.commit()
        logger.info("Deleted label", extra={"label_id": label_id, "user_id": user_id})
