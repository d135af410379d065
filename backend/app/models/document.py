"""Document model."""

from sqlalchemy import Column, Index, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from ..database import Base

TITLE_MAX_LENGTH = 255


class Document(Base):
    """Uploaded documents.

    folder_id NULL means the document sits at the owner's root and is only
    visible to its owner. owner_id never changes after insert.
    """

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_owner_id", "owner_id"),
        Index("ix_documents_folder_id", "folder_id"),
        Index("ix_documents_updated_at", "updated_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)

    # Stored file, written by the upload pipeline before the row exists.
    file_name = Column(String(255), nullable=True)
    file_path = Column(Text, nullable=True)
    file_type = Column(String(50), nullable=True)
    file_size = Column(Integer, nullable=True)

    owner_id = Column(String(50), nullable=False)
    folder_id = Column(Integer, ForeignKey("folders.id"), nullable=True)

    # Extracted text (NULL when extraction failed or the format has no text)
    content = Column(Text, nullable=True)

    # Set when a classification rule chose folder_id
    auto_classified = Column(Boolean, nullable=False, default=False)
    classification_keyword = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
