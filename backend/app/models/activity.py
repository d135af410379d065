"""Document activity model.

Fields:
    activity_type: created, viewed, edited, downloaded, shared
"""

from sqlalchemy import Column, Index, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from ..database import Base

ACTIVITY_TYPES = frozenset({"created", "viewed", "edited", "downloaded", "shared"})


class DocumentActivity(Base):
    """Append-only record of who did what to a document."""

    __tablename__ = "document_activities"
    __table_args__ = (
        Index("ix_document_activities_document_id", "document_id"),
        Index("ix_document_activities_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False)
    user_id = Column(String(50), nullable=False)
    activity_type = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
