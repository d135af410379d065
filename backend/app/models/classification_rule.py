"""Per-user keyword rules that route uploads into folders."""

from sqlalchemy import Column, Index, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from ..database import Base

KEYWORD_MAX_LENGTH = 100


class ClassificationRule(Base):
    """Rules are matched in (priority desc, created_at asc, id asc) order.

    target_folder_id was writable by user_id when the rule was saved; it is
    not re-checked on every match.
    """

    __tablename__ = "classification_rules"
    __table_args__ = (
        Index("ix_classification_rules_user_active", "user_id", "is_active"),
        Index("ix_classification_rules_target", "target_folder_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), nullable=False)
    keyword = Column(String(KEYWORD_MAX_LENGTH), nullable=False)
    target_folder_id = Column(Integer, ForeignKey("folders.id"), nullable=False)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
