"""Folder model: one node of a user's folder tree."""

from sqlalchemy import Column, Index, Integer, String, DateTime, ForeignKey, UniqueConstraint, text
from sqlalchemy.sql import func
from ..database import Base

FOLDER_NAME_MAX_LENGTH = 255


class Folder(Base):
    """Folders table.

    Names are unique per (parent_id, owner_id). The composite constraint does
    not cover root folders because NULL parent ids compare as distinct, so a
    partial unique index handles parent_id IS NULL.

    parent_id carries no ON DELETE CASCADE: subtree deletion is done
    explicitly, bottom-up, by FolderService.
    """

    __tablename__ = "folders"
    __table_args__ = (
        UniqueConstraint("name", "parent_id", "owner_id", name="uq_folders_name_parent_owner"),
        Index(
            "uq_folders_root_name_owner",
            "name",
            "owner_id",
            unique=True,
            sqlite_where=text("parent_id IS NULL"),
            postgresql_where=text("parent_id IS NULL"),
        ),
        Index("ix_folders_parent_id", "parent_id"),
        Index("ix_folders_owner_id", "owner_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(FOLDER_NAME_MAX_LENGTH), nullable=False)
    parent_id = Column(Integer, ForeignKey("folders.id"), nullable=True)
    owner_id = Column(String(50), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
