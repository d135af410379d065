"""Folder permission grants.

A grant gives one user viewer or editor access to exactly one folder.
Ownership is not a grant: it comes from Folder.owner_id and can never be
stored here, which is why GrantLevel has no "owner" member.
"""

import enum

from sqlalchemy import Column, Enum, Index, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from ..database import Base


class GrantLevel(str, enum.Enum):
    VIEWER = "viewer"
    EDITOR = "editor"


class FolderPermission(Base):
    """Per-user grant on a folder. Unique per (folder_id, user_id)."""

    __tablename__ = "folder_permissions"
    __table_args__ = (
        UniqueConstraint("folder_id", "user_id", name="uq_folder_permissions_folder_user"),
        Index("ix_folder_permissions_user_id", "user_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    folder_id = Column(Integer, ForeignKey("folders.id"), nullable=False)
    user_id = Column(String(50), nullable=False)
    level = Column(
        Enum(
            GrantLevel,
            name="grant_level",
            native_enum=False,
            values_callable=lambda levels: [lvl.value for lvl in levels],
        ),
        nullable=False,
    )
    granted_by = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
