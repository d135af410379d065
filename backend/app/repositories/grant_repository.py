"""Repository for folder permission grants."""

from typing import Dict, Iterable, List, Optional

from ..models import FolderPermission, GrantLevel
from .base import BaseRepository


class GrantRepository(BaseRepository[FolderPermission]):
    """Data access layer for the folder_permissions table."""

    model_class = FolderPermission

    def get(self, folder_id: int, user_id: str) -> Optional[FolderPermission]:
        return (
            self.db.query(FolderPermission)
            .filter(FolderPermission.folder_id == folder_id, FolderPermission.user_id == user_id)
            .first()
        )

    def create(
        self, folder_id: int, user_id: str, level: GrantLevel, granted_by: Optional[str] = None
    ) -> FolderPermission:
        return self.add(
            FolderPermission(folder_id=folder_id, user_id=user_id, level=level, granted_by=granted_by)
        )

    def levels_for_user(self, user_id: str, folder_ids: Iterable[int]) -> Dict[int, GrantLevel]:
        """Grant level per folder id for one user; folders without a grant are absent."""
        ids = list(set(folder_ids))
        if not ids:
            return {}
        rows = (
            self.db.query(FolderPermission.folder_id, FolderPermission.level)
            .filter(FolderPermission.user_id == user_id, FolderPermission.folder_id.in_(ids))
            .all()
        )
        return {folder_id: level for folder_id, level in rows}

    def list_for_folder(self, folder_id: int) -> List[FolderPermission]:
        return (
            self.db.query(FolderPermission)
            .filter(FolderPermission.folder_id == folder_id)
            .order_by(FolderPermission.created_at.desc(), FolderPermission.id.desc())
            .all()
        )

    def list_for_user(self, user_id: str) -> List[FolderPermission]:
        return (
            self.db.query(FolderPermission)
            .filter(FolderPermission.user_id == user_id)
            .all()
        )

    def delete(self, grant: FolderPermission) -> None:
        self.db.delete(grant)
        self.db.flush()

    def delete_for_folder(self, folder_id: int) -> int:
        return (
            self.db.query(FolderPermission)
            .filter(FolderPermission.folder_id == folder_id)
            .delete(synchronize_session=False)
        )
