"""Effective access resolution for folders.

This is the one place where folder access rules are defined. Everything
else in the system calls it.

Design:
    - Levels: owner > editor > viewer > none
    - ``owner`` comes from ``Folder.owner_id`` and is never stored as a grant
    - Otherwise the user's grant on that exact folder decides; grants are
      not inherited from ancestors
    - No grant = no access
"""

from enum import Enum
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from ..exceptions import FolderNotFoundError, ForbiddenRoleError, NotFoundOrDeniedError
from ..models import Folder, GrantLevel
from ..repositories.folder_repository import FolderRepository
from ..repositories.grant_repository import GrantRepository


class AccessLevel(str, Enum):
    """A user's effective level on one folder."""

    NONE = "none"
    VIEWER = "viewer"
    EDITOR = "editor"
    OWNER = "owner"

    @property
    def can_read(self) -> bool:
        return self is not AccessLevel.NONE

    @property
    def can_write(self) -> bool:
        return self in (AccessLevel.EDITOR, AccessLevel.OWNER)

    @property
    def can_administer(self) -> bool:
        return self is AccessLevel.OWNER


_FROM_GRANT = {
    GrantLevel.VIEWER: AccessLevel.VIEWER,
    GrantLevel.EDITOR: AccessLevel.EDITOR,
}


def level_from(folder: Folder, user_id: str, grant_level: Optional[GrantLevel]) -> AccessLevel:
    """Combine ownership with an already-loaded grant level."""
    if folder.owner_id == user_id:
        return AccessLevel.OWNER
    if grant_level is None:
        return AccessLevel.NONE
    return _FROM_GRANT[GrantLevel(grant_level)]


class AccessResolver:
    """Computes effective levels and enforces them for the service layer."""

    def __init__(self, db: Session):
        self.db = db
        self.folder_repo = FolderRepository(db)
        self.grant_repo = GrantRepository(db)

    def effective_level(self, folder_id: int, user_id: str) -> AccessLevel:
        """Raises FolderNotFoundError when the folder does not exist."""
        folder = self.folder_repo.get_by_id(folder_id)
        return self.level_for_folder(folder, user_id)

    def level_for_folder(self, folder: Folder, user_id: str) -> AccessLevel:
        if folder.owner_id == user_id:
            return AccessLevel.OWNER
        grant = self.grant_repo.get(folder.id, user_id)
        return level_from(folder, user_id, grant.level if grant else None)

    def levels_for(self, folders: Iterable[Folder], user_id: str) -> Dict[int, AccessLevel]:
        """Resolve many folders with a single grant query."""
        folders = list(folders)
        not_owned = [f.id for f in folders if f.owner_id != user_id]
        grants = self.grant_repo.levels_for_user(user_id, not_owned)
        return {f.id: level_from(f, user_id, grants.get(f.id)) for f in folders}

    def can_read(self, folder_id: int, user_id: str) -> bool:
        return self.effective_level(folder_id, user_id).can_read

    def can_write(self, folder_id: int, user_id: str) -> bool:
        return self.effective_level(folder_id, user_id).can_write

    def can_administer(self, folder_id: int, user_id: str) -> bool:
        return self.effective_level(folder_id, user_id).can_administer

    # -- Guards ---------------------------------------------------------------

    def _visible(self, folder_id: int, user_id: str):
        """Load the folder and level, hiding absent and inaccessible folders alike."""
        try:
            folder = self.folder_repo.get_by_id(folder_id)
        except FolderNotFoundError:
            raise NotFoundOrDeniedError("Folder", folder_id)
        level = self.level_for_folder(folder, user_id)
        if not level.can_read:
            raise NotFoundOrDeniedError("Folder", folder_id)
        return folder, level

    def require_read(self, folder_id: int, user_id: str) -> Folder:
        folder, _ = self._visible(folder_id, user_id)
        return folder

    def require_write(self, folder_id: int, user_id: str) -> Folder:
        folder, level = self._visible(folder_id, user_id)
        if not level.can_write:
            raise ForbiddenRoleError("You only have view access to this folder")
        return folder

    def require_owner(self, folder_id: int, user_id: str) -> Folder:
        folder, level = self._visible(folder_id, user_id)
        if not level.can_administer:
            raise ForbiddenRoleError()
        return folder
