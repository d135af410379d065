"""Folder sharing: grant, change, revoke and list viewer/editor access.

Only a folder's owner administers its sharing. Ownership itself is never a
grant, so an owner cannot share a folder with themselves.
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, GrantNotFoundError, ValidationError
from ..models import Folder, FolderPermission, GrantLevel
from ..repositories import FolderRepository, GrantRepository
from .access_resolver import AccessLevel, AccessResolver

logger = logging.getLogger(__name__)


@dataclass
class SharedFolder:
    folder: Folder
    grant: FolderPermission
    document_count: int


def _grant_level(level) -> GrantLevel:
    try:
        return GrantLevel(level)
    except ValueError:
        raise ValidationError("Invalid permission level. Must be 'viewer' or 'editor'", field="level")


class SharingService:
    """Grant administration for folder owners."""

    def __init__(self, db: Session):
        self.db = db
        self.access = AccessResolver(db)
        self.folder_repo = FolderRepository(db)
        self.grant_repo = GrantRepository(db)

    def share(
        self, folder_id: int, grantee_id: str, level, user_id: str
    ) -> Tuple[FolderPermission, str]:
        """Create or update a grant. Returns the grant and 'created' or 'updated'."""
        self.access.require_owner(folder_id, user_id)
        if not grantee_id or not grantee_id.strip():
            raise ValidationError("A user to share with is required", field="user_id")
        grantee_id = grantee_id.strip()
        if grantee_id == user_id:
            raise ValidationError("Cannot share a folder with yourself", field="user_id")
        level = _grant_level(level)

        grant = self.grant_repo.get(folder_id, grantee_id)
        action = "updated"
        try:
            if grant is None:
                grant = self.grant_repo.create(folder_id, grantee_id, level, granted_by=user_id)
                action = "created"
            else:
                grant.level = level
                grant.granted_by = user_id
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Folder was shared with this user concurrently; retry")

        self.db.refresh(grant)
        logger.info(
            "Folder shared",
            extra={"folder_id": folder_id, "grantee_id": grantee_id, "grant_level": level.value, "action": action},
        )
        return grant, action

    def update_level(self, folder_id: int, grantee_id: str, level, user_id: str) -> FolderPermission:
        self.access.require_owner(folder_id, user_id)
        level = _grant_level(level)
        grant = self.grant_repo.get(folder_id, grantee_id)
        if grant is None:
            raise GrantNotFoundError(folder_id, grantee_id)
        grant.level = level
        self.db.commit()
        self.db.refresh(grant)
        logger.info(
            "Permission updated",
            extra={"folder_id": folder_id, "grantee_id": grantee_id, "grant_level": level.value},
        )
        return grant

    def revoke(self, folder_id: int, grantee_id: str, user_id: str) -> None:
        self.access.require_owner(folder_id, user_id)
        grant = self.grant_repo.get(folder_id, grantee_id)
        if grant is None:
            raise GrantNotFoundError(folder_id, grantee_id)
        self.grant_repo.delete(grant)
        self.db.commit()
        logger.info("Permission revoked", extra={"folder_id": folder_id, "grantee_id": grantee_id})

    def list_permissions(self, folder_id: int, user_id: str) -> List[FolderPermission]:
        """Grants on a folder, newest first. Owner only."""
        self.access.require_owner(folder_id, user_id)
        return self.grant_repo.list_for_folder(folder_id)

    def shared_with(self, user_id: str) -> List[SharedFolder]:
        """Folders other users have shared with *user_id*."""
        grants = self.grant_repo.list_for_user(user_id)
        folder_ids = [g.folder_id for g in grants]
        folders = {
            folder.id: folder
            for folder in self.db.query(Folder).filter(Folder.id.in_(folder_ids)).all()
        }
        counts = self.folder_repo.document_counts(list(folders))
        shared = [
            SharedFolder(folder=folders[g.folder_id], grant=g, document_count=counts[g.folder_id])
            for g in grants
            if g.folder_id in folders and folders[g.folder_id].owner_id != user_id
        ]
        shared.sort(key=lambda s: (s.folder.name, s.folder.id))
        return shared

    def users_with_access(self, folder_id: int, user_id: str) -> List[Tuple[str, AccessLevel]]:
        """The owner first, then every grantee with their effective level."""
        folder = self.access.require_read(folder_id, user_id)
        users: List[Tuple[str, AccessLevel]] = [(folder.owner_id, AccessLevel.OWNER)]
        for grant in self.grant_repo.list_for_folder(folder_id):
            if grant.user_id != folder.owner_id:
                users.append((grant.user_id, AccessLevel(GrantLevel(grant.level).value)))
        return users
