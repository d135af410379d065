"""Folder API: CRUD, move, copy, cascading delete, tree and sharing.

Endpoints are thin. FolderService and SharingService enforce ownership and
grants; errors surface as VaultException and are rendered by the handler.
"""

import logging
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import List, Optional

from ..core.auth import AuthContext, require_auth
from ..core.config import Settings
from ..database import get_db, get_settings, get_storage
from ..schemas.folder import (
    BreadcrumbItem,
    FolderCopyRequest,
    FolderCreate,
    FolderDeleteResponse,
    FolderDetail,
    FolderMoveRequest,
    FolderRename,
    FolderResponse,
    FolderSummary,
    TreeNode,
)
from ..schemas.sharing import (
    PermissionResponse,
    PermissionUpdate,
    ShareRequest,
    ShareResponse,
    SharedFolderResponse,
    UserAccessResponse,
)
from ..services.folder_service import FolderService
from ..services.sharing_service import SharingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/folders", tags=["folders"])


def _folder_service(
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
    config: Settings = Depends(get_settings),
) -> FolderService:
    return FolderService(db, storage=storage, config=config)


# -- Listing and tree (fixed paths before /{folder_id}) ---------------------

@router.get("", response_model=List[FolderSummary])
def list_folders(
    parent_id: Optional[int] = Query(None, description="Omit for root-level folders"),
    service: FolderService = Depends(_folder_service),
    auth: AuthContext = Depends(require_auth),
):
    """Readable folders directly under a parent, with access level and document count."""
    return service.list_folders(auth.user_id, parent_id=parent_id)


@router.post("", response_model=FolderResponse, status_code=201)
def create_folder(
    data: FolderCreate,
    service: FolderService = Depends(_folder_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.create_folder(data.name, auth.user_id, parent_id=data.parent_id)


@router.get("/tree", response_model=List[TreeNode])
def get_tree(
    service: FolderService = Depends(_folder_service),
    auth: AuthContext = Depends(require_auth),
):
    """Every folder the caller can read, nested."""
    return service.get_tree(auth.user_id)


@router.get("/shared", response_model=List[SharedFolderResponse])
def shared_with_me(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Folders other users have shared with the caller."""
    return [
        SharedFolderResponse(
            id=item.folder.id,
            name=item.folder.name,
            parent_id=item.folder.parent_id,
            owner_id=item.folder.owner_id,
            level=item.grant.level,
            document_count=item.document_count,
            shared_at=item.grant.created_at,
        )
        for item in SharingService(db).shared_with(auth.user_id)
    ]


# -- Single folder ---------------------------------------------------------

@router.get("/{folder_id}", response_model=FolderDetail)
def get_folder(
    folder_id: int,
    service: FolderService = Depends(_folder_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.get_folder(folder_id, auth.user_id)


@router.get("/{folder_id}/breadcrumb", response_model=List[BreadcrumbItem])
def get_breadcrumb(
    folder_id: int,
    service: FolderService = Depends(_folder_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.breadcrumb(folder_id, auth.user_id)


@router.put("/{folder_id}", response_model=FolderResponse)
def rename_folder(
    folder_id: int,
    data: FolderRename,
    service: FolderService = Depends(_folder_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.rename_folder(folder_id, auth.user_id, data.name)


@router.post("/{folder_id}/move", response_model=FolderResponse)
def move_folder(
    folder_id: int,
    data: FolderMoveRequest,
    service: FolderService = Depends(_folder_service),
    auth: AuthContext = Depends(require_auth),
):
    """Move a folder under a new parent (``parent_id: null`` for the root)."""
    return service.move_folder(folder_id, auth.user_id, data.parent_id)


@router.post("/{folder_id}/copy", response_model=FolderResponse, status_code=201)
def copy_folder(
    folder_id: int,
    data: FolderCopyRequest,
    service: FolderService = Depends(_folder_service),
    auth: AuthContext = Depends(require_auth),
):
    """Copy a folder shared with you (editor access) into your own tree."""
    return service.copy_folder(folder_id, auth.user_id, new_parent_id=data.parent_id)


@router.delete("/{folder_id}", response_model=FolderDeleteResponse)
def delete_folder(
    folder_id: int,
    force: bool = Query(False, description="Delete subfolders and documents too"),
    service: FolderService = Depends(_folder_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.delete_folder(folder_id, auth.user_id, force=force)


# -- Sharing ---------------------------------------------------------------

@router.get("/{folder_id}/permissions", response_model=List[PermissionResponse])
def list_permissions(
    folder_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Grants on a folder, newest first. Owner only."""
    return SharingService(db).list_permissions(folder_id, auth.user_id)


@router.post("/{folder_id}/share", response_model=ShareResponse)
def share_folder(
    folder_id: int,
    data: ShareRequest,
    response: Response,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Grant viewer/editor access; re-sharing with the same user updates the level."""
    grant, action = SharingService(db).share(folder_id, data.user_id, data.level, auth.user_id)
    if action == "created":
        response.status_code = 201
    return ShareResponse(action=action, permission=PermissionResponse.model_validate(grant))


@router.put("/{folder_id}/permissions/{user_id}", response_model=PermissionResponse)
def update_permission(
    folder_id: int,
    user_id: str,
    data: PermissionUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return SharingService(db).update_level(folder_id, user_id, data.level, auth.user_id)


@router.delete("/{folder_id}/permissions/{user_id}", status_code=204)
def revoke_permission(
    folder_id: int,
    user_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    SharingService(db).revoke(folder_id, user_id, auth.user_id)
    return Response(status_code=204)


@router.get("/{folder_id}/users", response_model=List[UserAccessResponse])
def users_with_access(
    folder_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Folder owner plus every grantee."""
    return [
        UserAccessResponse(user_id=user_id, access_level=level.value)
        for user_id, level in SharingService(db).users_with_access(folder_id, auth.user_id)
    ]
