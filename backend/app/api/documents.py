"""Document API endpoints.

Endpoints are thin: DocumentService owns upload, access and activity;
VisibilityService answers every listing.
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import List, Optional

from ..core.auth import AuthContext, require_auth
from ..core.config import Settings
from ..database import get_db, get_settings, get_storage
from ..exceptions import ValidationError
from ..schemas.document import (
    ActivityResponse,
    DocumentCreate,
    DocumentFileResponse,
    DocumentLabelsRequest,
    DocumentListResponse,
    DocumentResponse,
    DocumentUpdate,
    SharedUserResponse,
)
from ..services.document_service import DocumentService
from ..services.visibility_service import ROOT_SCOPE, Page, VisibilityService

router = APIRouter(prefix="/api/documents", tags=["documents"])


def _document_service(
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
    config: Settings = Depends(get_settings),
) -> DocumentService:
    return DocumentService(db, storage=storage, config=config)


def _visibility_service(
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
) -> VisibilityService:
    return VisibilityService(db, config=config)


def _folder_scope(folder_id: Optional[str]):
    """``root`` selects root-level documents; anything else must be a folder id."""
    if folder_id is None or folder_id == "":
        return None
    if folder_id == ROOT_SCOPE:
        return ROOT_SCOPE
    try:
        return int(folder_id)
    except ValueError:
        raise ValidationError("folder_id must be an integer or 'root'", field="folder_id")


def _page_response(page: Page) -> DocumentListResponse:
    return DocumentListResponse(
        documents=[DocumentResponse.from_document(doc, page.labels.get(doc.id)) for doc in page.items],
        total=page.total,
        page=page.page,
        limit=page.limit,
        total_pages=page.total_pages,
        has_next=page.has_next,
        has_prev=page.has_prev,
    )


@router.post("", response_model=DocumentResponse, status_code=201)
def create_document(
    document: DocumentCreate,
    service: DocumentService = Depends(_document_service),
    auth: AuthContext = Depends(require_auth),
):
    """Register an uploaded document; classification rules may choose its folder."""
    doc = service.create_document(
        auth.user_id,
        title=document.title,
        file_name=document.file_name,
        file_path=document.file_path,
        file_type=document.file_type,
        file_size=document.file_size,
        extracted_text=document.extracted_text,
        folder_id=document.folder_id,
    )
    return DocumentResponse.from_document(doc)


@router.get("", response_model=DocumentListResponse)
def list_documents(
    folder_id: Optional[str] = Query(None, description="Folder id, or 'root' for documents outside any folder"),
    search: Optional[str] = Query(None, max_length=200),
    labels: Optional[str] = Query(None, description="Comma-separated label names"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    service: VisibilityService = Depends(_visibility_service),
    auth: AuthContext = Depends(require_auth),
):
    """Documents the caller owns or can see through a shared folder."""
    label_names = [name.strip() for name in labels.split(",") if name.strip()] if labels else None
    result = service.visible_documents(
        auth.user_id,
        folder_id=_folder_scope(folder_id),
        search=search,
        labels=label_names,
        page=page,
        limit=limit,
    )
    return _page_response(result)


# --- Fixed-path endpoints (must be before /{document_id} to avoid route shadowing) ---

@router.get("/shared", response_model=DocumentListResponse)
def shared_documents(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    service: VisibilityService = Depends(_visibility_service),
    auth: AuthContext = Depends(require_auth),
):
    """Documents other users made visible to the caller through folder grants."""
    return _page_response(service.shared_documents(auth.user_id, page=page, limit=limit))


@router.get("/recent", response_model=List[DocumentResponse])
def recent_documents(
    limit: int = Query(10, ge=1),
    service: DocumentService = Depends(_document_service),
    auth: AuthContext = Depends(require_auth),
):
    return [DocumentResponse.from_document(doc) for doc in service.recent_documents(auth.user_id, limit)]


# --- Single document ---

@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: int,
    service: DocumentService = Depends(_document_service),
    auth: AuthContext = Depends(require_auth),
):
    doc = service.get_document(document_id, auth.user_id)
    return DocumentResponse.from_document(doc, service.labels_of(doc))


@router.put("/{document_id}", response_model=DocumentResponse)
def update_document(
    document_id: int,
    data: DocumentUpdate,
    service: DocumentService = Depends(_document_service),
    auth: AuthContext = Depends(require_auth),
):
    """Rename and/or move. Only fields present in the body change."""
    doc = service.update_document(document_id, auth.user_id, **data.model_dump(exclude_unset=True))
    return DocumentResponse.from_document(doc, service.labels_of(doc))


@router.delete("/{document_id}", status_code=204)
def delete_document(
    document_id: int,
    service: DocumentService = Depends(_document_service),
    auth: AuthContext = Depends(require_auth),
):
    service.delete_document(document_id, auth.user_id)
    return Response(status_code=204)


@router.get("/{document_id}/view", response_model=DocumentFileResponse)
def view_document(
    document_id: int,
    service: DocumentService = Depends(_document_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.view_document(document_id, auth.user_id)


@router.get("/{document_id}/download", response_model=DocumentFileResponse)
def download_document(
    document_id: int,
    service: DocumentService = Depends(_document_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.download_document(document_id, auth.user_id)


@router.post("/{document_id}/labels", response_model=List[str])
def add_labels(
    document_id: int,
    data: DocumentLabelsRequest,
    service: DocumentService = Depends(_document_service),
    auth: AuthContext = Depends(require_auth),
):
    """Attach labels; returns the document's label names afterwards."""
    return service.add_labels(document_id, auth.user_id, data.label_ids)


@router.delete("/{document_id}/labels/{label_id}", response_model=List[str])
def remove_label(
    document_id: int,
    label_id: int,
    service: DocumentService = Depends(_document_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.remove_labels(document_id, auth.user_id, [label_id])


@router.get("/{document_id}/shared-users", response_model=List[SharedUserResponse])
def shared_users(
    document_id: int,
    service: DocumentService = Depends(_document_service),
    auth: AuthContext = Depends(require_auth),
):
    return [
        SharedUserResponse(user_id=user_id, level=level.value)
        for user_id, level in service.shared_users(document_id, auth.user_id)
    ]


@router.get("/{document_id}/activity", response_model=List[ActivityResponse])
def document_activity(
    document_id: int,
    limit: int = Query(50, ge=1, le=500),
    service: DocumentService = Depends(_document_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.activity(document_id, auth.user_id, limit=limit)
