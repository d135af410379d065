"""Label API: the caller's private labels."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import List

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.label import LabelCreate, LabelResponse
from ..services.label_service import LabelService

router = APIRouter(prefix="/api/labels", tags=["labels"])


@router.get("", response_model=List[LabelResponse])
def list_labels(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return LabelService(db).list_labels(auth.user_id)


@router.post("", response_model=LabelResponse, status_code=201)
def create_label(
    data: LabelCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return LabelService(db).create_label(auth.user_id, data.name, color=data.color)


@router.delete("/{label_id}", status_code=204)
def delete_label(
    label_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Delete a label and detach it from every document."""
    LabelService(db).delete_label(label_id, auth.user_id)
    return Response(status_code=204)
