"""Classification rule API: per-user keyword rules and a dry-run classifier."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import List

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.classification import (
    ClassificationResultResponse,
    ClassifyRequest,
    RuleCreate,
    RuleResponse,
    RuleUpdate,
)
from ..schemas.folder import FolderResponse
from ..services.classification_service import ClassificationService

router = APIRouter(prefix="/api/classification-rules", tags=["classification"])


@router.get("", response_model=List[RuleResponse])
def list_rules(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """The caller's rules in matching order."""
    return ClassificationService(db).list_rules(auth.user_id)


@router.post("", response_model=RuleResponse, status_code=201)
def create_rule(
    data: RuleCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ClassificationService(db).create_rule(
        auth.user_id, data.keyword, data.target_folder_id, priority=data.priority
    )


@router.get("/folders", response_model=List[FolderResponse])
def writable_folders(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Folders the caller can pick as a rule target."""
    return ClassificationService(db).writable_folders(auth.user_id)


@router.post("/classify", response_model=ClassificationResultResponse)
def classify(
    data: ClassifyRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Where would a document with this text land? Nothing is stored."""
    result = ClassificationService(db).classify(data.text, auth.user_id, manual_folder_id=data.folder_id)
    return ClassificationResultResponse(
        target_folder_id=result.target_folder_id,
        matched=result.matched,
        rule_id=result.rule_id,
        matched_keyword=result.matched_keyword,
    )


@router.get("/{rule_id}", response_model=RuleResponse)
def get_rule(
    rule_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ClassificationService(db).get_rule(rule_id, auth.user_id)


@router.put("/{rule_id}", response_model=RuleResponse)
def update_rule(
    rule_id: int,
    data: RuleUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Partial update; omitted fields keep their value."""
    return ClassificationService(db).update_rule(
        rule_id, auth.user_id, **data.model_dump(exclude_unset=True, exclude_none=True)
    )


@router.delete("/{rule_id}", status_code=204)
def delete_rule(
    rule_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    ClassificationService(db).delete_rule(rule_id, auth.user_id)
    return Response(status_code=204)
