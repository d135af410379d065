"""Classification rule schemas."""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class RuleCreate(BaseModel):
    """Keyword limits are checked by the service so they map to validation_error."""
    keyword: str
    target_folder_id: int
    priority: int = 0


class RuleUpdate(BaseModel):
    keyword: Optional[str] = None
    target_folder_id: Optional[int] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None


class RuleResponse(BaseModel):
    """Schema for classification rule response."""
    id: int
    user_id: str
    keyword: str
    target_folder_id: int
    priority: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClassifyRequest(BaseModel):
    """Dry-run input: which folder would this text land in?"""
    text: Optional[str] = None
    folder_id: Optional[int] = None


class ClassificationResultResponse(BaseModel):
    target_folder_id: Optional[int] = None
    matched: bool
    rule_id: Optional[int] = None
    matched_keyword: Optional[str] = None
