"""Label schemas."""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional


class LabelCreate(BaseModel):
    name: str = Field(..., max_length=100)
    color: Optional[str] = Field(default=None, max_length=20)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Label name cannot be empty")
        return v


class LabelResponse(BaseModel):
    id: int
    name: str
    color: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
