"""Document schemas."""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class DocumentCreate(BaseModel):
    """Metadata of an already-stored upload plus its extracted text.

    ``folder_id`` is the folder chosen by the uploader; a matching
    classification rule takes precedence over it.
    """
    title: str
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=500)
    file_type: Optional[str] = Field(default=None, max_length=50)
    file_size: int = Field(default=0, ge=0)
    extracted_text: Optional[str] = None
    folder_id: Optional[int] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "title": "Invoice #123",
                    "file_name": "invoice-123.pdf",
                    "file_path": "2024/invoice-123.pdf",
                    "file_type": "application/pdf",
                    "file_size": 48213,
                    "extracted_text": "Invoice #123 for consulting services",
                    "folder_id": None,
                }
            ]
        }
    }


class DocumentUpdate(BaseModel):
    """Partial update. Sending ``folder_id: null`` moves the document to the root."""
    title: Optional[str] = None
    folder_id: Optional[int] = None


class DocumentResponse(BaseModel):
    """Schema for document response."""
    id: int
    title: str
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    owner_id: str
    folder_id: Optional[int] = None
    auto_classified: bool
    classification_keyword: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    labels: List[str] = []

    class Config:
        from_attributes = True

    @classmethod
    def from_document(cls, document, labels: Optional[List[str]] = None) -> "DocumentResponse":
        response = cls.model_validate(document)
        response.labels = list(labels or [])
        return response


class DocumentListResponse(BaseModel):
    """One page of documents plus pagination metadata."""
    documents: List[DocumentResponse]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


class DocumentFileResponse(BaseModel):
    """Where the bytes of a viewed or downloaded document live."""
    document_id: int
    file_name: Optional[str] = None
    file_path: Optional[str] = None
    file_type: Optional[str] = None


class DocumentLabelsRequest(BaseModel):
    label_ids: List[int] = Field(..., min_length=1)


class ActivityResponse(BaseModel):
    id: int
    document_id: int
    user_id: str
    activity_type: str
    created_at: datetime

    class Config:
        from_attributes = True


class SharedUserResponse(BaseModel):
    user_id: str
    level: str
