"""
schemas/document.py
-------------------
Document upload/download shapes.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field

from lawfirm.models.document import DocumentCategory
from lawfirm.schemas.base import CamelModel


class DocumentRead(CamelModel):
    id: str
    organization_id: str
    case_id: Optional[str] = None
    client_id: Optional[str] = None
    name: str
    category: DocumentCategory
    mime_type: str
    size: int
    is_confidential: bool
    is_analyzed: bool
    ai_summary: Optional[str] = None
    ai_key_terms: Optional[List[Any]] = None
    ai_risk_flags: Optional[List[Any]] = None
    created_at: datetime


class DocumentDownload(CamelModel):
    url: str
    expires_in: int


class UploadUrlRequest(CamelModel):
    organization_id: str
    file_name: str = Field(min_length=1, max_length=255)
    mime_type: str = Field(min_length=1, max_length=255)


class UploadUrlResponse(CamelModel):
    upload_url: str
    key: str
    expires_at: datetime


class RegisterUploadRequest(CamelModel):
    organization_id: str
    key: str
    file_name: str = Field(min_length=1, max_length=255)
    category: DocumentCategory = DocumentCategory.OTHER
    case_id: Optional[str] = None
    client_id: Optional[str] = None
    is_confidential: bool = False
