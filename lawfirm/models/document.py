"""
models/document.py
------------------
Stored documents and the AI jobs run against them.

storage_key points into object storage ({organization_id}/{folder}/{id}.{ext});
the bytes themselves never live in the database. text_content is an optional
pre-extracted text layer used by the analyzer instead of the raw file.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lawfirm.db.base import Base, TimestampMixin, generate_uuid


class DocumentCategory(str, PyEnum):
    CONTRACT = "CONTRACT"
    COURT_FILING = "COURT_FILING"
    CORRESPONDENCE = "CORRESPONDENCE"
    EVIDENCE = "EVIDENCE"
    INTAKE = "INTAKE"
    INVOICE = "INVOICE"
    ID_DOCUMENT = "ID_DOCUMENT"
    MEDICAL_RECORD = "MEDICAL_RECORD"
    POLICE_REPORT = "POLICE_REPORT"
    ENGAGEMENT_LETTER = "ENGAGEMENT_LETTER"
    OTHER = "OTHER"


class AIJobStatus(str, PyEnum):
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Document(Base, TimestampMixin):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    case_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("cases.id", ondelete="SET NULL"), nullable=True
    )
    client_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )
    uploaded_by_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default=DocumentCategory.OTHER.value)
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_confidential: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    text_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_analyzed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ai_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_key_terms: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    ai_risk_flags: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<Document id={self.id} organization_id={self.organization_id}>"


class AIJob(Base, TimestampMixin):
    __tablename__ = "ai_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AIJobStatus.PROCESSING.value)
    input: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    output: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    entity_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    entity_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
