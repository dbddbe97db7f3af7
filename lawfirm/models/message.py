"""
models/message.py
-----------------
Client/firm message log.

Stores both client messages and AI chatbot replies. organization_id is
denormalised (it could be derived via client.organization_id) so tenant
scoped queries need no JOIN.
"""

from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lawfirm.db.base import Base, TimestampMixin, generate_uuid


class MessageContentType(str, PyEnum):
    TEXT = "TEXT"
    AI_RESPONSE = "AI_RESPONSE"


class Message(Base, TimestampMixin):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    case_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("cases.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MessageContentType.TEXT.value
    )
    is_from_client: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Message id={self.id} client_id={self.client_id}>"
