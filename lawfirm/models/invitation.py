"""
models/invitation.py
--------------------
Invitation ORM model.

Lifecycle: PENDING (created) → SENT (dispatch attempted) → ACCEPTED or
EXPIRED, both terminal. sent_via records only the channels that actually
delivered.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lawfirm.db.base import Base, TimestampMixin, generate_uuid


class InvitationStatus(str, PyEnum):
    PENDING = "PENDING"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"


class InvitationType(str, PyEnum):
    CLIENT = "CLIENT"
    TEAM_MEMBER = "TEAM_MEMBER"
    REFERRAL = "REFERRAL"


class Invitation(Base, TimestampMixin):
    __tablename__ = "invitations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Back-reference only; the invitation belongs to the organization
    created_by_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )

    email: Mapped[str] = mapped_column(String(320), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=InvitationType.CLIENT.value)

    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvitationStatus.PENDING.value, index=True
    )

    landing_page_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    intake_form_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    case_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("cases.id", ondelete="SET NULL"), nullable=True
    )
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    qr_code_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sent_via: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    organization: Mapped["Organization"] = relationship("Organization", lazy="joined")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Invitation id={self.id} status={self.status}>"
