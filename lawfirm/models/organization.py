"""
models/organization.py
----------------------
Organization (tenant) and membership ORM models.

Each organization is an isolated law firm. All business data is scoped by
organization_id at the query level; always include it in WHERE clauses.
An organization owns exactly one settings row and one branding row.
"""

from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lawfirm.db.base import Base, TimestampMixin, generate_uuid


class MembershipRole(str, PyEnum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class Organization(Base, TimestampMixin):
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    users: Mapped[list["OrganizationUser"]] = relationship(
        "OrganizationUser", back_populates="organization", cascade="all, delete-orphan"
    )
    settings: Mapped["OrganizationSettings"] = relationship(
        "OrganizationSettings", uselist=False, cascade="all, delete-orphan", lazy="selectin"
    )
    branding: Mapped["OrganizationBranding"] = relationship(
        "OrganizationBranding", uselist=False, cascade="all, delete-orphan", lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Organization id={self.id} slug={self.slug}>"


class OrganizationSettings(Base, TimestampMixin):
    __tablename__ = "organization_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="America/New_York")
    client_portal_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    ai_chatbot_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class OrganizationBranding(Base, TimestampMixin):
    __tablename__ = "organization_branding"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    logo_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    primary_color: Mapped[str] = mapped_column(String(16), nullable=False, default="#1a365d")
    secondary_color: Mapped[str] = mapped_column(String(16), nullable=False, default="#d69e2e")
    tagline: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class OrganizationUser(Base, TimestampMixin):
    """Membership of one account in one organization."""

    __tablename__ = "organization_users"
    __table_args__ = (
        UniqueConstraint("account_id", "organization_id", name="uq_organization_user"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    account_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=MembershipRole.MEMBER.value)

    account: Mapped["Account"] = relationship("Account", back_populates="memberships")  # noqa: F821
    organization: Mapped["Organization"] = relationship(
        "Organization", back_populates="users", lazy="joined"
    )

    def to_claim(self) -> dict:
        """Snapshot embedded in the session token."""
        return {
            "organizationId": self.organization_id,
            "organizationName": self.organization.name,
            "organizationSlug": self.organization.slug,
            "role": self.role,
        }

    def __repr__(self) -> str:
        return f"<OrganizationUser account_id={self.account_id} organization_id={self.organization_id}>"
