"""
services/organization_service.py
--------------------------------
Business logic for organizations (tenants) and memberships.

Service layer is responsible for:
  - Constructing queries
  - Enforcing business rules (e.g. unique slugs, membership checks)
  - Returning domain objects (ORM models) to the route layer
  - Never returning HTTP responses (that's the route's job)
"""

import re

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lawfirm.core.errors import Forbidden, NotFound
from lawfirm.core.logging import get_logger
from lawfirm.core.security import generate_token
from lawfirm.models.account import Account
from lawfirm.models.organization import (
    MembershipRole,
    Organization,
    OrganizationBranding,
    OrganizationSettings,
    OrganizationUser,
)

logger = get_logger(__name__)

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    return _SLUG_INVALID.sub("-", value.lower()).strip("-")


class OrganizationService:

    @staticmethod
    async def create_organization(
        db: AsyncSession,
        name: str,
        owner: Account,
    ) -> Organization:
        """
        Create an organization with its settings and branding rows and make
        ``owner`` its OWNER. A random suffix is appended when the slug is taken.
        """
        slug = slugify(name) or generate_token(8).lower()
        if await OrganizationService.get_by_slug(db, slug) is not None:
            slug = f"{slug}-{generate_token(4).lower()}"

        organization = Organization(
            name=name,
            slug=slug,
            settings=OrganizationSettings(),
            branding=OrganizationBranding(),
        )
        db.add(organization)
        await db.flush()

        db.add(
            OrganizationUser(
                account_id=owner.id,
                organization_id=organization.id,
                role=MembershipRole.OWNER.value,
            )
        )
        await db.flush()
        logger.info("Organization created", organization_id=organization.id, slug=slug)
        return organization

    @staticmethod
    async def get_by_slug(db: AsyncSession, slug: str) -> Organization | None:
        result = await db.execute(select(Organization).where(Organization.slug == slug))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id(db: AsyncSession, organization_id: str) -> Organization | None:
        result = await db.execute(select(Organization).where(Organization.id == organization_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_membership(
        db: AsyncSession, account_id: str, organization_id: str | None
    ) -> OrganizationUser | None:
        if not organization_id:
            return None
        result = await db.execute(
            select(OrganizationUser).where(
                OrganizationUser.account_id == account_id,
                OrganizationUser.organization_id == organization_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def require_membership(
        db: AsyncSession,
        account_id: str,
        organization_id: str | None,
        not_found: bool = False,
    ) -> OrganizationUser:
        """
        Load the caller's membership in an organization.

        Raises:
            NotFound: when ``not_found`` is set (hides the tenant's existence).
            Forbidden: otherwise.
        """
        membership = await OrganizationService.get_membership(db, account_id, organization_id)
        if membership is None:
            logger.warning(
                "Membership check failed",
                account_id=account_id,
                organization_id=organization_id,
            )
            if not_found:
                raise NotFound("Organization not found")
            raise Forbidden("Access denied")
        return membership

    @staticmethod
    async def add_member(
        db: AsyncSession,
        account_id: str,
        organization_id: str,
        role: MembershipRole = MembershipRole.MEMBER,
    ) -> OrganizationUser:
        """Idempotent: an existing membership is returned unchanged."""
        existing = await OrganizationService.get_membership(db, account_id, organization_id)
        if existing is not None:
            return existing
        membership = OrganizationUser(
            account_id=account_id, organization_id=organization_id, role=role.value
        )
        db.add(membership)
        await db.flush()
        logger.info(
            "Member added", account_id=account_id, organization_id=organization_id, role=role.value
        )
        return membership

    @staticmethod
    async def list_memberships(db: AsyncSession, account_id: str) -> list[OrganizationUser]:
        result = await db.execute(
            select(OrganizationUser)
            .where(OrganizationUser.account_id == account_id)
            .order_by(OrganizationUser.created_at)
        )
        return list(result.scalars().all())
