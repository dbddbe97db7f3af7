"""
services/invitation_service.py
------------------------------
Invitation issuing, listing and acceptance.

Issuing persists the invitation as PENDING, tries every requested channel
(SMS only when a phone number is present) and then marks it SENT. Channel
failures are logged and left out of sent_via; they never fail the request,
and the invitation is marked SENT even when no channel delivered.
"""

import math
from datetime import timedelta
from typing import Awaitable, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lawfirm.core.config import settings
from lawfirm.core.errors import Forbidden, NotFound, ValidationError
from lawfirm.core.logging import get_logger
from lawfirm.core.security import generate_token
from lawfirm.db.base import as_utc, utcnow
from lawfirm.integrations import email as email_client
from lawfirm.integrations import sms as sms_client
from lawfirm.integrations.delivery import DeliveryResult
from lawfirm.integrations.qr import qr_code_data_url
from lawfirm.models.account import Account
from lawfirm.models.client import Client
from lawfirm.models.invitation import Invitation, InvitationStatus, InvitationType
from lawfirm.models.organization import MembershipRole
from lawfirm.schemas.base import Pagination
from lawfirm.schemas.invitation import InvitationCreate
from lawfirm.services.organization_service import OrganizationService

logger = get_logger(__name__)

INVITATION_TOKEN_LENGTH = 48
INVITATION_TTL = timedelta(days=7)
TERMINAL_STATUSES = frozenset({InvitationStatus.ACCEPTED.value, InvitationStatus.EXPIRED.value})


def invite_url(token: str) -> str:
    return f"{settings.APP_URL}/invite/{token}"


async def _dispatch(channel: str, invitation_id: str, send: Awaitable[DeliveryResult]) -> bool:
    try:
        result = await send
    except Exception as exc:
        logger.error("Invitation dispatch raised", channel=channel, invitation_id=invitation_id, error=str(exc))
        return False
    if not result.success:
        logger.warning("Invitation not delivered", channel=channel, invitation_id=invitation_id, error=result.error)
    return result.success


class InvitationService:

    @staticmethod
    async def create(
        db: AsyncSession, inviter: Account, data: InvitationCreate
    ) -> Tuple[Invitation, str]:
        """
        Issue an invitation and dispatch it.

        Returns:
            The SENT invitation and its invite URL.

        Raises:
            NotFound: The inviter is not a member of the organization.
        """
        membership = await OrganizationService.require_membership(
            db, inviter.id, data.organization_id, not_found=True
        )
        organization = membership.organization

        token = generate_token(INVITATION_TOKEN_LENGTH)
        expires_at = utcnow() + INVITATION_TTL
        url = invite_url(token)

        invitation = Invitation(
            organization_id=organization.id,
            created_by_id=inviter.id,
            email=data.email,
            phone=data.phone,
            first_name=data.first_name,
            last_name=data.last_name,
            type=data.type.value,
            token=token,
            expires_at=expires_at,
            status=InvitationStatus.PENDING.value,
            landing_page_id=data.landing_page_id,
            intake_form_id=data.intake_form_id,
            case_id=data.case_id,
            message=data.message,
            qr_code_url=qr_code_data_url(url),
        )
        db.add(invitation)
        await db.flush()

        sent_via: List[str] = []
        if "email" in data.send_via:
            content = email_client.invitation_email(
                recipient_name=data.first_name or "",
                firm_name=organization.name,
                inviter_name=inviter.full_name,
                invite_url=url,
                expires_at=expires_at.strftime("%B %d, %Y"),
                message=data.message,
            )
            send = email_client.send_email(
                to=data.email, subject=content.subject, html=content.html, text=content.text
            )
            if await _dispatch("email", invitation.id, send):
                sent_via.append("email")

        if "sms" in data.send_via and data.phone:
            send = sms_client.send_invitation_sms(
                phone=data.phone,
                firm_name=organization.name,
                invite_url=url,
                recipient_name=data.first_name,
            )
            if await _dispatch("sms", invitation.id, send):
                sent_via.append("sms")

        invitation.sent_via = sent_via
        invitation.sent_at = utcnow()
        invitation.status = InvitationStatus.SENT.value
        await db.flush()

        logger.info(
            "Invitation issued",
            invitation_id=invitation.id,
            organization_id=organization.id,
            type=invitation.type,
            sent_via=sent_via,
        )
        return invitation, url

    @staticmethod
    async def list_for_organization(
        db: AsyncSession,
        account_id: str,
        organization_id: str,
        status: Optional[InvitationStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Invitation], Pagination]:
        """Newest first. Raises Forbidden for non-members."""
        await OrganizationService.require_membership(db, account_id, organization_id)

        conditions = [Invitation.organization_id == organization_id]
        if status is not None:
            conditions.append(Invitation.status == status.value)

        total = await db.scalar(select(func.count()).select_from(Invitation).where(*conditions))
        result = await db.execute(
            select(Invitation)
            .where(*conditions)
            .order_by(Invitation.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        invitations = list(result.scalars().all())
        pagination = Pagination(
            page=page, limit=limit, total=total or 0, total_pages=math.ceil((total or 0) / limit)
        )
        return invitations, pagination

    @staticmethod
    async def get_by_token(db: AsyncSession, token: str) -> Invitation:
        """
        Public lookup. A PENDING or SENT invitation past its expiry is
        marked EXPIRED on read.
        """
        result = await db.execute(select(Invitation).where(Invitation.token == token))
        invitation = result.scalar_one_or_none()
        if invitation is None:
            raise NotFound("Invitation not found")

        if (
            invitation.status not in TERMINAL_STATUSES
            and as_utc(invitation.expires_at) <= utcnow()
        ):
            invitation.status = InvitationStatus.EXPIRED.value
            # Kept even when the caller goes on to reject the invitation
            await db.commit()
            logger.info("Invitation expired", invitation_id=invitation.id)
        return invitation

    @staticmethod
    async def accept(db: AsyncSession, token: str, account: Account) -> Invitation:
        """
        Accept an invitation as ``account``.

        TEAM_MEMBER invitations grant a MEMBER membership; CLIENT invitations
        create the organization's client record (or link an existing one)
        and send the portal welcome email.

        Raises:
            NotFound: Unknown token.
            ValidationError: The invitation is expired or already accepted.
            Forbidden: The invitation was issued to a different email.
        """
        invitation = await InvitationService.get_by_token(db, token)
        if invitation.status == InvitationStatus.EXPIRED.value:
            raise ValidationError("Invitation has expired")
        if invitation.status == InvitationStatus.ACCEPTED.value:
            raise ValidationError("Invitation has already been accepted")
        if invitation.email != account.email:
            raise Forbidden("Invitation was issued to a different email")

        if invitation.type == InvitationType.TEAM_MEMBER.value:
            await OrganizationService.add_member(
                db, account.id, invitation.organization_id, MembershipRole.MEMBER
            )
        elif invitation.type == InvitationType.CLIENT.value:
            client = await InvitationService._link_client(db, invitation, account)
            content = email_client.welcome_email(
                client_name=client.first_name or account.full_name,
                firm_name=invitation.organization.name,
                portal_url=f"{settings.APP_URL}/portal",
            )
            send = email_client.send_email(
                to=account.email, subject=content.subject, html=content.html, text=content.text
            )
            await _dispatch("email", invitation.id, send)

        invitation.status = InvitationStatus.ACCEPTED.value
        invitation.accepted_at = utcnow()
        await db.flush()
        logger.info("Invitation accepted", invitation_id=invitation.id, account_id=account.id)
        return invitation

    @staticmethod
    async def _link_client(db: AsyncSession, invitation: Invitation, account: Account) -> Client:
        result = await db.execute(
            select(Client).where(
                Client.organization_id == invitation.organization_id,
                Client.email == invitation.email,
            )
        )
        client = result.scalars().first()
        if client is None:
            client = Client(
                organization_id=invitation.organization_id,
                email=invitation.email,
                first_name=invitation.first_name or account.first_name or "",
                last_name=invitation.last_name or account.last_name or "",
                phone=invitation.phone or account.phone,
            )
            db.add(client)
        if client.account_id is None:
            client.account_id = account.id
        await db.flush()
        return client
