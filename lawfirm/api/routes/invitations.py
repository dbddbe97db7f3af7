"""
api/routes/invitations.py
-------------------------
Invitation endpoints.

POST /api/invitations                  Issue and dispatch an invitation.
GET  /api/invitations                  List an organization's invitations.
GET  /api/invitations/{token}          Public lookup for the invite page.
POST /api/invitations/{token}/accept   Accept as the signed-in account.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from lawfirm.core.errors import ValidationError
from lawfirm.db.session import get_db
from lawfirm.dependencies import get_current_account
from lawfirm.models.account import Account
from lawfirm.models.invitation import InvitationStatus, InvitationType
from lawfirm.schemas.invitation import (
    InvitationAcceptResponse,
    InvitationCreate,
    InvitationCreateResponse,
    InvitationIssued,
    InvitationList,
    InvitationPublic,
    InvitationRead,
)
from lawfirm.services import session_service
from lawfirm.services.invitation_service import InvitationService

router = APIRouter(prefix="/api/invitations", tags=["Invitations"])


@router.post("", response_model=InvitationCreateResponse, summary="Issue an invitation")
async def create_invitation(
    body: InvitationCreate,
    account: Annotated[Account, Depends(get_current_account)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InvitationCreateResponse:
    """
    sendVia defaults to ["email"]. The response's sentVia lists only the
    channels that delivered.
    """
    invitation, invite_url = await InvitationService.create(db, account, body)
    return InvitationCreateResponse(
        invitation=InvitationIssued(
            id=invitation.id,
            token=invitation.token,
            invite_url=invite_url,
            qr_code_url=invitation.qr_code_url,
            sent_via=invitation.sent_via,
        )
    )


@router.get("", response_model=InvitationList, summary="List invitations")
async def list_invitations(
    account: Annotated[Account, Depends(get_current_account)],
    db: Annotated[AsyncSession, Depends(get_db)],
    organization_id: Annotated[Optional[str], Query(alias="organizationId")] = None,
    invitation_status: Annotated[Optional[InvitationStatus], Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> InvitationList:
    if not organization_id:
        raise ValidationError("Organization ID required")
    invitations, pagination = await InvitationService.list_for_organization(
        db, account.id, organization_id, invitation_status, page, limit
    )
    return InvitationList(
        invitations=[InvitationRead.model_validate(i) for i in invitations],
        pagination=pagination,
    )


@router.get("/{token}", response_model=InvitationPublic, summary="Look up an invitation")
async def get_invitation(
    token: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InvitationPublic:
    invitation = await InvitationService.get_by_token(db, token)
    return InvitationPublic(
        email=invitation.email,
        first_name=invitation.first_name,
        last_name=invitation.last_name,
        type=invitation.type,
        status=invitation.status,
        message=invitation.message,
        expires_at=invitation.expires_at,
        organization_name=invitation.organization.name,
        organization_slug=invitation.organization.slug,
    )


@router.post("/{token}/accept", response_model=InvitationAcceptResponse, summary="Accept an invitation")
async def accept_invitation(
    token: str,
    response: Response,
    account: Annotated[Account, Depends(get_current_account)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InvitationAcceptResponse:
    """
    Accepting a TEAM_MEMBER invitation changes the account's memberships, so
    a re-issued session token is returned (and set as the cookie).
    """
    invitation = await InvitationService.accept(db, token, account)

    access_token = None
    if invitation.type == InvitationType.TEAM_MEMBER.value:
        access_token = await session_service.issue_for_account(db, account)
        session_service.set_session_cookie(response, access_token)

    return InvitationAcceptResponse(
        invitation=InvitationRead.model_validate(invitation),
        access_token=access_token,
    )
