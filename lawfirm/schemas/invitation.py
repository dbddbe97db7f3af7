"""
schemas/invitation.py
---------------------
Invitation request/response shapes.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from lawfirm.integrations.sms import is_valid_phone_number
from lawfirm.models.invitation import InvitationStatus, InvitationType
from lawfirm.schemas.base import CamelModel, EmailAddress, Pagination

Channel = Literal["email", "sms"]


class InvitationCreate(CamelModel):
    organization_id: str
    email: EmailAddress
    phone: Optional[str] = None
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    type: InvitationType = InvitationType.CLIENT
    landing_page_id: Optional[str] = None
    intake_form_id: Optional[str] = None
    case_id: Optional[str] = None
    message: Optional[str] = Field(default=None, max_length=2000)
    send_via: List[Channel] = Field(default_factory=lambda: ["email"])

    @field_validator("phone")
    @classmethod
    def phone_number(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_valid_phone_number(value):
            raise ValueError("Invalid phone number")
        return value


class InvitationIssued(CamelModel):
    id: str
    token: str
    invite_url: str
    qr_code_url: str
    sent_via: List[str]


class InvitationCreateResponse(CamelModel):
    success: bool = True
    invitation: InvitationIssued


class InvitationRead(CamelModel):
    id: str
    organization_id: str
    email: str
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    type: InvitationType
    status: InvitationStatus
    landing_page_id: Optional[str] = None
    intake_form_id: Optional[str] = None
    case_id: Optional[str] = None
    message: Optional[str] = None
    expires_at: datetime
    sent_at: Optional[datetime] = None
    sent_via: List[str] = Field(default_factory=list)
    accepted_at: Optional[datetime] = None
    created_at: datetime


class InvitationList(CamelModel):
    invitations: List[InvitationRead]
    pagination: Pagination


class InvitationPublic(CamelModel):
    """What the invite landing page may see before the invitee signs in."""

    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    type: InvitationType
    status: InvitationStatus
    message: Optional[str] = None
    expires_at: datetime
    organization_name: str
    organization_slug: str


class InvitationAcceptResponse(CamelModel):
    success: bool = True
    invitation: InvitationRead
    access_token: Optional[str] = None
