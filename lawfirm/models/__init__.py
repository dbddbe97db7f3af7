"""
models/__init__.py
------------------
Re-export all models so create_tables.py (and any migration tool) can
discover every table through a single import:

    from lawfirm.models import Base
"""

from lawfirm.db.base import Base
from lawfirm.models.account import Account, AccountStatus
from lawfirm.models.case import Case, CaseStatus
from lawfirm.models.client import Client, ClientPortalSession
from lawfirm.models.document import AIJob, AIJobStatus, Document, DocumentCategory
from lawfirm.models.invitation import Invitation, InvitationStatus, InvitationType
from lawfirm.models.message import Message, MessageContentType
from lawfirm.models.organization import (
    MembershipRole,
    Organization,
    OrganizationBranding,
    OrganizationSettings,
    OrganizationUser,
)
from lawfirm.models.verification_token import TokenPurpose, VerificationToken

__all__ = [
    "Base",
    "Account",
    "AccountStatus",
    "AIJob",
    "AIJobStatus",
    "Case",
    "CaseStatus",
    "Client",
    "ClientPortalSession",
    "Document",
    "DocumentCategory",
    "Invitation",
    "InvitationStatus",
    "InvitationType",
    "MembershipRole",
    "Message",
    "MessageContentType",
    "Organization",
    "OrganizationBranding",
    "OrganizationSettings",
    "OrganizationUser",
    "TokenPurpose",
    "VerificationToken",
]
