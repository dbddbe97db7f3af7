"""
services/session_service.py
---------------------------
Issues and refreshes session tokens from persisted state.

The token is a cache of the account's memberships: whenever the membership
set changes, the caller must re-issue or update the token.
"""

from typing import Any, Dict, List

from fastapi import Response
from sqlalchemy.ext.asyncio import AsyncSession

from lawfirm.core.config import settings
from lawfirm.core.logging import get_logger
from lawfirm.core.security import issue_session_token, update_session_token
from lawfirm.models.account import Account
from lawfirm.schemas.auth import SessionUpdateRequest
from lawfirm.services.organization_service import OrganizationService

logger = get_logger(__name__)


async def load_membership_claims(db: AsyncSession, account_id: str) -> List[Dict[str, Any]]:
    memberships = await OrganizationService.list_memberships(db, account_id)
    return [membership.to_claim() for membership in memberships]


async def issue_for_account(db: AsyncSession, account: Account) -> str:
    organizations = await load_membership_claims(db, account.id)
    logger.info("Session issued", account_id=account.id, organizations=len(organizations))
    return issue_session_token(
        account_id=account.id,
        email=account.email,
        first_name=account.first_name,
        last_name=account.last_name,
        organizations=organizations,
    )


async def apply_update(
    db: AsyncSession, token: str, account_id: str, update: SessionUpdateRequest
) -> str:
    """
    Update trigger: merge the requested names into the token.

    ``organizations`` refreshes the membership snapshot from the database;
    client-supplied membership lists are never trusted.
    """
    patch = update.to_claims()
    if update.organizations:
        patch["organizations"] = await load_membership_claims(db, account_id)
    logger.info("Session updated", account_id=account_id, fields=sorted(patch))
    return update_session_token(token, patch)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
